"""Book inventory: create, update, delete and search the catalog."""

import logging

import store
from errors import BookNotFound, ValidationError

logger = logging.getLogger(__name__)

COVER_URL = 'https://covers.openlibrary.org/b/isbn/{isbn}-M.jpg'
REQUIRED_FIELDS = ('title', 'author', 'isbn', 'totalCopies')
OPTIONAL_TEXT_FIELDS = ('genre', 'publisher', 'description')
OPTIONAL_INT_FIELDS = ('publicationYear', 'pages')


def _as_int(fields, key, minimum=None):
    value = fields.get(key)
    if isinstance(value, bool):
        raise ValidationError(f'{key} must be an integer')
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be an integer')
    if minimum is not None and value < minimum:
        raise ValidationError(f'{key} must be at least {minimum}')
    return value


def _clean_fields(fields):
    """Validate bibliographic fields and return a normalized copy."""
    missing = [key for key in REQUIRED_FIELDS if fields.get(key) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    cleaned = {
        'title': str(fields['title']).strip(),
        'author': str(fields['author']).strip(),
        'isbn': str(fields['isbn']).strip(),
        'totalCopies': _as_int(fields, 'totalCopies', minimum=0),
    }
    for key in OPTIONAL_TEXT_FIELDS:
        value = fields.get(key)
        if value is None:
            value = ''
        if not isinstance(value, str):
            raise ValidationError(f'{key} must be a string')
        cleaned[key] = value
    for key in OPTIONAL_INT_FIELDS:
        if fields.get(key) in (None, ''):
            cleaned[key] = None
        else:
            cleaned[key] = _as_int(fields, key, minimum=0)
    return cleaned


def list_books():
    return store.read_slot(store.BOOKS_KEY)


def get_book(book_id):
    for book in store.read_slot(store.BOOKS_KEY):
        if book.get('id') == book_id:
            return book
    raise BookNotFound()


def search_books(books, term):
    """Filter books by a case-insensitive match on title, author or genre, or an ISBN substring."""
    if not term:
        return books
    lower_term = term.lower()
    return [
        b for b in books
        if lower_term in str(b.get('title') or '').lower()
        or lower_term in str(b.get('author') or '').lower()
        or lower_term in str(b.get('genre') or '').lower()
        or lower_term in str(b.get('isbn') or '')
    ]


def create_book(fields, creator_id):
    cleaned = _clean_fields(fields)
    books = store.read_slot(store.BOOKS_KEY)
    new_book = dict(cleaned)
    new_book.update({
        'id': store.next_id(books),
        'availableCopies': cleaned['totalCopies'],
        'createdBy': creator_id,
        'createdAt': store.to_iso(store.utcnow()),
        'coverUrl': COVER_URL.format(isbn=cleaned['isbn']),
    })
    books.append(new_book)
    store.write_slot(store.BOOKS_KEY, books)
    logger.debug(f"Book added: {new_book['title']} (ISBN: {new_book['isbn']}, id={new_book['id']})")
    return new_book


def update_book(book):
    """Replace the stored book with the same id.

    Copies already on loan stay on loan: ``availableCopies`` moves by the same
    delta as ``totalCopies`` and is then kept within ``[0, totalCopies]``.
    """
    book_id = book.get('id')
    books = store.read_slot(store.BOOKS_KEY)
    index = store.find_index(books, book_id)
    if index == -1:
        logger.debug(f"Book not found: book_id={book_id}")
        raise BookNotFound()

    old_book = books[index]
    cleaned = _clean_fields(book)
    diff = cleaned['totalCopies'] - old_book['totalCopies']
    available = old_book['availableCopies'] + diff
    available = max(0, min(available, cleaned['totalCopies']))

    updated = dict(old_book)
    updated.update(cleaned)
    updated['id'] = book_id
    updated['availableCopies'] = available
    if book.get('coverUrl'):
        updated['coverUrl'] = book['coverUrl']
    books[index] = updated
    store.write_slot(store.BOOKS_KEY, books)
    logger.debug(f"Book updated: book_id={book_id}, copies {updated['availableCopies']}/{updated['totalCopies']}")
    return updated


def delete_book(book_id):
    books = store.read_slot(store.BOOKS_KEY)
    remaining = [b for b in books if b.get('id') != book_id]
    store.write_slot(store.BOOKS_KEY, remaining)
    # loans of the deleted book keep pointing at it
    logger.debug(f"Book deleted: book_id={book_id} ({len(books) - len(remaining)} removed)")
