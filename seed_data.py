from datetime import datetime, timezone
import logging

from auth import hash_password
from models import ROLE_ADMIN, ROLE_LIBRARIAN, ROLE_USER
import store

logger = logging.getLogger(__name__)

INITIAL_USERS = [
    {"id": 1, "username": "admin", "password": "admin123", "role": ROLE_ADMIN, "fullName": "System Administrator"},
    {"id": 2, "username": "librarian", "password": "lib123", "role": ROLE_LIBRARIAN, "fullName": "John Librarian"},
    {"id": 3, "username": "user1", "password": "pass123", "role": ROLE_USER, "fullName": "Jane Smith"},
    {"id": 4, "username": "user2", "password": "pass123", "role": ROLE_USER, "fullName": "Robert Johnson"},
]

INITIAL_BOOKS = [
    {"id": 1, "title": "To Kill a Mockingbird", "author": "Harper Lee", "isbn": "9780446310789", "publicationYear": 1960, "genre": "Fiction", "publisher": "Grand Central Publishing", "pages": 324, "description": "A gripping tale of racial injustice and childhood innocence in the American South.", "totalCopies": 3},
    {"id": 2, "title": "1984", "author": "George Orwell", "isbn": "9780451524935", "publicationYear": 1949, "genre": "Dystopian Fiction", "publisher": "Signet Classics", "pages": 328, "description": "A dystopian social science fiction novel about totalitarian control.", "totalCopies": 2},
    {"id": 3, "title": "Pride and Prejudice", "author": "Jane Austen", "isbn": "9780141439518", "publicationYear": 1813, "genre": "Romance", "publisher": "Penguin Classics", "pages": 432, "description": "A romantic novel about manners and marriage in Georgian England.", "totalCopies": 4},
    {"id": 4, "title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "isbn": "9780743273565", "publicationYear": 1925, "genre": "Fiction", "publisher": "Scribner", "pages": 180, "description": "A tragic story of Jay Gatsby and his pursuit of the American Dream.", "totalCopies": 2},
    {"id": 5, "title": "Harry Potter and the Philosopher's Stone", "author": "J.K. Rowling", "isbn": "9780747532699", "publicationYear": 1997, "genre": "Fantasy", "publisher": "Bloomsbury", "pages": 223, "description": "The first book in the Harry Potter series about a young wizard.", "totalCopies": 5},
    {"id": 6, "title": "The Catcher in the Rye", "author": "J.D. Salinger", "isbn": "9780316769174", "publicationYear": 1951, "genre": "Fiction", "publisher": "Little Brown", "pages": 234, "description": "A controversial novel about teenage rebellion and alienation.", "totalCopies": 3},
    {"id": 7, "title": "Lord of the Flies", "author": "William Golding", "isbn": "9780571056866", "publicationYear": 1954, "genre": "Fiction", "publisher": "Faber & Faber", "pages": 248, "description": "A story about British boys stranded on an uninhabited island.", "totalCopies": 3},
    {"id": 8, "title": "The Hobbit", "author": "J.R.R. Tolkien", "isbn": "9780547928227", "publicationYear": 1937, "genre": "Fantasy", "publisher": "Houghton Mifflin Harcourt", "pages": 366, "description": "A fantasy adventure about Bilbo Baggins and his unexpected journey.", "totalCopies": 4},
    {"id": 9, "title": "Jane Eyre", "author": "Charlotte Brontë", "isbn": "9780141441146", "publicationYear": 1847, "genre": "Gothic Fiction", "publisher": "Penguin Classics", "pages": 624, "description": "A Gothic novel about an orphaned girl who becomes a governess.", "totalCopies": 2},
    {"id": 10, "title": "The Lord of the Rings", "author": "J.R.R. Tolkien", "isbn": "9780547928210", "publicationYear": 1954, "genre": "Fantasy", "publisher": "Houghton Mifflin Harcourt", "pages": 531, "description": "The first volume of the Lord of the Rings epic fantasy trilogy.", "totalCopies": 3},
]


def seed_users(created_at):
    return [dict(u, password=hash_password(u["password"]), createdAt=created_at) for u in INITIAL_USERS]


def seed_books(created_at):
    return [
        dict(
            b,
            availableCopies=b["totalCopies"],
            createdBy=1,
            createdAt=created_at,
            coverUrl=f"https://covers.openlibrary.org/b/isbn/{b['isbn']}-M.jpg",
        )
        for b in INITIAL_BOOKS
    ]


def seed_store():
    """Write seed data into every slot that does not exist yet."""
    created_at = datetime.now(timezone.utc).isoformat()
    if not store.has_slot(store.USERS_KEY):
        store.write_slot(store.USERS_KEY, seed_users(created_at))
        logger.debug("Users seeded")
    if not store.has_slot(store.BOOKS_KEY):
        store.write_slot(store.BOOKS_KEY, seed_books(created_at))
        logger.debug("Books seeded")
    if not store.has_slot(store.TRANSACTIONS_KEY):
        store.write_slot(store.TRANSACTIONS_KEY, [])
        logger.debug("Transactions seeded")


def reset_store():
    store.clear_slots()
    seed_store()


if __name__ == "__main__":
    from app import app

    with app.app_context():
        reset_store()
        print("🔄 Store reset")
        print(f"✅ {len(INITIAL_USERS)} users and {len(INITIAL_BOOKS)} books inserted")
