"""Borrow/return bookkeeping.

A loan starts ``borrowed`` and moves once to ``returned``. Each transition
writes two slots, the transactions and the books, with no rollback between
them.
"""

import logging
from datetime import timedelta

import store
from errors import AlreadyReturned, BookNotFound, NoCopiesAvailable, TransactionNotFound
from models import STATUS_BORROWED, STATUS_RETURNED

logger = logging.getLogger(__name__)

LOAN_PERIOD_DAYS = 14


def _status_of(tx):
    if tx.get('status'):
        return tx['status']
    return STATUS_RETURNED if tx.get('returnDate') else STATUS_BORROWED


def borrow_book(user_id, book_id, now=None):
    now = now or store.utcnow()
    books = store.read_slot(store.BOOKS_KEY)
    transactions = store.read_slot(store.TRANSACTIONS_KEY)

    book_index = store.find_index(books, book_id)
    if book_index == -1:
        logger.debug(f"Book not found: book_id={book_id}")
        raise BookNotFound()
    book = books[book_index]
    if book.get('availableCopies', 0) <= 0:
        logger.debug(f"Book unavailable: book_id={book_id}")
        raise NoCopiesAvailable()

    book['availableCopies'] -= 1
    store.write_slot(store.BOOKS_KEY, books)

    transaction = {
        'id': store.next_id(transactions),
        'bookId': book_id,
        'userId': user_id,
        'borrowDate': store.to_iso(now),
        'dueDate': store.to_iso(now + timedelta(days=LOAN_PERIOD_DAYS)),
        'returnDate': None,
        'status': STATUS_BORROWED,
        'bookTitle': book.get('title'),
        'bookAuthor': book.get('author'),
    }
    transactions.append(transaction)
    store.write_slot(store.TRANSACTIONS_KEY, transactions)
    logger.debug(f"Book borrowed: book_id={book_id} by user_id={user_id}")
    return transaction


def return_book(transaction_id, now=None):
    now = now or store.utcnow()
    transactions = store.read_slot(store.TRANSACTIONS_KEY)
    books = store.read_slot(store.BOOKS_KEY)

    tx_index = store.find_index(transactions, transaction_id)
    if tx_index == -1:
        logger.debug(f"Transaction not found: transaction_id={transaction_id}")
        raise TransactionNotFound()
    tx = transactions[tx_index]
    if tx.get('status') == STATUS_RETURNED or tx.get('returnDate'):
        logger.debug(f"Transaction already returned: transaction_id={transaction_id}")
        raise AlreadyReturned()

    tx['returnDate'] = store.to_iso(now)
    tx['status'] = STATUS_RETURNED
    store.write_slot(store.TRANSACTIONS_KEY, transactions)

    book_index = store.find_index(books, tx.get('bookId'))
    if book_index != -1:
        book = books[book_index]
        book['availableCopies'] = min(book.get('availableCopies', 0) + 1, book.get('totalCopies', 0))
        store.write_slot(store.BOOKS_KEY, books)
    else:
        logger.debug(f"Returned loan references a deleted book: book_id={tx.get('bookId')}")
    logger.debug(f"Book returned: transaction_id={transaction_id}")
    return tx


def get_transaction(transaction_id):
    for tx in store.read_slot(store.TRANSACTIONS_KEY):
        if tx.get('id') == transaction_id:
            return dict(tx, status=_status_of(tx))
    raise TransactionNotFound()


def user_history(user_id):
    """Loans of one user, newest borrow first, with missing statuses filled in."""
    transactions = [dict(tx, status=_status_of(tx)) for tx in store.read_slot(store.TRANSACTIONS_KEY)]
    mine = [tx for tx in transactions if tx.get('userId') == user_id]
    return sorted(
        mine,
        key=lambda tx: (store.parse_timestamp(tx['borrowDate']), tx.get('id', 0)),
        reverse=True,
    )


def is_overdue(tx, now=None):
    if _status_of(tx) != STATUS_BORROWED or not tx.get('dueDate'):
        return False
    now = now or store.utcnow()
    return store.parse_timestamp(tx['dueDate']) < now


def list_overdue(now=None):
    now = now or store.utcnow()
    return [tx for tx in store.read_slot(store.TRANSACTIONS_KEY) if is_overdue(tx, now)]
