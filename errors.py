"""Errors raised by the catalog, loan and directory services.

Each error carries the message shown to the user and the HTTP status the API
answers with. The Flask error handler in ``app.py`` turns them into
``{'error': message}`` responses.
"""


class LibraryError(Exception):
    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None, status_code=None):
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code


class ValidationError(LibraryError):
    default_message = 'Invalid request'


class BookNotFound(LibraryError):
    status_code = 404
    default_message = 'Book not found'


class TransactionNotFound(LibraryError):
    status_code = 404
    default_message = 'Transaction record not found'


class UserNotFound(LibraryError):
    status_code = 404
    default_message = 'User not found'


class NoCopiesAvailable(LibraryError):
    default_message = 'No copies available'


class AlreadyReturned(LibraryError):
    default_message = 'Book is already returned'


class DuplicateUsername(LibraryError):
    default_message = 'Username already exists'


class Forbidden(LibraryError):
    status_code = 403
    default_message = 'Access denied'
