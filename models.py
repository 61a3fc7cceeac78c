from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Roles
ROLE_ADMIN = 'admin'
ROLE_LIBRARIAN = 'librarian'
ROLE_USER = 'user'
ROLES = (ROLE_ADMIN, ROLE_LIBRARIAN, ROLE_USER)
STAFF_ROLES = (ROLE_ADMIN, ROLE_LIBRARIAN)

# Loan states
STATUS_BORROWED = 'borrowed'
STATUS_RETURNED = 'returned'


class StoreSlot(db.Model):
    """One named blob in the key-value store. ``value`` holds a JSON array."""
    __tablename__ = 'store_slot'
    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False, default='[]')

    def __repr__(self):
        return f'<StoreSlot {self.key}>'
