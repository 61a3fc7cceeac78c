from flask import Flask, request, jsonify
import os
from flask_session import Session
from apscheduler.schedulers.background import BackgroundScheduler
from cachelib import SimpleCache
from flask_cors import CORS
import logging
import functools
import atexit
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql import text
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv
import time

import auth
import catalog
import directory
import loans
from errors import Forbidden, LibraryError, ValidationError
from models import db, ROLE_ADMIN, STAFF_ROLES
from seed_data import seed_store

load_dotenv()
app = Flask(__name__)

cors_origins = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://localhost:5173').split(',') if o.strip()]
CORS(app, supports_credentials=True, origins=cors_origins)

# Configure logging
log_level = os.environ.get('LOG_LEVEL', 'DEBUG').upper()
logging.basicConfig(level=getattr(logging, log_level, logging.DEBUG), format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Database configuration
database_url = os.environ.get('DATABASE_URL')
if not database_url:
    raise ValueError("DATABASE_URL is not set in .env file")
if database_url.startswith('postgres://'):
    database_url = database_url.replace('postgres://', 'postgresql://', 1)
app.config['SQLALCHEMY_DATABASE_URI'] = database_url
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
if database_url.startswith('postgresql'):
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'connect_args': {'connect_timeout': 10, 'sslmode': os.environ.get('DATABASE_SSLMODE', 'require')},
        'pool_size': 5,
        'max_overflow': 10,
        'pool_timeout': 30,
    }
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'xYz9wV1uT0sR9qP8oN7mL6kJ5iH4gF3eD2cB1a')
app.config['SESSION_TYPE'] = os.environ.get('SESSION_TYPE', 'sqlalchemy')
if app.config['SESSION_TYPE'] == 'sqlalchemy':
    app.config['SESSION_SQLALCHEMY'] = db
elif app.config['SESSION_TYPE'] == 'cachelib':
    app.config['SESSION_CACHELIB'] = SimpleCache()
app.config['SESSION_PERMANENT'] = False
app.config['SESSION_COOKIE_SECURE'] = env_flag('SESSION_COOKIE_SECURE', True)
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

try:
    db.init_app(app)
except Exception as e:
    logger.error(f"Failed to initialize database: {str(e)}")
    raise

Session(app)

with app.app_context():
    db.create_all()
    seed_store()


@app.before_request
def log_request():
    logger.debug(f"Incoming request: {request.method} {request.path}")


# Authentication decorator
def login_required(roles=None):
    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            user = auth.current_user()
            if not user:
                logger.error("Unauthorized access: No user session")
                return jsonify({'error': 'Unauthorized access'}), 401
            if roles and user.get('role') not in roles:
                logger.error(f"Access denied: Required one of {roles}, got {user.get('role')}")
                return jsonify({'error': 'Access denied'}), 403
            return f(*args, **kwargs)
        return wrapped
    return decorator


# Retry decorator
def retry_db_operation(max_attempts=3, delay=1):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempts = 0
            while attempts < max_attempts:
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    logger.error(f"Database operation failed: {str(e)}")
                    db.session.rollback()
                    attempts += 1
                    if attempts == max_attempts:
                        raise
                    time.sleep(delay)
                    logger.debug(f"Retrying database operation ({attempts}/{max_attempts})")
            return None
        return wrapper
    return decorator


# Overdue report scheduler
def report_overdue_loans():
    with app.app_context():
        overdue = loans.list_overdue()
        logger.info(f"Overdue check completed: {len(overdue)} loans overdue")
        return overdue


if env_flag('SCHEDULER_ENABLED', False):
    scheduler = BackgroundScheduler()
    scheduler.add_job(report_overdue_loans, 'interval', days=1)
    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))


def get_payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def serialize_transaction(tx):
    return dict(tx, isOverdue=loans.is_overdue(tx))


# Routes
@app.route('/')
def home():
    return jsonify({"message": "Library Catalog Backend"})


@app.route('/api/health', methods=['GET'])
@retry_db_operation()
def health():
    result = db.session.execute(text('SELECT 1')).scalar()
    logger.debug(f"Database test query successful: {result}")
    return jsonify({'message': 'Database connection successful'}), 200


@app.route('/api/login', methods=['POST'])
@retry_db_operation()
def login():
    data = get_payload()
    if 'username' not in data or 'password' not in data:
        logger.error("Invalid login payload")
        return jsonify({'error': 'Missing username or password'}), 400
    user = auth.login(data['username'], data['password'])
    if user is None:
        return jsonify({'error': 'Invalid username or password'}), 401
    auth.remember_user(user)
    return jsonify({'message': 'Login successful', 'user': user}), 200


@app.route('/api/register', methods=['POST'])
@retry_db_operation()
def register():
    data = get_payload()
    user = directory.register(data.get('username'), data.get('password'), data.get('fullName'))
    auth.remember_user(user)
    return jsonify({'message': 'User registered successfully', 'user': user}), 201


@app.route('/api/logout', methods=['POST'])
def logout():
    auth.forget_user()
    logger.debug("User logged out")
    return jsonify({'message': 'Logout successful'}), 200


@app.route('/api/session', methods=['GET'])
@login_required()
def get_session():
    return jsonify({'user': auth.current_user()}), 200


@app.route('/api/books', methods=['GET'])
@login_required()
@retry_db_operation()
def get_books():
    books = catalog.search_books(catalog.list_books(), request.args.get('search', ''))
    logger.debug(f"Fetched {len(books)} books")
    return jsonify(books), 200


@app.route('/api/books/<int:book_id>', methods=['GET'])
@login_required()
@retry_db_operation()
def get_book(book_id):
    return jsonify(catalog.get_book(book_id)), 200


@app.route('/api/books', methods=['POST'])
@login_required(roles=STAFF_ROLES)
@retry_db_operation()
def add_book():
    user = auth.current_user()
    book = catalog.create_book(get_payload(), user['id'])
    return jsonify(book), 201


@app.route('/api/books/<int:book_id>', methods=['PUT'])
@login_required(roles=STAFF_ROLES)
@retry_db_operation()
def edit_book(book_id):
    data = get_payload()
    # partial edits are laid over the stored record
    book = dict(catalog.get_book(book_id))
    book.update(data)
    book['id'] = book_id
    return jsonify(catalog.update_book(book)), 200


@app.route('/api/books/<int:book_id>', methods=['DELETE'])
@login_required(roles=STAFF_ROLES)
@retry_db_operation()
def delete_book(book_id):
    catalog.delete_book(book_id)
    return jsonify({'message': 'Book deleted successfully'}), 200


@app.route('/api/books/<int:book_id>/borrow', methods=['POST'])
@login_required()
def borrow_book(book_id):
    user = auth.current_user()
    transaction = loans.borrow_book(user['id'], book_id)
    return jsonify(serialize_transaction(transaction)), 201


@app.route('/api/transactions/<int:transaction_id>/return', methods=['POST'])
@login_required()
def return_book(transaction_id):
    user = auth.current_user()
    transaction = loans.get_transaction(transaction_id)
    if transaction.get('userId') != user['id'] and not auth.is_staff(user):
        raise Forbidden('You can only return your own loans')
    transaction = loans.return_book(transaction_id)
    return jsonify(serialize_transaction(transaction)), 200


@app.route('/api/transactions/me', methods=['GET'])
@login_required()
@retry_db_operation()
def get_my_transactions():
    user = auth.current_user()
    history = loans.user_history(user['id'])
    logger.debug(f"Fetched {len(history)} transactions for user_id={user['id']}")
    return jsonify([serialize_transaction(t) for t in history]), 200


@app.route('/api/users', methods=['GET'])
@login_required(roles=STAFF_ROLES)
@retry_db_operation()
def get_users():
    role = request.args.get('role')
    if role:
        users = directory.list_users_by_role([r.strip() for r in role.split(',')])
    else:
        users = directory.list_users()
    return jsonify(users), 200


@app.route('/api/users/staff', methods=['GET'])
@login_required(roles=(ROLE_ADMIN,))
@retry_db_operation()
def get_staff():
    return jsonify(directory.list_users_by_role(STAFF_ROLES)), 200


@app.route('/api/users/staff', methods=['POST'])
@login_required(roles=(ROLE_ADMIN,))
@retry_db_operation()
def create_staff():
    data = get_payload()
    user = directory.create_staff(data.get('username'), data.get('password'), data.get('fullName'), data.get('role'))
    return jsonify({'message': 'Staff account created successfully', 'user': user}), 201


@app.route('/api/users/<int:user_id>/books', methods=['GET'])
@login_required(roles=STAFF_ROLES)
@retry_db_operation()
def get_user_books(user_id):
    directory.get_user(user_id)
    return jsonify(directory.books_created_by(user_id)), 200


@app.route('/api/users/<int:user_id>/history', methods=['GET'])
@login_required(roles=STAFF_ROLES)
@retry_db_operation()
def get_user_history(user_id):
    directory.get_user(user_id)
    return jsonify([serialize_transaction(t) for t in loans.user_history(user_id)]), 200


@app.errorhandler(LibraryError)
def handle_library_error(error):
    logger.debug(f"Request failed: {error.message}")
    return jsonify({'error': error.message}), error.status_code


@app.errorhandler(HTTPException)
def handle_http_error(error):
    return jsonify({'error': error.description}), error.code


@app.errorhandler(Exception)
def handle_error(error):
    logger.error(f"Unhandled error: {str(error)}")
    db.session.rollback()
    return jsonify({'error': 'An unexpected error occurred'}), 500


if __name__ == '__main__':
    logger.debug(f"Database connected: {app.config['SQLALCHEMY_DATABASE_URI']}")
    app.run(debug=env_flag('FLASK_DEBUG', False))
