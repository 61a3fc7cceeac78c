"""Credential checks and the cached session user.

Passwords are stored as bcrypt hashes. The logged-in user is cached, without
its password, in the server-side Flask session under ``current_user`` and
restored from there on every request until logout.
"""

import logging
import os

import bcrypt
from flask import session

import store
from models import STAFF_ROLES

logger = logging.getLogger(__name__)

SESSION_USER_KEY = 'current_user'
BCRYPT_ROUNDS = int(os.environ.get('BCRYPT_ROUNDS', '12'))


def hash_password(password):
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode('utf-8')


def check_password(password, password_hash):
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # stored value is not a bcrypt hash
        logger.error("Stored password is not a valid bcrypt hash")
        return False


def sanitize_user(user):
    return {k: v for k, v in user.items() if k != 'password'}


def login(username, password):
    """Return the sanitized user for an exact username/password match, else None."""
    if not isinstance(username, str) or not isinstance(password, str):
        return None
    users = store.read_slot(store.USERS_KEY)
    user = next((u for u in users if u.get('username') == username), None)
    if user is None:
        logger.debug(f"Login failed, no such user: {username}")
        return None
    if not check_password(password, user.get('password', '')):
        logger.debug(f"Login failed, password mismatch for user: {username}")
        return None
    logger.debug(f"Login succeeded for user: {username}")
    return sanitize_user(user)


def remember_user(user):
    session[SESSION_USER_KEY] = user
    logger.debug(f"Session created for user_id={user['id']}")


def current_user():
    return session.get(SESSION_USER_KEY)


def forget_user():
    session.pop(SESSION_USER_KEY, None)


def is_staff(user):
    return user is not None and user.get('role') in STAFF_ROLES
