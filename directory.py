"""User accounts: registration, staff creation and role partitions."""

import logging

import store
from auth import hash_password, sanitize_user
from errors import DuplicateUsername, UserNotFound, ValidationError
from models import ROLES, ROLE_USER

logger = logging.getLogger(__name__)


def list_users():
    return [sanitize_user(u) for u in store.read_slot(store.USERS_KEY)]


def list_users_by_role(roles):
    return [u for u in list_users() if u.get('role') in roles]


def get_user(user_id):
    for user in store.read_slot(store.USERS_KEY):
        if user.get('id') == user_id:
            return sanitize_user(user)
    raise UserNotFound()


def _create_user(username, password, full_name, role):
    if not isinstance(username, str) or not username.strip():
        raise ValidationError('Username is required')
    if not isinstance(password, str) or not password:
        raise ValidationError('Password is required')
    if not isinstance(full_name, str) or not full_name.strip():
        raise ValidationError('Full Name is required')
    if role not in ROLES:
        raise ValidationError(f'Invalid role: {role}')

    users = store.read_slot(store.USERS_KEY)
    if any(u.get('username') == username for u in users):
        logger.debug(f"Duplicate username: {username}")
        raise DuplicateUsername()

    new_user = {
        'id': store.next_id(users),
        'username': username,
        'password': hash_password(password),
        'fullName': full_name,
        'role': role,
        'createdAt': store.to_iso(store.utcnow()),
    }
    users.append(new_user)
    store.write_slot(store.USERS_KEY, users)
    logger.debug(f"User created: {username} (id={new_user['id']}, role={role})")
    return sanitize_user(new_user)


def register(username, password, full_name):
    return _create_user(username, password, full_name, ROLE_USER)


def create_staff(username, password, full_name, role):
    return _create_user(username, password, full_name, role)


def books_created_by(user_id):
    return [b for b in store.read_slot(store.BOOKS_KEY) if b.get('createdBy') == user_id]
