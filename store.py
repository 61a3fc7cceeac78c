"""Key-value blob store backing the catalog.

Users, books and loan transactions each live in one named slot holding a JSON
array. Every service call reads a whole slot, changes it in memory and writes
the whole slot back; there is no row-level locking, so the last writer wins.
"""

import json
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from models import db, StoreSlot

logger = logging.getLogger(__name__)

USERS_KEY = 'libsys_users'
BOOKS_KEY = 'libsys_books'
TRANSACTIONS_KEY = 'libsys_transactions'
SLOT_KEYS = (USERS_KEY, BOOKS_KEY, TRANSACTIONS_KEY)


def utcnow():
    return datetime.now(timezone.utc)


def to_iso(moment):
    return moment.astimezone(timezone.utc).isoformat()


def parse_timestamp(value):
    """Parse a stored ISO timestamp. ``Z`` suffixes and naive values are read as UTC."""
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def has_slot(key):
    return db.session.get(StoreSlot, key) is not None


def read_slot(key):
    slot = db.session.get(StoreSlot, key)
    if slot is None:
        return []
    try:
        items = json.loads(slot.value)
    except json.JSONDecodeError:
        logger.error(f"Slot {key} holds invalid JSON, reading as empty")
        return []
    if not isinstance(items, list):
        logger.error(f"Slot {key} does not hold an array, reading as empty")
        return []
    return items


def write_slot(key, items):
    payload = json.dumps(items, ensure_ascii=False)
    try:
        slot = db.session.get(StoreSlot, key)
        if slot is None:
            db.session.add(StoreSlot(key=key, value=payload))
        else:
            slot.value = payload
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to write slot {key}: {str(e)}")
        db.session.rollback()
        raise
    logger.debug(f"Slot written: {key} ({len(items)} items)")


def clear_slots():
    try:
        StoreSlot.query.delete()
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to clear store: {str(e)}")
        db.session.rollback()
        raise


def next_id(items):
    return max((item['id'] for item in items), default=0) + 1


def find_index(items, item_id):
    for index, item in enumerate(items):
        if item.get('id') == item_id:
            return index
    return -1
