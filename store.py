"""
Key-value persistence for the events portal.

Every collection is kept as a single JSON blob under its own key and is always
read and written whole. ``currentUser`` holds the snapshot of the logged-in
user, or is absent.
"""
import json
import logging

from extensions import db
from models import StoredCollection

logger = logging.getLogger(__name__)

USERS = "users"
EVENTS = "events"
REGISTRATIONS = "registrations"
CURRENT_USER = "currentUser"


class Store:
    """Read/write contract the domain model depends on.

    Subclasses only implement the raw text accessors.
    """

    def _read(self, key):
        raise NotImplementedError

    def _write(self, key, payload):
        raise NotImplementedError

    def _delete(self, key):
        raise NotImplementedError

    def get(self, name):
        payload = self._read(name)
        if payload is None:
            return []
        return json.loads(payload)

    def put(self, name, items):
        self._write(name, json.dumps(list(items)))

    def get_session(self):
        payload = self._read(CURRENT_USER)
        if payload is None:
            return None
        return json.loads(payload)

    def put_session(self, record):
        self._write(CURRENT_USER, json.dumps(record))

    def clear_session(self):
        self._delete(CURRENT_USER)


class MemoryStore(Store):
    def __init__(self):
        self._data = {}

    def _read(self, key):
        return self._data.get(key)

    def _write(self, key, payload):
        self._data[key] = payload

    def _delete(self, key):
        self._data.pop(key, None)


class SQLStore(Store):
    """Store backed by the ``stored_collection`` table; each write commits."""

    def _read(self, key):
        row = db.session.get(StoredCollection, key)
        return row.payload if row is not None else None

    def _write(self, key, payload):
        row = db.session.get(StoredCollection, key)
        if row is None:
            db.session.add(StoredCollection(key=key, payload=payload))
        else:
            row.payload = payload
        db.session.commit()
        logger.debug("Stored %s (%d bytes)", key, len(payload))

    def _delete(self, key):
        row = db.session.get(StoredCollection, key)
        if row is not None:
            db.session.delete(row)
            db.session.commit()
