"""
MongoDB access for the DevEvent API

One client per process, created on first use and reused by every request.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_indexes(db: Database) -> None:
    """Create the indexes the stores rely on. Safe to call repeatedly."""
    events = db[config.EVENTS_COLLECTION]
    events.create_index([("slug", ASCENDING)], unique=True, name="slug_unique")
    events.create_index([("created_at", DESCENDING)], name="created_at_desc")
    events.create_index([("tags", ASCENDING)], name="tags")
    db[config.BOOKINGS_COLLECTION].create_index([("event_id", ASCENDING)], name="event_id")


def _default_client_factory() -> MongoClient:
    return MongoClient(
        config.DATABASE_URL,
        serverSelectionTimeoutMS=config.DATABASE_TIMEOUT_MS,
        connectTimeoutMS=config.DATABASE_TIMEOUT_MS,
        socketTimeoutMS=config.DATABASE_TIMEOUT_MS,
        tz_aware=True,
    )


class ConnectionHandle:
    """Lazily initialized, process-wide database handle.

    The first call to :meth:`get` connects and creates indexes; concurrent
    first callers wait on the lock and then share the same client. If that
    first connection fails the client is closed, ``UpstreamError`` is raised
    and the next call tries again.
    """

    def __init__(self, client_factory: Callable[[], MongoClient] = _default_client_factory,
                 database_name: Optional[str] = None):
        self._client_factory = client_factory
        self._database_name = database_name or config.DATABASE_NAME
        self._lock = threading.Lock()
        self._client: Optional[MongoClient] = None
        self._db: Optional[Database] = None

    @property
    def client(self) -> Optional[MongoClient]:
        return self._client

    def get(self) -> Database:
        if self._db is not None:
            return self._db
        with self._lock:
            if self._db is None:
                client = self._client_factory()
                try:
                    db = client[self._database_name]
                    ensure_indexes(db)
                except PyMongoError as exc:
                    client.close()
                    logger.error("Could not connect to database %s: %s", self._database_name, exc)
                    raise UpstreamError("Event store unavailable") from exc
                logger.info("Connected to database %s", self._database_name)
                self._client = client
                self._db = db
        return self._db

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
            self._client = None
            self._db = None


handle = ConnectionHandle()


def get_db() -> Database:
    return handle.get()


# Document helpers

def create_document(collection: Collection, data: Dict[str, Any]) -> str:
    """Insert ``data`` stamped with created_at/updated_at and return the new id.

    ``data`` is not mutated; ``pymongo.errors`` propagate to the caller.
    """
    now = utcnow()
    document = dict(data)
    document.pop("_id", None)
    document["created_at"] = now
    document["updated_at"] = now
    result = collection.insert_one(document)
    return str(result.inserted_id)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return ``value`` as an ObjectId, or None if it cannot be one."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a stored document JSON friendly: ``_id`` becomes ``id`` and ObjectIds become strings."""
    if document is None:
        return None
    out = {}
    for key, value in document.items():
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        else:
            out[key] = value
    return out
