"""
Event and booking stores

Every write validates first, so a rejected record never reaches MongoDB.

Slug uniqueness is enforced by the unique index on ``events.slug``. When an
insert (or a title-changing update) hits that index, the store tries
``<base>-1``, ``<base>-2``, ... against the collection and writes again under
the first free candidate. Two writers may still pick the same candidate at the
same time; the loser gets another duplicate-key error and keeps trying from
the next counter. The number of candidates tried is bounded by ``max_slug_attempts``.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date as date_type
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import config
from database import create_document, to_object_id, utcnow
from errors import ConflictError, ReferentialIntegrityError, SlugExhaustionError, UpstreamError
from schemas import Booking, normalize_email, slugify, validate_event

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]
OLDEST_FIRST = [("created_at", ASCENDING), ("_id", ASCENDING)]


@contextmanager
def store_errors(action: str):
    """Turn driver failures into ``UpstreamError``; duplicate keys pass through."""
    try:
        yield
    except DuplicateKeyError:
        raise
    except PyMongoError as exc:
        logger.error("Event store failure while %s: %s", action, exc)
        raise UpstreamError("Event store unavailable") from exc


# Result of one write attempt

@dataclass(frozen=True)
class Inserted:
    document: Document


@dataclass(frozen=True)
class ConflictRetry:
    slug: str


@dataclass(frozen=True)
class Exhausted:
    base_slug: str
    attempts: int


WriteOutcome = Union[Inserted, ConflictRetry, Exhausted]


class DuplicateSlugResolver:
    """Finds the first ``<base>-<n>`` slug that is not taken."""

    def __init__(self, is_taken: Callable[[str], bool], max_attempts: int = config.MAX_SLUG_ATTEMPTS):
        self.is_taken = is_taken
        self.max_attempts = max_attempts

    def resolve(self, base: str, start: int = 1) -> Optional[Tuple[str, int]]:
        """Return ``(slug, counter)`` for the first free candidate, or None when out of attempts."""
        for counter in range(start, self.max_attempts + 1):
            candidate = f"{base}-{counter}"
            if not self.is_taken(candidate):
                return candidate, counter
        return None


def fallback_slug() -> str:
    return "event-" + utcnow().strftime("%Y%m%d%H%M%S")


class EventStore:
    def __init__(self, db: Database, max_slug_attempts: int = config.MAX_SLUG_ATTEMPTS):
        self.db = db
        self.collection = db[config.EVENTS_COLLECTION]
        self.max_slug_attempts = max_slug_attempts

    # Writes

    def create(self, record: Mapping[str, Any]) -> Document:
        """Validate ``record``, assign a slug and insert it.

        The slug is taken from the record when present, otherwise derived from
        the title. Returns the stored document including ``_id`` and timestamps.
        """
        event = validate_event(record)
        if not event.get("slug"):
            event["slug"] = slugify(event["title"]) or fallback_slug()
        return self._write_with_unique_slug(event, self._insert)

    def update(self, slug: str, changes: Mapping[str, Any]) -> Optional[Document]:
        """Apply ``changes`` to the event identified by ``slug``.

        The slug is regenerated only when the title changes. Returns None if
        there is no such event.
        """
        current = self.find_by_slug(slug)
        if current is None:
            return None
        merged = {**current, **{k: v for k, v in changes.items() if v is not None}}
        event = validate_event(merged)
        if event["title"] != current.get("title") or not current.get("slug"):
            event["slug"] = slugify(event["title"]) or fallback_slug()
        else:
            event["slug"] = current["slug"]

        event_id = current["_id"]

        def write(document: Document) -> Document:
            document = dict(document, updated_at=utcnow())
            return self.collection.find_one_and_update(
                {"_id": event_id}, {"$set": document}, return_document=ReturnDocument.AFTER)

        return self._write_with_unique_slug(event, write, exclude_id=event_id)

    def delete_all(self) -> int:
        with store_errors("deleting events"):
            return self.collection.delete_many({}).deleted_count

    def _insert(self, document: Document) -> Document:
        inserted_id = create_document(self.collection, document)
        return self.collection.find_one({"_id": ObjectId(inserted_id)})

    def _attempt(self, write: Callable[[Document], Document], document: Document,
                 exclude_id: Optional[ObjectId]) -> WriteOutcome:
        try:
            with store_errors("saving event"):
                return Inserted(write(document))
        except DuplicateKeyError as exc:
            if self._is_slug_conflict(exc, document["slug"], exclude_id):
                return ConflictRetry(document["slug"])
            logger.error("Unique constraint violated while saving event %r: %s", document["slug"], exc)
            raise ConflictError("Event conflicts with an existing event") from exc

    def _write_with_unique_slug(self, event: Document, write: Callable[[Document], Document],
                                exclude_id: Optional[ObjectId] = None) -> Document:
        resolver = DuplicateSlugResolver(
            lambda candidate: self.slug_taken(candidate, exclude_id), self.max_slug_attempts)
        base = slugify(event["title"]) or event["slug"]
        counter = 0

        outcome = self._attempt(write, event, exclude_id)
        while isinstance(outcome, ConflictRetry):
            resolved = resolver.resolve(base, start=counter + 1)
            if resolved is None:
                outcome = Exhausted(base, self.max_slug_attempts)
                break
            candidate, counter = resolved
            logger.info("Slug %r is taken, retrying as %r", outcome.slug, candidate)
            event = dict(event, slug=candidate)
            outcome = self._attempt(write, event, exclude_id)
            if isinstance(outcome, ConflictRetry):
                logger.warning("Lost race for slug %r, probing further", candidate)

        if isinstance(outcome, Exhausted):
            logger.error("Gave up finding a slug for %r after %d attempts", outcome.base_slug, outcome.attempts)
            raise SlugExhaustionError(outcome.base_slug, outcome.attempts)
        return outcome.document

    def _is_slug_conflict(self, exc: DuplicateKeyError, slug: str, exclude_id: Optional[ObjectId]) -> bool:
        details = exc.details or {}
        key = details.get("keyValue") or details.get("keyPattern")
        if key:
            return "slug" in key
        # Older servers and in-memory clients do not report the key.
        return self.slug_taken(slug, exclude_id)

    # Reads

    def slug_taken(self, slug: str, exclude_id: Optional[ObjectId] = None) -> bool:
        query: Dict[str, Any] = {"slug": slug}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        with store_errors("checking slug"):
            return self.collection.find_one(query, {"_id": 1}) is not None

    def find_by_slug(self, slug: str) -> Optional[Document]:
        """Exact match on the trimmed, lower-cased slug. None when absent."""
        normalized = (slug or "").strip().lower()
        if not normalized:
            return None
        with store_errors("loading event"):
            return self.collection.find_one({"slug": normalized})

    def find_by_id(self, event_id: Any) -> Optional[Document]:
        oid = to_object_id(event_id)
        if oid is None:
            return None
        with store_errors("loading event"):
            return self.collection.find_one({"_id": oid})

    def find_all(self, newest_first: bool = True) -> List[Document]:
        with store_errors("listing events"):
            return list(self.collection.find().sort(NEWEST_FIRST if newest_first else OLDEST_FIRST))

    def find_similar_to(self, slug: str) -> List[Document]:
        """Other events that share at least one tag with the event at ``slug``."""
        source = self.find_by_slug(slug)
        if source is None:
            return []
        query = {"_id": {"$ne": source["_id"]}, "tags": {"$in": source.get("tags", [])}}
        with store_errors("listing similar events"):
            return list(self.collection.find(query).sort(NEWEST_FIRST))

    def find_upcoming(self, today: Optional[date_type] = None, limit: Optional[int] = None) -> List[Document]:
        """Events on or after ``today`` (UTC date by default), soonest first."""
        today = today or utcnow().date()
        cursor = self.collection.find({"date": {"$gte": today.isoformat()}}).sort(
            [("date", ASCENDING), ("time", ASCENDING)])
        if limit:
            cursor = cursor.limit(limit)
        with store_errors("listing upcoming events"):
            return list(cursor)


class BookingStore:
    def __init__(self, db: Database):
        self.db = db
        self.collection = db[config.BOOKINGS_COLLECTION]
        self.events = db[config.EVENTS_COLLECTION]

    def create(self, event_id: Any, email: Any) -> Document:
        """Book ``email`` onto the event ``event_id``.

        Raises ValidationError for a malformed email and
        ReferentialIntegrityError when the event does not exist; nothing is
        written in either case.
        """
        email = normalize_email(email)
        oid = to_object_id(event_id)
        with store_errors("checking event"):
            exists = oid is not None and self.events.find_one({"_id": oid}, {"_id": 1}) is not None
        if not exists:
            raise ReferentialIntegrityError(f"Event {event_id} does not exist")

        booking = Booking(event_id=oid, email=email).model_dump(exclude_none=True)
        with store_errors("saving booking"):
            inserted_id = create_document(self.collection, booking)
            return self.collection.find_one({"_id": ObjectId(inserted_id)})

    def count_for_event(self, event_id: Any) -> int:
        oid = to_object_id(event_id)
        if oid is None:
            return 0
        with store_errors("counting bookings"):
            return self.collection.count_documents({"event_id": oid})
