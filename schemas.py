"""
Database Schemas for the DevEvent API

Each Pydantic model describes the documents of one MongoDB collection:
- Event ("events")
- Booking ("bookings")

Validation runs through these models explicitly (``validate_event``) before
anything is written, so it never depends on the storage engine.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Type

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator

from errors import ValidationError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def slugify(title: str) -> str:
    """Lower-case ``title`` and collapse every run of non-alphanumerics into one hyphen.

    >>> slugify("  React Conf: 2026! ")
    'react-conf-2026'

    A title without any ASCII letters or digits gives an empty string.
    """
    return _NON_ALNUM.sub("-", title.lower().strip()).strip("-")


def normalize_date(value: str) -> str:
    """Validate a ``YYYY-MM-DD`` calendar date and return it in canonical form."""
    match = _DATE_RE.match(value.strip())
    if not match:
        raise ValueError("Invalid date format. Expected YYYY-MM-DD.")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        raise ValueError("Invalid date. %s is not a calendar date." % value.strip())


def normalize_time(value: str) -> str:
    """Validate a 24h ``HH:MM`` time and return it zero padded."""
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValueError("Invalid time. Expected HH:MM (24h).")
    return "%02d:%02d" % (int(match.group(1)), int(match.group(2)))


def _non_empty(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Field is required and cannot be empty.")
    return value


def _non_empty_items(value: List[str]) -> List[str]:
    items = [item.strip() for item in value]
    if not items:
        raise ValueError("Must be a non-empty list of non-empty strings.")
    if any(not item for item in items):
        raise ValueError("Must not contain empty entries.")
    return items


class EventDetails(BaseModel):
    """
    The fields an organizer submits for an event, everything except the image.
    """
    title: str = Field(..., description="Display title")
    description: str = Field(..., description="Short description")
    overview: str = Field(..., description="Long form overview")
    venue: str = Field(..., description="Venue name")
    location: str = Field(..., description="City / country")
    date: str = Field(..., description="Calendar date, YYYY-MM-DD")
    time: str = Field(..., description="Start time, HH:MM (24h)")
    mode: str = Field(..., description="In-Person, Virtual or Hybrid (free text)")
    audience: str = Field(..., description="Who the event is for")
    agenda: List[str] = Field(..., description="Ordered agenda items")
    organizer: str = Field(..., description="Organizing team")
    tags: List[str] = Field(..., description="Topic tags")

    @field_validator("title", "description", "overview", "venue", "location",
                     "mode", "audience", "organizer")
    @classmethod
    def check_required_text(cls, value: str) -> str:
        return _non_empty(value)

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return normalize_date(value)

    @field_validator("time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return normalize_time(value)

    @field_validator("agenda", "tags")
    @classmethod
    def check_lists(cls, value: List[str]) -> List[str]:
        return _non_empty_items(value)


class Event(EventDetails):
    """
    A persisted event.
    Collection name: "events" (unique index on slug)
    """
    image: str = Field(..., description="Public image URL")
    slug: Optional[str] = Field(None, description="URL identifier, derived from the title")

    @field_validator("image")
    @classmethod
    def check_image(cls, value: str) -> str:
        return _non_empty(value)

    @field_validator("slug")
    @classmethod
    def check_slug(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return slugify(value) or None


class Booking(BaseModel):
    """
    A request to attend an event.
    Collection name: "bookings" (index on event_id)
    """
    event_id: Any = Field(..., description="ObjectId of the booked event")
    email: EmailStr = Field(..., description="Attendee email, trimmed and lower-cased")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Request bodies

class BookingRequest(BaseModel):
    event_id: str
    email: str


class EventUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    overview: Optional[str] = None
    image: Optional[str] = None
    venue: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    mode: Optional[str] = None
    audience: Optional[str] = None
    agenda: Optional[List[str]] = None
    organizer: Optional[str] = None
    tags: Optional[List[str]] = None


def _field_errors(exc: pydantic.ValidationError) -> Dict[str, str]:
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


def validate_event(record: Mapping[str, Any], model: Type[EventDetails] = Event) -> Dict[str, Any]:
    """Validate and normalize a candidate event record.

    Returns a plain dict with every field of ``model``: strings trimmed, date as
    ``YYYY-MM-DD``, time as zero-padded ``HH:MM``. Keys outside the model are
    dropped. Raises ``errors.ValidationError`` with per-field messages.
    """
    try:
        event = model.model_validate(dict(record))
    except pydantic.ValidationError as exc:
        errors = _field_errors(exc)
        raise ValidationError("Invalid event: " + ", ".join(sorted(errors)), errors)
    return event.model_dump()


_email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: Any) -> str:
    """Check that ``email`` is a valid address and return it trimmed and lower-cased."""
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required", {"email": "Email is required and cannot be empty."})
    try:
        email = _email_adapter.validate_python(email.strip())
    except pydantic.ValidationError as exc:
        message = _field_errors(exc).get("__root__", "Invalid email.")
        raise ValidationError("Email format is invalid", {"email": message})
    return email.lower()
