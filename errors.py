"""
Error taxonomy for the DevEvent API.

Validation and referential errors are raised before anything is written and
carry enough detail for the client to fix its input. Upstream errors never
expose internal detail to the client; it is logged where they are raised.
"""
from typing import Dict, Optional


class EventAppError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EventAppError):
    """Malformed input. ``errors`` maps field names to messages."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class ReferentialIntegrityError(EventAppError):
    """A booking references an event that does not exist."""

    status_code = 404


class ConflictError(EventAppError):
    """A unique constraint was violated and could not be resolved."""

    status_code = 409


class SlugExhaustionError(ConflictError):
    """No free slug was found within the configured number of attempts."""

    status_code = 500

    def __init__(self, base_slug: str, attempts: int):
        super().__init__(f'No free slug for "{base_slug}" after {attempts} attempts')
        self.base_slug = base_slug
        self.attempts = attempts


class UpstreamError(EventAppError):
    """The document store or the image host failed or is unreachable."""

    status_code = 500
