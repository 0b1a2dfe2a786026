"""Error taxonomy for authorization and provisioning.

Only ``StorageConnectionError`` is fatal for a provisioning run. Validation
failures are fatal for the offending record, duplicate-key conflicts and
missing collaborators are recovered by the caller and reported.
"""

from typing import Any, Optional


class AccessGateError(Exception):
    """Base class for all accessgate errors."""


class StorageConnectionError(AccessGateError):
    """The store is unreachable or rejected the credentials at connect time."""


class ValidationError(AccessGateError, ValueError):
    """A record violates the closed vocabularies or misses a required field."""

    def __init__(self, message: str, *, record: Any = None, field: Optional[str] = None):
        super().__init__(message)
        self.record = record
        self.field = field


class UnknownResourceError(ValidationError):
    """A resource outside the closed ``Resource`` enumeration."""


class UnknownActionError(ValidationError):
    """An action outside the closed ``Action`` enumeration or its vocabulary."""


class DuplicateKeyConflict(AccessGateError):
    """An insert collided with a uniqueness constraint."""

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} already exists: {key}")
        self.entity = entity
        self.key = key


class MissingCollaborator(AccessGateError):
    """A required external record (e.g. a target principal) does not exist."""
