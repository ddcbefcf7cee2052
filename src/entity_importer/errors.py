"""Exception hierarchy for the entity importer."""

from __future__ import annotations

from typing import Any, Optional


class EntityImportError(Exception):
    """Base exception for all importer errors."""


class UnknownEntityKind(EntityImportError):
    """Raised when no metadata is registered for the requested entity kind."""

    def __init__(self, kind: Any) -> None:
        self.kind = kind
        super().__init__(f"Unknown entity kind: {kind!r}")


class SchemaDefinitionError(EntityImportError):
    """Raised when a model's import annotations are malformed."""


class MissingPrimaryKey(EntityImportError):
    """Raised when a batch record lacks the primary key its kind declares."""

    def __init__(self, kind: str, import_key: str, index: int) -> None:
        self.kind = kind
        self.import_key = import_key
        self.index = index
        super().__init__(
            f"Record {index} of {kind} batch has no value for primary key '{import_key}'"
        )


class CoercionFailure(EntityImportError):
    """Raised when a raw value cannot be converted to an attribute's native type."""

    def __init__(self, attribute: str, value: Any, reason: Optional[str] = None) -> None:
        self.attribute = attribute
        self.value = value
        message = f"Cannot coerce {value!r} for attribute '{attribute}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class DateFormatMismatch(CoercionFailure):
    """Raised when a date string does not match the expected pattern."""

    def __init__(self, attribute: str, value: Any, pattern: str) -> None:
        self.pattern = pattern
        super().__init__(attribute, value, f"does not match date format '{pattern}'")


class AllocationFailure(EntityImportError):
    """Raised when the session cannot create or fetch an instance."""


class RecordSourceError(EntityImportError):
    """Raised when raw records cannot be read from a file or URL."""


class ResourceNotFoundError(RecordSourceError):
    """Raised when a remote record source does not exist."""
