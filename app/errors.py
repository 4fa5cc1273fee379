from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class NoteShareError(Exception):
    """Base class for failures reported by the gateways and workflows."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(NoteShareError):
    """Missing required field or rejected file, caught before any remote call."""

    status_code = 400


class NotFound(NoteShareError):
    status_code = 404


class RecordError(NoteShareError):
    """A call against the record store failed (network, permission, ...)."""

    status_code = 502


class StorageError(NoteShareError):
    """A call against the object store failed (network, permission, quota)."""

    status_code = 502


class PartialFailure(NoteShareError):
    """A secondary side effect failed after the primary operation succeeded."""

    status_code = 500


class ConfigurationError(NoteShareError):
    status_code = 500


class Forbidden(NoteShareError):
    status_code = 403


@dataclass(frozen=True)
class DatabaseResult(Generic[T]):
    """Either a value or a failure, never both."""

    data: Optional[T] = None
    error: Optional[NoteShareError] = None

    def __post_init__(self):
        if self.data is not None and self.error is not None:
            raise ValueError("DatabaseResult cannot carry both data and error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "DatabaseResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: NoteShareError) -> "DatabaseResult[T]":
        return cls(error=error)
