"""Error taxonomy and the result type used at the alert CRUD boundary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pydantic import ValidationError

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    QUOTA_EXCEEDED = "quota_exceeded"
    ACCESS_DENIED = "access_denied"


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation whose failures are expected, not exceptional."""

    value: T | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> Result[T]:
        return cls(error=DomainError(kind, message))

    def unwrap(self) -> T:
        if self.error is not None:
            raise TradewatchError(f"{self.error.kind.value}: {self.error.message}")
        return self.value  # type: ignore[return-value]


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into 'field: reason' pairs."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"]) or "payload"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


class TradewatchError(Exception):
    """Base class for unexpected failures."""


class SourceFetchError(TradewatchError):
    """The external data provider could not be read."""


class RecordRejected(TradewatchError):
    """A single raw record cannot be turned into a trade."""


class CheckpointStoreError(TradewatchError):
    """Sync progress could not be read or written."""


class ConcurrentSyncError(TradewatchError):
    """A sync for this source type is already running."""

    def __init__(self, source_type: str) -> None:
        super().__init__(f"sync for {source_type!r} is already running")
        self.source_type = source_type
