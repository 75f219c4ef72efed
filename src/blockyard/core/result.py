"""Result type used where failures are returned to the caller instead of raised."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Kinds of failure produced while building or resolving blocks."""

    IO_UNAVAILABLE = "io_unavailable"
    UNSUPPORTED_FILE = "unsupported_file"
    SUBDIRECTORY_DISALLOWED = "subdirectory_disallowed"
    DEPENDENCY_RESOLUTION_FAILED = "dependency_resolution_failed"
    NO_REPOSITORY_CONFIGURED = "no_repository_configured"
    BLOCK_NOT_FOUND = "block_not_found"
    INVALID_SPECIFIER = "invalid_specifier"


class ResultError(Exception):
    """Raised when unwrapping the wrong side of a Result."""

    pass


@dataclass
class Failure:
    """The failure side of a Result."""

    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class Result(Generic[T]):
    """Either a value or a Failure.

    Build one with ``Result.ok(value)`` or ``Result.err(kind, message)`` and
    check ``is_ok()`` / ``is_err()`` before unwrapping.
    """

    value: Optional[T] = None
    failure: Optional[Failure] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def err(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(failure=Failure(kind, message))

    def is_ok(self) -> bool:
        return self.failure is None

    def is_err(self) -> bool:
        return self.failure is not None

    def unwrap(self) -> T:
        if self.failure is not None:
            raise ResultError(f"Called unwrap on a failed result: {self.failure}")
        return self.value  # type: ignore[return-value]

    def unwrap_err(self) -> Failure:
        if self.failure is None:
            raise ResultError("Called unwrap_err on a successful result")
        return self.failure
