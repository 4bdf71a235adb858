"""
Success/failure result values and the error taxonomy shared by every operation.

Public operations return a ``Result`` instead of raising.  Callers check
``is_ok`` (or ``isinstance(result, Success)``) before touching ``value``.
The only exception raised across the public boundary is
:class:`PreconditionError`, from client construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class ErrorCategory:
    """
    Error category constants for failed operations.

    The remote service defines no structured error codes, so categories only
    describe *where* a failure was detected; the message carries the detail.
    """

    PRECONDITION = "precondition"      # bad arguments or credential state, no call made
    TRANSPORT = "transport"            # the HTTP call itself failed
    REMOTE_SERVICE = "remote_service"  # well-formed response carrying an "error" field
    DECODE = "decode"                  # not JSON, or expected field path missing
    AUTH = "auth"                      # authorization token could not be derived
    IO = "io"                          # local file write failed

    ALL: frozenset[str] = frozenset(
        {PRECONDITION, TRANSPORT, REMOTE_SERVICE, DECODE, AUTH, IO}
    )


@dataclass(frozen=True)
class ErrorInfo:
    """Category plus human-readable message for a failed operation."""

    category: str
    message: str

    def __str__(self) -> str:
        return f"[{self.category}] {self.message}"


class PreconditionError(ValueError):
    """Raised when a client is constructed with an unusable session cookie."""


# ---------------------------------------------------------------------------
# Result variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Success(Generic[T]):
    """A successful operation carrying its value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False


@dataclass(frozen=True)
class Failure:
    """A failed operation carrying its error."""

    error: ErrorInfo

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True


Result = Union[Success[T], Failure]


def ok(value: Any) -> Success:
    """Wrap ``value`` in a :class:`Success`."""
    return Success(value)


def err(category: str, message: str) -> Failure:
    """
    Build a :class:`Failure` for the given category.

    Raises:
        ValueError: If ``category`` is not one of :class:`ErrorCategory`.
    """
    if category not in ErrorCategory.ALL:
        raise ValueError(f"Unknown error category '{category}'.")
    return Failure(ErrorInfo(category=category, message=message))
