"""Error taxonomy and the result type used by the services.

Two kinds of failure are kept apart:

* ``DomainError`` subclasses describe expected conditions ("word already
  exists", "not enough words for a quiz"). Services return them inside a
  :class:`Result` so callers handle them as ordinary outcomes.
* ``InfrastructureError`` subclasses describe faults (service unreachable,
  malformed payload, lock timeout). They are raised.
"""
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class DomainError(Exception):
    """Expected condition reported to the user."""


class EmptyWordError(DomainError):
    """The word cell is empty or whitespace only."""

    def __init__(self, row: int):
        super().__init__(f"Row {row} has no word to process")
        self.row = row


class DuplicateWordError(DomainError):
    """The word already exists in another row."""

    def __init__(self, word: str, conflicting_row: int):
        super().__init__(f"'{word}' already exists in row {conflicting_row}")
        self.word = word
        self.conflicting_row = conflicting_row


class InsufficientPoolError(DomainError):
    """Not enough eligible rows to run."""

    def __init__(self, available: int, required: int):
        super().__init__(
            f"Need at least {required} eligible words, only {available} available"
        )
        self.available = available
        self.required = required


class InvalidFeedbackError(DomainError, ValueError):
    """Feedback is neither a known tier nor a positive day count."""

    def __init__(self, feedback: Any):
        super().__init__(f"Invalid review feedback: {feedback!r}")
        self.feedback = feedback


class InfrastructureError(Exception):
    """Fault in an external collaborator."""


class EnrichmentServiceError(InfrastructureError):
    """The enrichment service could not be reached or returned an error status."""


class ParseError(EnrichmentServiceError):
    """The enrichment service answered with a payload that cannot be parsed."""


class LockTimeoutError(InfrastructureError):
    """The edit lock could not be acquired in time."""


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation that may end in a domain error."""
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value
