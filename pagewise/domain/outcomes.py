"""Tagged outcomes for external provider calls.

Every call that crosses a network boundary (catalog, embeddings, text
generation) returns one of three shapes instead of raising:

  Success(value)            the call worked
  Degraded(value, reason)   a usable fallback value was produced
  Failure(reason, error)    nothing usable came back

The orchestration pipeline branches on these explicitly, so every degrade
path is a visible ``if`` rather than an ``except`` somewhere downstream.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Degraded(Generic[T]):
    value: T
    reason: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    reason: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Success[T], Degraded[T], Failure]


def value_or(outcome: Outcome, default):
    """Return the outcome's value, or *default* when it is a Failure."""
    if isinstance(outcome, Failure):
        return default
    return outcome.value
