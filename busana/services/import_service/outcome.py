"""Result type for best-effort steps that must never fail an import."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Degraded:
    """The step could not complete; ``reason`` says why."""

    reason: str


Outcome = Union[Ok[T], Degraded]
