"""
Derby Rounds - Optional Collaborators

External dependencies that may be missing at runtime (ledger, history
store) are passed around as ``Available(handle)`` or ``Unavailable(reason)``
so every call site handles both cases explicitly.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Available(Generic[T]):
    """A configured collaborator."""
    handle: T


@dataclass(frozen=True)
class Unavailable:
    """A collaborator that is not configured or could not be built."""
    reason: str


Capability = Union[Available[T], Unavailable]


def capability_of(handle: T | None, reason: str) -> "Capability[T]":
    """Wrap an optional handle, using ``reason`` when it is None."""
    if handle is None:
        return Unavailable(reason)
    return Available(handle)
