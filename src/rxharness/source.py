"""Source nodes — settable inputs that track their readers.

When a Source is read inside a derivation, the dependency is registered
automatically. When it changes, everything downstream is invalidated.

Sources start out UNSET. There is no live UI to supply defaults, so reading
an unset source raises UnresolvedInputError instead of inventing a value.

All state lives in the session's anchor; instances are thin handles.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from rxharness._tracking import check_mutable, track
from rxharness.errors import UnresolvedInputError

T = TypeVar("T")


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


class Source(Generic[T]):
    """A single settable value with automatic dependency tracking."""

    __slots__ = ("_id", "_anchor")

    def __init__(self, anchor, name: str) -> None:
        self._anchor = anchor
        self._id = anchor.new_id()
        anchor.values[self._id] = UNSET
        anchor.observers[self._id] = set()
        anchor.register(self, name)

    @property
    def name(self) -> str:
        return self._anchor.names[self._id]

    @property
    def is_set(self) -> bool:
        return self._anchor.values[self._id] is not UNSET

    def get(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        self._anchor.check_open()
        track(self)
        value = self._anchor.values[self._id]
        if value is UNSET:
            raise UnresolvedInputError(self.name)
        return value

    def peek(self) -> T | _Unset:
        """Read the raw value (possibly UNSET) without tracking."""
        return self._anchor.values[self._id]

    def set(self, value: T) -> None:
        """Write a new value and invalidate dependents if it changed."""
        self._anchor.check_open()
        check_mutable(self._anchor)
        old = self._anchor.values[self._id]
        if old is not value and (old is UNSET or old != value):
            self._anchor.values[self._id] = value
            self._anchor.tracker.invalidate(self)

    def _remove_observer(self, observer) -> None:
        """Remove an observer. Called during dependency cleanup."""
        self._anchor.observers[self._id].discard(observer)

    def __repr__(self) -> str:
        return f"Source({self.name}={self._anchor.values.get(self._id, UNSET)!r})"
