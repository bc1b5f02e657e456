"""Observers — side effects triggered by reactive state changes.

Unlike Derived (which is lazy and only evaluates on read), an Observer
eagerly re-runs whenever its tracked dependencies change. Runs are deferred
to the end of the current batch, so an observer sees every input of a
set_inputs() call at once and runs once per batch.

Two flavors:
- Observer(fn): re-runs fn whenever anything it read changes.
- EventObserver(event_fn, handler): tracks event_fn and calls handler with
  the new value only when event_fn's result changes.

A plain Observer never runs during construction; its first run happens at
the first flush (the first set_inputs(), elapse() or flush() call).
"""

from __future__ import annotations

from typing import Callable, TypeVar

from rxharness._tracking import current_derivation, untracked
from rxharness.errors import UnresolvedInputError

T = TypeVar("T")

_NO_VALUE = object()
_NOT_YET = object()


class Observer:
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_id", "_anchor", "_priority")

    _pure = False

    def __init__(
        self,
        anchor,
        fn: Callable[[], None],
        name: str | None = None,
        priority: int = 0,
    ) -> None:
        self._anchor = anchor
        self._id = anchor.new_id()
        self._priority = priority
        anchor.derivation_fns[self._id] = fn
        anchor.dependencies[self._id] = set()
        anchor.disposed[self._id] = False
        anchor.register(self, name or getattr(fn, "__name__", "observer"))
        anchor.tracker.enqueue(self)

    @property
    def name(self) -> str:
        return self._anchor.names[self._id]

    @property
    def _fn(self) -> Callable:
        return self._anchor.derivation_fns[self._id]

    @property
    def _dependencies(self) -> set:
        return self._anchor.dependencies[self._id]

    def _invalidate(self) -> bool:
        if not self._anchor.disposed[self._id]:
            for event in self._anchor.scheduled.pop(self._id, ()):
                event.cancel()
            self._anchor.tracker.enqueue(self)
        return False

    def _run(self) -> None:
        """Re-evaluate the observer function, re-tracking dependencies."""
        if self._anchor.disposed.get(self._id, True):
            return

        for dep in self._anchor.dependencies[self._id]:
            dep._remove_observer(self)
        self._anchor.dependencies[self._id].clear()

        token = current_derivation.set(self)
        try:
            self._evaluate()
        finally:
            current_derivation.reset(token)

    def _evaluate(self) -> None:
        self._fn()

    def dispose(self) -> None:
        """Stop this observer. Disconnects from all dependencies."""
        self._anchor.disposed[self._id] = True
        self._anchor.tracker.discard(self)
        for dep in self._anchor.dependencies[self._id]:
            dep._remove_observer(self)
        self._anchor.dependencies[self._id].clear()

    def __repr__(self) -> str:
        state = "disposed" if self._anchor.disposed.get(self._id, True) else "active"
        return f"{type(self).__name__}({self.name}, {state})"


class EventObserver(Observer):
    """Internal: observe_event(event_fn, handler) implementation.

    Tracks event_fn's dependencies. When they change, re-runs event_fn.
    If the result differs from last time, calls handler with the new value.
    The handler runs untracked, so what it reads does not retrigger it.

    event_fn is evaluated once at construction to establish dependencies.
    An event whose input is still unset has not happened yet: the unset
    input is tracked, and setting it later counts as a change. On any later
    run an unset input is an error, as for a plain Observer.
    """

    __slots__ = ("_handler", "_last_value", "_fire_immediately")

    def __init__(
        self,
        anchor,
        event_fn: Callable[[], T],
        handler: Callable[[T], None],
        *,
        name: str | None = None,
        priority: int = 0,
        fire_immediately: bool = False,
    ) -> None:
        self._handler = handler
        self._last_value = _NO_VALUE
        self._fire_immediately = fire_immediately
        super().__init__(
            anchor,
            event_fn,
            name or getattr(handler, "__name__", "event_observer"),
            priority,
        )
        anchor.tracker.discard(self)
        self._run()

    def _evaluate(self) -> None:
        try:
            new_value = self._fn()
        except UnresolvedInputError:
            # Only the construction-time evaluation may find its event unset.
            if self._last_value is not _NO_VALUE:
                raise
            self._last_value = _NOT_YET
            return
        first = self._last_value is _NO_VALUE
        changed = first or new_value != self._last_value
        self._last_value = new_value
        if changed and (not first or self._fire_immediately):
            with untracked():
                self._handler(new_value)
