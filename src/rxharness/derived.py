"""Derived values — lazily computed state with automatic dependency tracking.

A Derived wraps a function. When evaluated, it tracks which nodes the
function reads and caches the result. When any dependency changes, the
cached value is invalidated. On next read, it re-evaluates.

Derived values are lazy: they only recompute when read, so reading twice
between changes evaluates the function once.

An Output is a Derived whose result is also rendered to a string. Outputs
are sinks: other nodes may not read them.

All state lives in the session's anchor; instances are thin handles.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from rxharness._tracking import current_derivation, track
from rxharness.errors import GraphCycleError

T = TypeVar("T")

_UNCOMPUTED = object()


class Derived(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "_anchor")

    # Pure derivations may not change inputs while evaluating.
    _pure = True

    def __init__(self, anchor, fn: Callable[[], T], name: str | None = None) -> None:
        self._anchor = anchor
        self._id = anchor.new_id()
        anchor.derivation_fns[self._id] = fn
        anchor.cached_values[self._id] = _UNCOMPUTED
        anchor.dirty_flags[self._id] = True
        anchor.dependencies[self._id] = set()
        anchor.observers[self._id] = set()
        anchor.register(self, name or getattr(fn, "__name__", "derived"))

    @property
    def name(self) -> str:
        return self._anchor.names[self._id]

    @property
    def _fn(self) -> Callable[[], T]:
        return self._anchor.derivation_fns[self._id]

    @property
    def _dependencies(self) -> set:
        return self._anchor.dependencies[self._id]

    @property
    def is_dirty(self) -> bool:
        return self._anchor.dirty_flags[self._id]

    def get(self) -> T:
        """Read the value. Recomputes if dirty."""
        self._anchor.check_open()
        track(self)
        if self._anchor.dirty_flags[self._id]:
            self._recompute()
        return self._anchor.cached_values[self._id]

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        anchor = self._anchor
        if self._id in anchor.computing:
            stack = list(anchor.computing)
            loop = stack[stack.index(self._id):] + [self._id]
            raise GraphCycleError([anchor.names[i] for i in loop])

        for dep in anchor.dependencies[self._id]:
            dep._remove_observer(self)
        anchor.dependencies[self._id].clear()

        anchor.computing[self._id] = None
        token = current_derivation.set(self)
        try:
            value = self._fn()
        finally:
            current_derivation.reset(token)
            anchor.computing.pop(self._id, None)

        self._store(value)
        anchor.dirty_flags[self._id] = False

    def _store(self, value: T) -> None:
        self._anchor.cached_values[self._id] = value

    def _invalidate(self) -> bool:
        """Called by the tracker when an upstream node changed.

        Marks dirty and keeps the wave going. Recomputation waits for the
        next get().
        """
        self._anchor.dirty_flags[self._id] = True
        for event in self._anchor.scheduled.pop(self._id, ()):
            event.cancel()
        return True

    def _remove_observer(self, observer) -> None:
        self._anchor.observers[self._id].discard(observer)

    def __repr__(self) -> str:
        if self._anchor.closed:
            return f"{type(self).__name__}(closed)"
        dirty = self._anchor.dirty_flags[self._id]
        val = self._anchor.cached_values[self._id]
        state = "dirty" if dirty else f"cached={val!r}"
        return f"{type(self).__name__}({self.name}, {state})"


class Output(Derived[T]):
    """An output sink: a derived value plus its rendered string form."""

    __slots__ = ("_renderer",)

    def __init__(
        self,
        anchor,
        fn: Callable[[], T],
        name: str,
        renderer: Callable[[T], str] = str,
    ) -> None:
        self._renderer = renderer
        super().__init__(anchor, fn, name)

    def get(self) -> T:
        """Read the raw value. Outputs cannot be dependencies of other nodes."""
        if current_derivation.get() is not None:
            raise TypeError(f"Output {self.name!r} is a sink and cannot be read by other nodes")
        return super().get()

    def render(self) -> str:
        """Return the rendered artifact, recomputing first if dirty."""
        self.get()
        return self._anchor.rendered[self._id]

    def _store(self, value: T) -> None:
        self._anchor.rendered[self._id] = self._renderer(value)
        self._anchor.cached_values[self._id] = value

    def _invalidate(self) -> bool:
        super()._invalidate()
        return False
