"""Dependency tracking engine — the heart of the harness.

Uses contextvars to track which nodes are read during a derivation's
evaluation, building the dependency graph automatically.

Batching: input changes inside a transaction mark dependents dirty right
away but defer observers until the outermost scope exits, so every observer
runs once per batch against a consistent snapshot.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rxharness.errors import ReentrantUpdateError

if TYPE_CHECKING:
    from rxharness._anchor import Anchor

logger = logging.getLogger("rxharness.tracking")

# The currently-evaluating derivation (Derived, Output or Observer).
# When set, any node read registers itself as a dependency.
current_derivation: contextvars.ContextVar = contextvars.ContextVar(
    "current_derivation", default=None
)


def track(node) -> None:
    """Register the current derivation as a downstream of node."""
    derivation = current_derivation.get()
    if derivation is not None and derivation._anchor is node._anchor:
        node._anchor.observers[node._id].add(derivation)
        derivation._dependencies.add(node)


def check_mutable(anchor: Anchor) -> None:
    """Refuse input changes while a pure derivation is evaluating.

    anchor.computing catches derivations that stepped outside tracking
    with untracked().
    """
    derivation = current_derivation.get()
    if derivation is not None and derivation._pure:
        name = derivation._anchor.name_of(derivation)
    elif anchor.computing:
        name = anchor.names[next(reversed(anchor.computing))]
    else:
        return
    raise ReentrantUpdateError(f"Inputs cannot change while {name!r} is being computed")


@contextmanager
def untracked():
    """Read nodes without registering them as dependencies."""
    token = current_derivation.set(None)
    try:
        yield
    finally:
        current_derivation.reset(token)


def _flush_order(observer) -> tuple[int, int]:
    return (-observer._priority, observer._id)


class Tracker:
    """Batch scope and observer queue for one session."""

    __slots__ = ("_anchor", "_batch_depth", "_pending", "_flushing")

    def __init__(self, anchor: Anchor) -> None:
        self._anchor = anchor
        # Batch depth counter. When > 0, observers are deferred.
        self._batch_depth = 0
        # Observers invalidated during a batch, awaiting flush.
        self._pending: dict[int, object] = {}
        self._flushing = False

    def begin_batch(self) -> None:
        """Enter a batching scope. Nested batches are supported."""
        self._batch_depth += 1

    def end_batch(self) -> None:
        """Exit a batching scope. When the outermost scope exits, flush observers."""
        self._batch_depth -= 1
        if self._batch_depth == 0:
            self.flush()

    @contextmanager
    def transaction(self):
        """Context manager for batching input changes.

        Usage:
            with tracker.transaction():
                x.set(1)
                y.set(2)
                # observers run here, after both are set
        """
        self.begin_batch()
        try:
            yield
        finally:
            self.end_batch()

    def invalidate(self, origin) -> None:
        """Propagate a change from origin to everything downstream of it.

        Each node is visited at most once per wave. A node's _invalidate()
        returns True when the wave should continue to its own observers.
        """
        observers = self._anchor.observers
        seen: set[int] = set()
        stack = list(observers.get(origin._id, ()))
        while stack:
            node = stack.pop()
            if node._id in seen:
                continue
            seen.add(node._id)
            if node._invalidate():
                stack.extend(observers.get(node._id, ()))
        if self._batch_depth == 0:
            self.flush()

    def invalidate_node(self, node) -> None:
        """Invalidate node itself, then everything downstream of it."""
        if node._invalidate():
            self.invalidate(node)
        elif self._batch_depth == 0:
            self.flush()

    def enqueue(self, observer) -> None:
        self._pending[observer._id] = observer

    def flush(self) -> None:
        """Run pending observers, unless a batch or a flush is already active."""
        if self._batch_depth > 0 or self._flushing:
            return
        self._flushing = True
        try:
            self._flush_pending()
        finally:
            self._flushing = False

    def _flush_pending(self) -> None:
        # One at a time: observers may enqueue others while running, and an
        # observer that raises leaves the rest queued for the next flush.
        ran = 0
        while self._pending:
            observer = min(self._pending.values(), key=_flush_order)
            del self._pending[observer._id]
            observer._run()
            ran += 1
        if ran:
            logger.debug("Flushed %d observer run(s)", ran)

    def discard(self, observer) -> None:
        self._pending.pop(observer._id, None)

    def clear(self) -> None:
        """Drop every queued observer."""
        self._pending.clear()

    def get_pending_count(self) -> int:
        """Number of observers waiting to run. Useful for testing."""
        return len(self._pending)
