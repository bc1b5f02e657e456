"""Virtual time — timers, delayed invalidation and debounce.

Nothing here touches the wall clock. Time is a counter of elapsed
milliseconds that only moves when the session's elapse() asks it to, which
keeps timer-driven logic deterministic and instant to test.

Scheduled events sit in a heap ordered by (fire time, scheduling order).
advance() pops every event that falls inside the elapsed interval, moves the
clock to that event's time and fires it, so each event fires exactly once
regardless of how large the step is.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from typing import Callable

from rxharness._tracking import current_derivation, track
from rxharness.derived import Derived
from rxharness.errors import NegativeElapseError

logger = logging.getLogger("rxharness.clock")


def _check_delay(ms) -> None:
    if not math.isfinite(ms) or ms <= 0:
        raise ValueError(f"Delay must be a positive number of milliseconds, got {ms!r}")


class ClockEvent:
    """A callback scheduled at a point in virtual time."""

    __slots__ = ("time", "callback", "cancelled")

    def __init__(self, time: float, callback: Callable[[], None]) -> None:
        self.time = time
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        state = " cancelled" if self.cancelled else ""
        return f"ClockEvent(t={self.time}{state})"


class VirtualClock:
    """Monotonic, test-driven millisecond counter with an event queue."""

    def __init__(self) -> None:
        self._now: float = 0
        self._queue: list[tuple[float, int, ClockEvent]] = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> ClockEvent:
        """Run callback once, delay_ms from now."""
        _check_delay(delay_ms)
        event = ClockEvent(self._now + delay_ms, callback)
        heapq.heappush(self._queue, (event.time, next(self._seq), event))
        return event

    def next_fire_time(self) -> float | None:
        """Time of the earliest live event, or None when nothing is queued."""
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0][0] if self._queue else None

    def advance(self, ms: float, fire: Callable[[ClockEvent], None] | None = None) -> int:
        """Move forward by ms, firing every event due in (now, now + ms].

        fire(event) is called for each due event; by default it just runs the
        callback. Events scheduled while firing are honored if they also fall
        inside the interval. Returns the number of events fired. Raises
        NegativeElapseError for negative ms and ValueError for nan or infinity.
        """
        if ms < 0:
            raise NegativeElapseError(ms)
        if not math.isfinite(ms):
            raise ValueError(f"Cannot elapse a non-finite amount of time: {ms!r} ms")
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            at, _, event = heapq.heappop(self._queue)
            if event.cancelled:
                continue
            self._now = at
            logger.debug("Firing %r", event)
            if fire is None:
                event.callback()
            else:
                fire(event)
            fired += 1
        self._now = target
        return fired

    def clear(self) -> None:
        """Cancel everything still queued."""
        for _, _, event in self._queue:
            event.cancel()
        self._queue.clear()

    def __len__(self) -> int:
        return sum(1 for _, _, event in self._queue if not event.cancelled)

    def __repr__(self) -> str:
        return f"VirtualClock(now={self._now}, pending={len(self)})"


class Timer:
    """A periodic source. Its value is the virtual time of its last fire.

    Anything that reads a Timer is invalidated every interval_ms.
    """

    __slots__ = ("_id", "_anchor", "_interval", "_event", "_fires")

    def __init__(self, anchor, interval_ms: float, name: str | None = None) -> None:
        _check_delay(interval_ms)
        self._anchor = anchor
        self._id = anchor.new_id()
        self._interval = interval_ms
        self._fires = 0
        anchor.values[self._id] = anchor.clock.now
        anchor.observers[self._id] = set()
        anchor.register(self, name or f"timer({interval_ms}ms)")
        self._event = anchor.clock.schedule(interval_ms, self._fire)

    @property
    def name(self) -> str:
        return self._anchor.names[self._id]

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def fire_count(self) -> int:
        return self._fires

    @property
    def next_fire_time(self) -> float:
        return self._event.time

    def get(self) -> float:
        """Read the last fire time. If inside a derivation, registers the dependency."""
        self._anchor.check_open()
        track(self)
        return self._anchor.values[self._id]

    def _fire(self) -> None:
        clock = self._anchor.clock
        self._fires += 1
        self._anchor.values[self._id] = clock.now
        self._event = clock.schedule(self._interval, self._fire)
        self._anchor.tracker.invalidate(self)

    def _remove_observer(self, observer) -> None:
        self._anchor.observers[self._id].discard(observer)

    def __repr__(self) -> str:
        return f"Timer({self.name}, fires={self._fires})"


def invalidate_later(anchor, ms: float) -> ClockEvent:
    """Invalidate the current derivation once, ms from now.

    Must be called while a derived node or observer is evaluating. If the
    derivation is invalidated for another reason first, the event is dropped.
    """
    derivation = current_derivation.get()
    if derivation is None or derivation._anchor is not anchor:
        raise RuntimeError("invalidate_later() must be called from inside a reactive node or observer")

    def _expire() -> None:
        pending = anchor.scheduled.get(derivation._id)
        if pending is not None and event in pending:
            pending.remove(event)
        anchor.tracker.invalidate_node(derivation)

    event = anchor.clock.schedule(ms, _expire)
    anchor.scheduled.setdefault(derivation._id, []).append(event)
    return event


class Debounced(Derived):
    """A derived value that follows upstream only after a quiet period.

    Every upstream change (re)starts a delay_ms countdown. Until it runs out,
    readers keep seeing the last settled value; when it does, the debounced
    node turns dirty and re-reads upstream on the next read.
    """

    __slots__ = ("_delay", "_event")

    def __init__(self, anchor, upstream, delay_ms: float, name: str | None = None) -> None:
        _check_delay(delay_ms)
        self._delay = delay_ms
        self._event: ClockEvent | None = None
        fn = upstream.get if hasattr(upstream, "get") else upstream
        if name is None:
            label = anchor.name_of(upstream) if hasattr(upstream, "_id") else fn.__name__
            name = f"debounce({label})"
        super().__init__(anchor, fn, name)

    @property
    def settles_at(self) -> float | None:
        """Virtual time at which the pending change lands, if one is pending."""
        return self._event.time if self._event is not None else None

    def _invalidate(self) -> bool:
        if self._event is not None:
            self._event.cancel()
        self._event = self._anchor.clock.schedule(self._delay, self._settle)
        return False

    def _settle(self) -> None:
        self._event = None
        self._anchor.dirty_flags[self._id] = True
        self._anchor.tracker.invalidate(self)
