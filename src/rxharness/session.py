"""Harness sessions — run an App's server logic with no browser attached.

A session owns everything it builds: the node state, the observer queue
and the virtual clock. Nothing is shared between sessions, so every test
gets a fresh, isolated graph.

Usage:
    with simulate(calculator) as session:
        session.set_inputs(x=1, y=1, z=1)
        assert session.read("xy") == 0
        assert session.read_output("out") == "Result: 0"
        session.elapse(300)
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from rxharness._anchor import Anchor
from rxharness._tracking import Tracker
from rxharness.application import App, Scope
from rxharness.clock import ClockEvent, VirtualClock
from rxharness.derived import Derived, Output
from rxharness.errors import HarnessError, UnknownNodeError
from rxharness.graph import check_acyclic
from rxharness.inputs import Inputs
from rxharness.observer import Observer
from rxharness.outputs import Outputs

logger = logging.getLogger("rxharness.session")


class HarnessSession:
    """One isolated instance of an App's reactive graph."""

    def __init__(
        self,
        app: App | Callable[..., object],
        *,
        args: Mapping[str, object] | None = None,
        check_cycles: bool = True,
    ) -> None:
        if not isinstance(app, App):
            app = App(app)
        self.app = app

        anchor = Anchor()
        anchor.tracker = Tracker(anchor)
        anchor.clock = VirtualClock()
        self._anchor = anchor

        self.input = Inputs(anchor, app.inputs)
        self.output = Outputs(anchor)
        self.returned: object = None
        try:
            self.returned = app.server(self.input, self.output, Scope(anchor), **(args or {}))
            if check_cycles:
                check_acyclic(anchor)
        except Exception:
            self.close()
            raise

        logger.info(
            "Built session for %s: %d inputs, %d nodes, %d outputs",
            app.name,
            len(self.input),
            len(anchor.nodes) - len(self.input),
            len(self.output),
        )

    # ─── State ───────────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._anchor.closed

    @property
    def now(self) -> float:
        """Virtual time in milliseconds since the session was built."""
        self._anchor.check_open()
        return self._anchor.clock.now

    def get_pending_count(self) -> int:
        """Observers queued for the next flush."""
        return self._anchor.tracker.get_pending_count()

    # ─── Driving the graph ───────────────────────────────────────────────

    def set_inputs(self, values: Mapping[str, object] | None = None, /, **kwargs: object) -> None:
        """Set one or more inputs as a single change batch.

        Raises UnknownInputError, before changing anything, if any name is
        not a declared input.
        """
        self._anchor.check_open()
        merged = dict(values or {}, **kwargs)
        logger.debug("set_inputs(%s)", ", ".join(sorted(merged)))
        self.input.update(merged)

    def elapse(self, ms: float) -> int:
        """Advance virtual time by ms, firing every timer due on the way.

        Each fire event runs as its own batch followed by an observer flush.
        Returns the number of events fired. Raises NegativeElapseError if ms
        is negative.
        """
        self._anchor.check_open()
        fired = self._anchor.clock.advance(ms, self._fire)
        logger.debug("Elapsed %sms to t=%s, %d event(s) fired", ms, self._anchor.clock.now, fired)
        return fired

    def _fire(self, event: ClockEvent) -> None:
        with self._anchor.tracker.transaction():
            event.callback()

    def flush(self) -> None:
        """Run observers still waiting from construction or a failed flush."""
        self._anchor.check_open()
        self._anchor.tracker.flush()

    # ─── Observing the graph ─────────────────────────────────────────────

    def read(self, ref):
        """Current value of a node (or node name), recomputing as needed.

        Raises UnresolvedInputError if a required input is still unset.
        """
        return self._resolve(ref).get()

    def read_output(self, ref) -> str:
        """Rendered artifact of an output (or output name)."""
        self._anchor.check_open()
        if isinstance(ref, str):
            return self.output[ref].render()
        node = self._resolve(ref)
        if not isinstance(node, Output):
            raise TypeError(f"{node!r} is not an output")
        return node.render()

    def is_dirty(self, ref) -> bool:
        """Whether a derived node's cached value is stale."""
        node = self._resolve(ref)
        if not isinstance(node, Derived):
            raise TypeError(f"{node!r} has no cached value")
        return node.is_dirty

    def _resolve(self, ref):
        self._anchor.check_open()
        if isinstance(ref, str):
            matches = [
                node
                for node_id, node in self._anchor.nodes.items()
                if self._anchor.names[node_id] == ref and not isinstance(node, Observer)
            ]
            if not matches:
                raise UnknownNodeError(ref)
            if len(matches) > 1:
                raise HarnessError(f"Name {ref!r} is ambiguous; pass the node itself")
            return matches[0]
        if getattr(ref, "_anchor", None) is not self._anchor:
            raise HarnessError(f"{ref!r} does not belong to this session")
        if isinstance(ref, Observer):
            raise TypeError(f"{ref!r} is an observer and has no value")
        return ref

    # ─── Teardown ────────────────────────────────────────────────────────

    def close(self) -> None:
        """Release the graph and clock. Idempotent."""
        if self._anchor.closed:
            return
        self._anchor.clock.clear()
        self._anchor.tracker.clear()
        self._anchor.clear()
        logger.info("Closed session for %s", self.app.name)

    def __enter__(self) -> HarnessSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"t={self._anchor.clock.now}"
        return f"HarnessSession({self.app.name}, {state})"


def simulate(app: App | Callable[..., object], /, **args: object) -> HarnessSession:
    """Build a HarnessSession, passing args through to the server function."""
    return HarnessSession(app, args=args)
