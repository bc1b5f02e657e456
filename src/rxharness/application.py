"""Application definitions and the builder scope handed to server logic.

An App pairs a server function with the names of the inputs it declares.
The server runs once per harness session as

    server(input, output, session, **args)

where `input` is the Inputs namespace, `output` the Outputs registry and
`session` a Scope for creating reactive nodes. Whatever it returns is kept
as the session's `returned` value.

Usage:
    @app("x", "y")
    def difference(input, output, session):
        @session.reactive
        def diff():
            return input.x - input.y

        @output.text("out")
        def _():
            return f"Difference: {diff.get()}"

        return diff
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from rxharness._tracking import untracked
from rxharness.clock import Debounced, Timer, invalidate_later
from rxharness.derived import Derived
from rxharness.observer import EventObserver, Observer

T = TypeVar("T")


class App:
    """A server function plus its declared inputs."""

    __slots__ = ("server", "inputs", "name")

    def __init__(
        self,
        server: Callable[..., object],
        inputs: Iterable[str] = (),
        name: str | None = None,
    ) -> None:
        self.server = server
        self.inputs = tuple(inputs)
        self.name = name or getattr(server, "__name__", "app")

    def __repr__(self) -> str:
        return f"App({self.name}, inputs={list(self.inputs)})"


def app(*inputs: str, name: str | None = None) -> Callable[[Callable[..., object]], App]:
    """Decorator: turn a server function into an App declaring inputs."""

    def decorator(server: Callable[..., object]) -> App:
        return App(server, inputs, name)

    return decorator


class Scope:
    """Factory for reactive nodes, bound to one session's graph."""

    def __init__(self, anchor) -> None:
        self._anchor = anchor

    @property
    def now(self) -> float:
        """Current virtual time in milliseconds. Not tracked."""
        return self._anchor.clock.now

    def reactive(self, fn: Callable[[], T] | None = None, *, name: str | None = None):
        """Decorator/factory to create a Derived from a function.

        Usage:
            @session.reactive
            def doubled():
                return input.count * 2
        """
        if fn is None:
            return lambda f: Derived(self._anchor, f, name)
        return Derived(self._anchor, fn, name)

    def observe(
        self,
        fn: Callable[[], None] | None = None,
        *,
        name: str | None = None,
        priority: int = 0,
    ):
        """Decorator: run fn at every flush after something it read changed.

        Higher priority observers run first; ties run in creation order.
        """
        if fn is None:
            return lambda f: Observer(self._anchor, f, name, priority)
        return Observer(self._anchor, fn, name, priority)

    def observe_event(
        self,
        event_fn: Callable[[], T],
        handler: Callable[[T], None] | None = None,
        *,
        name: str | None = None,
        priority: int = 0,
        fire_immediately: bool = False,
    ):
        """Call handler(value) whenever event_fn's result changes.

        The first evaluation only records the value unless fire_immediately.
        Without handler, returns a decorator:

            @session.observe_event(lambda: input.go)
            def _(clicks):
                ...
        """

        def register(h: Callable[[T], None]) -> EventObserver:
            return EventObserver(
                self._anchor,
                event_fn,
                h,
                name=name,
                priority=priority,
                fire_immediately=fire_immediately,
            )

        if handler is None:
            return register
        return register(handler)

    def timer(self, interval_ms: float, name: str | None = None) -> Timer:
        """A Timer that invalidates its readers every interval_ms."""
        return Timer(self._anchor, interval_ms, name)

    def invalidate_later(self, ms: float) -> None:
        """Invalidate the calling node once, ms from now."""
        invalidate_later(self._anchor, ms)

    def debounce(self, node, ms: float, name: str | None = None) -> Debounced:
        """A node that follows node only after ms without changes."""
        return Debounced(self._anchor, node, ms, name)

    def isolate(self, fn: Callable[[], T]) -> T:
        """Evaluate fn without recording what it reads as dependencies."""
        with untracked():
            return fn()
