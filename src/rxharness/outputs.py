"""Outputs — named output sinks and the renderers that format them.

Usage:
    @output.text("out")
    def _():
        return f"Result: {xyz.get()}"
"""

from __future__ import annotations

import pprint
from typing import Callable, Iterator

from rxharness.derived import Output
from rxharness.errors import UnknownNodeError


def render_text(value: object) -> str:
    """str() of the value; None renders as the empty string."""
    return "" if value is None else str(value)


def render_print(value: object) -> str:
    """What printing the value at a console would show."""
    return value if isinstance(value, str) else pprint.pformat(value)


class Outputs:
    """Registry of the output sinks a server function defines."""

    def __init__(self, anchor) -> None:
        self._anchor = anchor
        self._outputs: dict[str, Output] = {}

    def render(self, name=None, formatter: Callable[[object], str] = render_text):
        """Decorator: register fn as an output rendered with formatter.

        Works bare (`@output.render`) or called (`@output.render("name")`);
        the output name defaults to the function name.
        """
        if callable(name):
            return self.render(None, formatter)(name)

        def decorator(fn: Callable[[], object]) -> Output:
            key = name or fn.__name__
            if key in self._outputs:
                raise ValueError(f"Output {key!r} defined twice")
            sink = Output(self._anchor, fn, key, formatter)
            self._outputs[key] = sink
            return sink

        return decorator

    def text(self, name=None):
        return self.render(name, render_text)

    def print(self, name=None):
        return self.render(name, render_print)

    def __getitem__(self, name: str) -> Output:
        try:
            return self._outputs[name]
        except KeyError:
            raise UnknownNodeError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._outputs

    def __iter__(self) -> Iterator[str]:
        return iter(self._outputs)

    def __len__(self) -> int:
        return len(self._outputs)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._outputs)
