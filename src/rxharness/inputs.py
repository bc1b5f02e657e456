"""Inputs — the named Source nodes an application declares.

Server logic reads inputs by attribute or key (`input.x`, `input["x"]`);
reads are tracked like any other Source read. update() applies several
values as one batch: every name is validated before anything changes, and
observers run once after all values are in place.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping

from rxharness._tracking import check_mutable
from rxharness.errors import UnknownInputError
from rxharness.source import UNSET, Source


class Inputs:
    """Key-based Source container with atomic batched updates."""

    def __init__(self, anchor, names: Iterable[str]) -> None:
        self._anchor = anchor
        self._sources: dict[str, Source] = {}
        for name in names:
            if name in self._sources:
                raise ValueError(f"Input {name!r} declared twice")
            if name in _RESERVED:
                raise ValueError(f"Input name {name!r} is reserved; it clashes with Inputs.{name}")
            self._sources[name] = Source(anchor, name)

    def source(self, name: str) -> Source:
        """The Source node behind name."""
        try:
            return self._sources[name]
        except KeyError:
            raise UnknownInputError(name, self._sources) from None

    def __getitem__(self, name: str) -> object:
        return self.source(name).get()

    def __getattr__(self, name: str) -> object:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.source(name).get()

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._sources)

    def is_set(self, name: str) -> bool:
        return self.source(name).is_set

    def update(self, values: Mapping[str, object]) -> None:
        """Set several inputs as one change batch."""
        for name in values:
            if name not in self._sources:
                raise UnknownInputError(name, self._sources)
        check_mutable(self._anchor)
        with self._anchor.tracker.transaction():
            for name, value in values.items():
                self._sources[name].set(value)

    def snapshot(self) -> dict[str, object]:
        """Current raw values, UNSET included, without tracking."""
        return {name: source.peek() for name, source in self._sources.items()}

    def __repr__(self) -> str:
        shown = ", ".join(
            f"{name}={'<unset>' if value is UNSET else repr(value)}"
            for name, value in self.snapshot().items()
        )
        return f"Inputs({shown})"


# Attributes of Inputs itself. An input with one of these names would be
# shadowed on attribute access.
_RESERVED = frozenset(
    [name for name in dir(Inputs) if not name.startswith("__")] + ["_anchor", "_sources"]
)
