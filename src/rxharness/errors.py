"""Typed failures raised by the harness.

Every failure reaches the test as one of these. Exceptions raised by the
reactive functions under test are not wrapped; they propagate unchanged.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all harness errors."""


class GraphCycleError(HarnessError):
    """The dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__("Dependency cycle: " + " -> ".join(cycle))


class UnknownInputError(HarnessError):
    """A name passed to set_inputs() is not a declared input."""

    def __init__(self, name: str, declared) -> None:
        self.name = name
        super().__init__(
            f"Unknown input {name!r}; declared inputs: {', '.join(sorted(declared)) or '(none)'}"
        )


class UnresolvedInputError(HarnessError):
    """A required input was read while still unset."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Input {name!r} has not been set; call set_inputs({name}=...) first")


class NegativeElapseError(HarnessError):
    """elapse() was asked to move the clock backward."""

    def __init__(self, ms) -> None:
        self.ms = ms
        super().__init__(f"Cannot elapse a negative amount of time: {ms!r} ms")


class UnknownNodeError(HarnessError, KeyError):
    """No node or output is registered under the given name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"No reactive node or output named {self.name!r}"


class ReentrantUpdateError(HarnessError):
    """Inputs were changed from inside a derived node's evaluation."""


class SessionClosedError(HarnessError):
    """The session was torn down and can no longer be used."""


class UnsupportedFileTypeError(HarnessError):
    """load_file() was given a file whose extension it does not handle."""

    def __init__(self, path, extension: str) -> None:
        self.path = path
        self.extension = extension
        super().__init__(f"Unsupported file type {extension!r} for {path}")
