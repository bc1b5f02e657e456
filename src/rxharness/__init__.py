"""rxharness: drive reactive server logic in tests, no browser required."""

from importlib.metadata import version as _version

__version__ = _version("rxharness")

from rxharness.errors import (
    HarnessError,
    GraphCycleError,
    UnknownInputError,
    UnresolvedInputError,
    NegativeElapseError,
    UnknownNodeError,
    ReentrantUpdateError,
    SessionClosedError,
    UnsupportedFileTypeError,
)
from rxharness.source import Source, UNSET
from rxharness.derived import Derived, Output
from rxharness.observer import Observer, EventObserver
from rxharness.clock import VirtualClock, Timer, Debounced
from rxharness.inputs import Inputs
from rxharness.outputs import Outputs, render_text, render_print
from rxharness.application import App, Scope, app
from rxharness.session import HarnessSession, simulate
from rxharness.files import FileKind, load_file

__all__ = [
    "HarnessError",
    "GraphCycleError",
    "UnknownInputError",
    "UnresolvedInputError",
    "NegativeElapseError",
    "UnknownNodeError",
    "ReentrantUpdateError",
    "SessionClosedError",
    "UnsupportedFileTypeError",
    "Source",
    "UNSET",
    "Derived",
    "Output",
    "Observer",
    "EventObserver",
    "VirtualClock",
    "Timer",
    "Debounced",
    "Inputs",
    "Outputs",
    "render_text",
    "render_print",
    "App",
    "Scope",
    "app",
    "HarnessSession",
    "simulate",
    "FileKind",
    "load_file",
]
