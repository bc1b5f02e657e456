"""Data anchor — plain Python structures that hold all reactive state.

One Anchor per harness session. Node classes are thin handles holding an _id
and a reference to their anchor; every value, cache, flag and edge lives
here, so tearing a session down is a matter of clearing one object.
"""

from __future__ import annotations

import itertools

from rxharness.errors import SessionClosedError


class Anchor:
    __slots__ = (
        "values",
        "observers",
        "dependencies",
        "dirty_flags",
        "cached_values",
        "rendered",
        "derivation_fns",
        "disposed",
        "names",
        "nodes",
        "scheduled",
        "computing",
        "closed",
        "tracker",
        "clock",
        "_id_counter",
    )

    def __init__(self) -> None:
        # Source state
        self.values: dict[int, object] = {}
        self.observers: dict[int, set] = {}  # node_id -> set of downstream handles

        # Derivation state (Derived, Output, Observer)
        self.dependencies: dict[int, set] = {}  # deriv_id -> set of upstream handles
        self.dirty_flags: dict[int, bool] = {}
        self.cached_values: dict[int, object] = {}
        self.rendered: dict[int, str] = {}
        self.derivation_fns: dict[int, object] = {}
        self.disposed: dict[int, bool] = {}

        # Bookkeeping
        self.names: dict[int, str] = {}
        self.nodes: dict[int, object] = {}  # node_id -> handle, in creation order
        self.scheduled: dict[int, list] = {}  # deriv_id -> pending invalidate_later events
        self.computing: dict[int, None] = {}  # evaluation stack, innermost last
        self.closed = False

        # Set by the owning session once constructed.
        self.tracker = None
        self.clock = None

        self._id_counter = itertools.count(1)

    def new_id(self) -> int:
        return next(self._id_counter)

    def register(self, node, name: str) -> None:
        self.nodes[node._id] = node
        self.names[node._id] = name

    def name_of(self, node) -> str:
        return self.names.get(node._id, f"<node {node._id}>")

    def check_open(self) -> None:
        if self.closed:
            raise SessionClosedError("Harness session has been closed")

    def clear(self) -> None:
        """Drop every node and edge. The anchor is unusable afterwards."""
        for table in (
            self.values,
            self.observers,
            self.dependencies,
            self.dirty_flags,
            self.cached_values,
            self.rendered,
            self.derivation_fns,
            self.disposed,
            self.names,
            self.nodes,
            self.scheduled,
        ):
            table.clear()
        self.computing.clear()
        self.closed = True
