"""Construction-time cycle detection.

Dependencies are normally discovered by running derivations, but a session
has no input values at construction time, so nothing can run yet. Instead,
each derived node's function is inspected for the derived nodes it closes
over or references as globals. That over-approximates the real edges (a
node referenced on a branch that never runs still counts), which is the
safe direction for rejecting cycles.

Cycles hidden from this analysis (nodes looked up by name at run time) are
still caught when evaluation re-enters a node that is already computing.
"""

from __future__ import annotations

import inspect
import itertools
import logging

from rxharness.derived import Derived
from rxharness.errors import GraphCycleError

logger = logging.getLogger("rxharness.graph")

_CONTAINERS = (list, tuple, set, frozenset)


def _nodes_in(value, anchor):
    if isinstance(value, Derived):
        if value._anchor is anchor:
            yield value
    elif isinstance(value, dict):
        for item in value.values():
            if isinstance(item, Derived) and item._anchor is anchor:
                yield item
    elif isinstance(value, _CONTAINERS):
        for item in value:
            if isinstance(item, Derived) and item._anchor is anchor:
                yield item


def static_references(fn, anchor) -> list[Derived]:
    """Derived nodes of anchor that fn could read."""
    owner = getattr(fn, "__self__", None)
    if owner is not None and hasattr(owner, "_anchor"):
        # A bound node method such as upstream.get.
        return list(_nodes_in(owner, anchor))
    try:
        closure = inspect.getclosurevars(fn)
    except (TypeError, ValueError):
        logger.debug("Cannot inspect %r; relying on evaluation-time cycle checks", fn)
        return []
    refs: list[Derived] = []
    for value in itertools.chain(closure.nonlocals.values(), closure.globals.values()):
        refs.extend(_nodes_in(value, anchor))
    return refs


def find_cycle(anchor) -> list[str] | None:
    """Names along the first dependency cycle found, or None for a DAG.

    The result reads in dependency order and repeats its first name at the
    end, e.g. ["a", "b", "a"] when a reads b and b reads a.
    """
    nodes = [node for node in anchor.nodes.values() if isinstance(node, Derived)]
    edges = {
        node._id: static_references(anchor.derivation_fns[node._id], anchor)
        for node in nodes
    }

    done: set[int] = set()
    path: list[int] = []
    on_path: set[int] = set()

    def visit(node_id: int) -> list[int] | None:
        path.append(node_id)
        on_path.add(node_id)
        for dep in edges.get(node_id, ()):
            if dep._id in on_path:
                return path[path.index(dep._id):] + [dep._id]
            if dep._id not in done:
                found = visit(dep._id)
                if found:
                    return found
        path.pop()
        on_path.discard(node_id)
        done.add(node_id)
        return None

    for node in nodes:
        if node._id not in done:
            found = visit(node._id)
            if found:
                return [anchor.names[i] for i in found]
    return None


def check_acyclic(anchor) -> None:
    """Raise GraphCycleError if the graph built in anchor has a cycle."""
    cycle = find_cycle(anchor)
    if cycle is not None:
        raise GraphCycleError(cycle)
