"""Tests for construction-time cycle detection."""

import pytest

from rxharness import App, GraphCycleError, HarnessSession, SessionClosedError, simulate


class TestCycleDetection:
    def test_two_node_cycle(self):
        def server(input, output, session):
            @session.reactive
            def a():
                return b.get() + 1

            @session.reactive
            def b():
                return a.get() + 1

        with pytest.raises(GraphCycleError) as exc:
            simulate(App(server))
        assert exc.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc.value)

    def test_self_reference(self):
        def server(input, output, session):
            @session.reactive
            def a():
                return a.get()

        with pytest.raises(GraphCycleError) as exc:
            simulate(App(server))
        assert exc.value.cycle == ["a", "a"]

    def test_cycle_through_container(self):
        def server(input, output, session):
            nodes = {}
            a = session.reactive(lambda: nodes["b"].get(), name="a")
            nodes["b"] = session.reactive(lambda: input.x + a.get(), name="b")

        with pytest.raises(GraphCycleError):
            simulate(App(server, ["x"]))

    def test_diamond_is_fine(self):
        def server(input, output, session):
            top = session.reactive(lambda: input.x, name="top")
            left = session.reactive(lambda: top.get() + 1, name="left")
            right = session.reactive(lambda: top.get() * 2, name="right")
            session.reactive(lambda: left.get() + right.get(), name="bottom")

        s = simulate(App(server, ["x"]))
        s.set_inputs(x=3)
        assert s.read("bottom") == 10

    def test_failed_construction_is_unusable(self):
        captured = []

        def server(input, output, session):
            captured.append(input)

            @session.reactive
            def a():
                return a.get()

        with pytest.raises(GraphCycleError):
            simulate(App(server, ["x"]))
        with pytest.raises(SessionClosedError):
            captured[0].update({"x": 1})

    def test_check_can_be_disabled(self):
        def server(input, output, session):
            @session.reactive
            def a():
                return b.get()

            @session.reactive
            def b():
                return a.get()

        s = HarnessSession(App(server), check_cycles=False)
        with pytest.raises(GraphCycleError):
            s.read("a")
