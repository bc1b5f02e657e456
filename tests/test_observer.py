"""Tests for Observer and observe_event."""

import pytest

from rxharness import App, ReentrantUpdateError, UnresolvedInputError, simulate


class TestObserver:
    def test_first_run_at_first_flush(self):
        log = []

        def server(input, output, session):
            session.observe(lambda: log.append(input.x))

        s = simulate(App(server, ["x"]))
        assert log == []  # nothing runs during construction
        assert s.get_pending_count() == 1
        s.set_inputs(x=10)
        assert log == [10]
        assert s.get_pending_count() == 0

    def test_reruns_on_change(self):
        log = []

        def server(input, output, session):
            session.observe(lambda: log.append(input.x))

        s = simulate(App(server, ["x"]))
        s.set_inputs(x=10)
        s.set_inputs(x=20)
        assert log == [10, 20]

    def test_runs_once_per_batch(self):
        log = []

        def server(input, output, session):
            session.observe(lambda: log.append((input.a, input.b)))

        s = simulate(App(server, ["a", "b"]))
        s.set_inputs(a=1, b=2)
        assert log == [(1, 2)]
        s.set_inputs(a=10, b=20)
        # Should see (10, 20) not intermediate (10, 2)
        assert log == [(1, 2), (10, 20)]

    def test_sees_consistent_derived_values(self):
        log = []

        def server(input, output, session):
            total = session.reactive(lambda: input.a + input.b, name="total")
            session.observe(lambda: log.append((input.a, total.get())))

        s = simulate(App(server, ["a", "b"]))
        s.set_inputs(a=1, b=1)
        s.set_inputs(a=5, b=5)
        assert log == [(1, 2), (5, 10)]

    def test_priority_order(self):
        order = []

        def server(input, output, session):
            session.observe(lambda: order.append(("low", input.x)))
            session.observe(lambda: order.append(("high", input.x)), priority=10)

        s = simulate(App(server, ["x"]))
        s.set_inputs(x=1)
        s.set_inputs(x=2)
        assert order == [("high", 1), ("low", 1), ("high", 2), ("low", 2)]

    def test_dispose_stops(self):
        log = []

        def server(input, output, session):
            return session.observe(lambda: log.append(input.x))

        s = simulate(App(server, ["x"]))
        s.set_inputs(x=1)
        s.returned.dispose()
        s.set_inputs(x=2)
        assert log == [1]  # no additional run
        assert "disposed" in repr(s.returned)

    def test_unresolved_input_surfaces_from_set_inputs(self):
        log = []

        def server(input, output, session):
            session.observe(lambda: log.append((input.a, input.b)))

        s = simulate(App(server, ["a", "b"]))
        with pytest.raises(UnresolvedInputError) as exc:
            s.set_inputs(a=1)
        assert exc.value.name == "b"
        assert s.read("a") == 1  # the value itself was applied

        s.set_inputs(b=2)
        assert log == [(1, 2)]

    def test_errors_propagate(self):
        def server(input, output, session):
            @session.observe
            def explode():
                if input.x > 1:
                    raise ValueError("boom")

        s = simulate(App(server, ["x"]))
        s.set_inputs(x=1)
        with pytest.raises(ValueError, match="boom"):
            s.set_inputs(x=2)

    def test_observer_may_set_inputs(self):
        def server(input, output, session):
            @session.observe
            def mirror():
                input.update({"y": input.x * 2})

            session.reactive(lambda: input.y + 1, name="y_plus_one")

        s = simulate(App(server, ["x", "y"]))
        s.set_inputs(x=2)
        assert s.read("y") == 4
        assert s.read("y_plus_one") == 5
        s.set_inputs(x=5)
        assert s.read("y_plus_one") == 11

    def test_derived_may_not_set_inputs_through_isolate(self):
        def server(input, output, session):
            @session.reactive
            def sneaky():
                session.isolate(lambda: input.update({"y": 1}))
                return input.x

        s = simulate(App(server, ["x", "y"]))
        s.set_inputs(x=1)
        with pytest.raises(ReentrantUpdateError, match="sneaky"):
            s.read("sneaky")
        assert not s.input.is_set("y")

    def test_derived_may_not_set_inputs(self):
        def server(input, output, session):
            @session.reactive
            def sneaky():
                input.update({"y": 1})
                return input.x

        s = simulate(App(server, ["x", "y"]))
        s.set_inputs(x=1)
        with pytest.raises(ReentrantUpdateError, match="sneaky"):
            s.read("sneaky")
        assert not s.input.is_set("y")

    def test_observers_cannot_be_read(self):
        def server(input, output, session):
            return session.observe(lambda: input.x, name="watcher")

        s = simulate(App(server, ["x"]))
        with pytest.raises(TypeError, match="observer"):
            s.read(s.returned)


class TestObserveEvent:
    def test_fires_when_event_input_is_set(self):
        clicks = []

        def server(input, output, session):
            session.observe_event(lambda: input.go, lambda v: clicks.append(v))

        s = simulate(App(server, ["go"]))
        assert clicks == []
        s.set_inputs(go=1)
        assert clicks == [1]
        s.set_inputs(go=2)
        assert clicks == [1, 2]

    def test_no_initial_effect(self):
        """A resolvable event at construction only records its value."""
        effects = []

        def server(input, output, session):
            ticks = session.timer(100)
            session.observe_event(ticks.get, lambda v: effects.append(v))

        s = simulate(App(server))
        assert effects == []
        s.elapse(100)
        assert effects == [100]

    def test_fire_immediately(self):
        effects = []

        def server(input, output, session):
            session.observe_event(lambda: "ready", effects.append, fire_immediately=True)

        simulate(App(server))
        assert effects == ["ready"]

    def test_dedup_effect(self):
        """Handler only fires when the event value actually changes."""
        effects = []

        def server(input, output, session):
            session.observe_event(
                lambda: "even" if input.n % 2 == 0 else "odd",
                lambda v: effects.append(v),
            )

        s = simulate(App(server, ["n"]))
        s.set_inputs(n=1)
        assert effects == ["odd"]
        s.set_inputs(n=3)  # still odd
        assert effects == ["odd"]
        s.set_inputs(n=4)
        assert effects == ["odd", "even"]

    def test_handler_reads_are_untracked(self):
        seen = []

        def server(input, output, session):
            @session.observe_event(lambda: input.go)
            def _(clicks):
                seen.append((clicks, input.name))

        s = simulate(App(server, ["go", "name"]))
        s.set_inputs(go=1, name="ann")
        assert seen == [(1, "ann")]
        s.set_inputs(name="bob")
        assert seen == [(1, "ann")]  # name alone does not trigger
        s.set_inputs(go=2)
        assert seen == [(1, "ann"), (2, "bob")]

    def test_unset_input_after_first_run_raises(self):
        seen = []

        def server(input, output, session):
            session.observe_event(lambda: input.go + input.n, seen.append)

        s = simulate(App(server, ["go", "n"]))
        with pytest.raises(UnresolvedInputError) as exc:
            s.set_inputs(go=1)
        assert exc.value.name == "n"
        assert seen == []

        s.set_inputs(n=10)
        assert seen == [11]
