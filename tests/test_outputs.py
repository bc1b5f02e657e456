"""Tests for the Outputs registry and renderers."""

import pytest

from rxharness import App, UnknownNodeError, render_print, render_text, simulate


class TestRenderers:
    def test_text(self):
        assert render_text(3) == "3"
        assert render_text("hi") == "hi"
        assert render_text(None) == ""

    def test_print(self):
        assert render_print({"b": 2, "a": 1}) == "{'a': 1, 'b': 2}"
        assert render_print("plain") == "plain"


class TestOutputs:
    def test_print_output(self):
        def server(input, output, session):
            @output.print("summary")
            def _():
                return {"n": input.n, "items": list(range(input.n))}

        s = simulate(App(server, ["n"]))
        s.set_inputs(n=3)
        assert s.read_output("summary") == "{'items': [0, 1, 2], 'n': 3}"

    def test_custom_formatter(self):
        def server(input, output, session):
            output.render("price", formatter=lambda v: f"${v:,.2f}")(lambda: input.amount)

        s = simulate(App(server, ["amount"]))
        s.set_inputs(amount=1234.5)
        assert s.read_output("price") == "$1,234.50"
        assert s.read("price") == 1234.5

    def test_bare_decorator_uses_function_name(self):
        def server(input, output, session):
            @output.text
            def greeting():
                return f"Hello, {input.name}!"

        s = simulate(App(server, ["name"]))
        s.set_inputs(name="Ada")
        assert s.output.names == ("greeting",)
        assert s.read_output("greeting") == "Hello, Ada!"

    def test_duplicate_name(self):
        def server(input, output, session):
            output.text("out")(lambda: 1)
            output.text("out")(lambda: 2)

        with pytest.raises(ValueError, match="defined twice"):
            simulate(App(server))

    def test_registry_lookup(self):
        def server(input, output, session):
            output.text("a")(lambda: 1)
            output.text("b")(lambda: 2)

        s = simulate(App(server))
        assert list(s.output) == ["a", "b"]
        assert len(s.output) == 2
        assert "a" in s.output
        with pytest.raises(UnknownNodeError):
            s.output["c"]
