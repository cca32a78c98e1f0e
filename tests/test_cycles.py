import re

import pytest

from corebind import Container, CyclicDependencyError, NotFoundError


class Forwarding:
    """Provider whose value is whatever `target` resolves to."""

    def __init__(self, injector, target):
        self.injector = injector
        self.target = target

    def get(self):
        return self.injector.get(self.target)


def forwarding(target):
    return lambda injector: Forwarding(injector, target)


def test_cycle_between_custom_providers_is_detected():
    core = Container()
    core.provide("foo", forwarding("bar"), inject=["injector"])
    core.provide("bar", forwarding("baz"), inject=["injector"])
    core.provide("baz", forwarding("foo"), inject=["injector"])

    with pytest.raises(CyclicDependencyError, match=re.escape('Cyclic dependency "foo -> bar -> baz -> foo"')):
        core.get("foo")


def test_cycle_between_factories_reports_full_path():
    c = Container()
    c.factory("a", lambda b: b, inject=["b"])
    c.factory("b", lambda c_: c_, inject=["c"])
    c.factory("c", lambda a: a, inject=["a"])
    c.bootstrap()

    with pytest.raises(CyclicDependencyError) as ctx:
        c.get("a")

    assert ctx.value.path == ("a", "b", "c", "a")
    assert "a -> b -> c -> a" in str(ctx.value)


def test_self_dependency_is_a_cycle():
    c = Container().factory("a", lambda a: a, inject=["a"])
    c.bootstrap()

    with pytest.raises(CyclicDependencyError, match=re.escape('"a -> a"')):
        c.get("a")


def test_resolution_state_is_reset_after_a_cycle():
    c = Container()
    c.factory("a", lambda b: b, inject=["b"])
    c.factory("b", lambda a: a, inject=["a"])
    c.constant("leaf", "value")
    c.factory("ok", lambda leaf: leaf.upper(), inject=["leaf"])
    c.bootstrap()

    with pytest.raises(CyclicDependencyError):
        c.get("a")

    assert c.get("ok") == "VALUE"
    with pytest.raises(CyclicDependencyError) as ctx:
        c.get("b")
    assert ctx.value.path == ("b", "a", "b")


def test_caught_cycle_inside_a_provider_leaves_clean_state():
    caught = []

    class Guarded:
        def __init__(self, injector):
            self.injector = injector

        def get(self):
            for _ in range(2):
                try:
                    self.injector.get("a")
                except CyclicDependencyError as exc:
                    caught.append(exc.path)
            return "fallback"

    c = Container()
    c.factory("a", lambda b: b, inject=["b"])
    c.factory("b", lambda a: a, inject=["a"])
    c.provide("guarded", Guarded, inject=["injector"])
    c.bootstrap()

    assert c.get("guarded") == "fallback"
    assert caught == [("guarded", "a", "b", "a"), ("guarded", "a", "b", "a")]


def test_not_found_mid_chain_does_not_leave_identifiers_in_progress():
    c = Container().factory("a", lambda missing: missing, inject=["missing"])
    c.bootstrap()

    for _ in range(2):
        with pytest.raises(NotFoundError, match='"missing"'):
            c.get("a")


def test_shadowed_identifier_in_parent_is_not_a_cycle():
    parent = Container().constant("name", "parent")
    parent.factory("base", lambda name: f"base({name})", inject=["name"])
    child = parent.create_child()
    child.factory("name", lambda base: f"child({base})", inject=["base"])
    parent.bootstrap()

    assert child.get("name") == "child(base(parent))"


def test_cycle_through_parent_and_child_is_detected():
    parent = Container()
    parent.factory("x", lambda y: y, inject=["y"])
    parent.factory("y", lambda x: x, inject=["x"])
    child = parent.create_child()
    parent.bootstrap()

    with pytest.raises(CyclicDependencyError):
        child.get("x")


def test_diamond_dependencies_are_not_cycles():
    c = Container().constant("root", 1)
    c.factory("left", lambda root: root + 1, inject=["root"])
    c.factory("right", lambda root: root + 2, inject=["root"])
    c.factory("top", lambda left, right: left + right, inject=["left", "right"])
    c.bootstrap()

    assert c.get("top") == 5
