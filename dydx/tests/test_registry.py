"""Tests for the rule registry."""

import pytest
from dydx import (
    Registry, build_registry, DEFAULT_REGISTRY, Differentiator,
    X, call, multiply, format_function, E,
    UnsupportedExpressionKind, UnsupportedFunction, unary_rule, NODE_RULES,
)
from dydx.nodes import Function, NodeKind


def _sinh(node, u, d):
    return multiply(call("cosh", u), d(u))


class TestDefaultRegistry:
    """The registry built at import."""

    def test_kind_keys(self):
        assert set(DEFAULT_REGISTRY.kind_rules) == set(NodeKind)

    def test_function_keys(self):
        assert DEFAULT_REGISTRY.functions() == sorted(f.value for f in Function)

    def test_keys_are_plain_strings(self):
        assert all(type(name) is str for name in DEFAULT_REGISTRY.call_rules)

    def test_contains(self):
        assert "sin" in DEFAULT_REGISTRY
        assert "sqrt" not in DEFAULT_REGISTRY

    def test_lookup(self):
        assert DEFAULT_REGISTRY.kind_rule(X) is DEFAULT_REGISTRY.kind_rules[NodeKind.VARIABLE]
        assert callable(DEFAULT_REGISTRY.call_rule("log"))

    def test_lookup_errors(self):
        with pytest.raises(UnsupportedFunction):
            DEFAULT_REGISTRY.call_rule("sqrt")
        with pytest.raises(UnsupportedExpressionKind):
            DEFAULT_REGISTRY.kind_rule(object())

    def test_repr(self):
        assert repr(DEFAULT_REGISTRY).startswith("Registry(functions=['acos'")


class TestImmutability:
    """Tables are frozen once built."""

    def test_table_assignment(self):
        with pytest.raises(TypeError):
            DEFAULT_REGISTRY.call_rules["sqrt"] = lambda node, d: node

    def test_kind_table_assignment(self):
        with pytest.raises(TypeError):
            DEFAULT_REGISTRY.kind_rules[NodeKind.CALL] = None

    def test_attribute_assignment(self):
        with pytest.raises(AttributeError):
            DEFAULT_REGISTRY.call_rules = {}

    def test_source_dict_copied(self):
        """Changing the dict a Registry was built from does not change it."""
        calls = dict(DEFAULT_REGISTRY.call_rules)
        registry = Registry(NODE_RULES, calls)
        calls["sqrt"] = lambda node, d: node
        assert "sqrt" not in registry


class TestCallDispatch:
    """Calls are dispatched through the registry's own call_rules."""

    def test_hand_built_registry(self):
        """A Registry built directly uses the call table it was given."""
        registry = Registry(NODE_RULES, {"sinh": unary_rule(_sinh)})
        engine = Differentiator(registry)
        assert format_function(engine(E.fn("(sinh x)"))) == "(lambda (x) (* (cosh x) 1.0))"
        with pytest.raises(UnsupportedFunction):
            engine(E.fn("(sin x)"))

    def test_call_kind_rule_is_dispatch_call(self):
        assert DEFAULT_REGISTRY.kind_rules[NodeKind.CALL] == DEFAULT_REGISTRY.dispatch_call

    def test_dispatch_call_unknown_name(self):
        with pytest.raises(UnsupportedFunction):
            DEFAULT_REGISTRY.dispatch_call(call("gamma", X), lambda child: child)

    def test_rejects_call_kind_rule(self):
        """The CALL entry cannot be supplied separately from call_rules."""
        kind_rules = dict(NODE_RULES)
        kind_rules[NodeKind.CALL] = lambda node, d: node
        with pytest.raises(ValueError):
            Registry(kind_rules, DEFAULT_REGISTRY.call_rules)


class TestExtraFunctions:
    """build_registry() accepts additional call rules."""

    def test_extra_function(self):
        registry = build_registry({"sinh": unary_rule(_sinh)})
        assert "sinh" in registry
        engine = Differentiator(registry)
        df = engine(E.fn(call("sinh", X)))
        assert format_function(df) == "(lambda (x) (* (cosh x) 1.0))"

    def test_default_unaffected(self):
        build_registry({"sinh": unary_rule(_sinh)})
        assert "sinh" not in DEFAULT_REGISTRY
        with pytest.raises(UnsupportedFunction):
            Differentiator()(E.fn(call("sinh", X)))

    def test_extra_function_nested_in_builtin(self):
        registry = build_registry({"sinh": unary_rule(_sinh)})
        df = Differentiator(registry)(E.fn("(sin (sinh x))"))
        assert df.body.left == call("cos", call("sinh", X))

    @pytest.mark.parametrize("name", ["", "  ", None, 3])
    def test_bad_name(self, name):
        with pytest.raises(ValueError):
            build_registry({name: unary_rule(_sinh)})

    def test_cannot_override_builtin(self):
        with pytest.raises(ValueError, match="built-in"):
            build_registry({"sin": unary_rule(_sinh)})

    def test_rule_must_be_callable(self):
        with pytest.raises(ValueError, match="not callable"):
            build_registry({"sinh": "cosh"})
