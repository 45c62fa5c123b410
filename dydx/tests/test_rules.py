"""Tests for the exact output shape of each rule."""

import pytest
from dydx import X, Constant, add, multiply, divide, call, const, FunctionDefinition
from dydx import differentiate, format_sexpr, MalformedCall
from dydx.rules import (
    ZERO, ONE, NEG_ONE, NEG_HALF,
    constant_rule, variable_rule, sum_rule, product_rule, quotient_rule,
    unary_rule, binary_rule, log_rule, ELEMENTARY_RULES,
)
from dydx.nodes import Function


def marker(node):
    """Stand-in derivative: wraps the child so rule output can be read off."""
    return call("D", node)


def d(body):
    return differentiate(FunctionDefinition("x", body)).body


class TestKindRules:
    """Rules for constants, the variable and binary operators."""

    def test_constant_and_variable(self):
        assert constant_rule(const(7), marker) == ZERO
        assert variable_rule(X, marker) == ONE

    def test_sum(self):
        u, v = call("sin", X), call("cos", X)
        assert sum_rule(add(u, v), marker) == add(marker(u), marker(v))

    def test_product(self):
        """(uv)' = u v' + v u'"""
        u, v = call("sin", X), call("cos", X)
        assert product_rule(multiply(u, v), marker) == add(
            multiply(u, marker(v)), multiply(v, marker(u)))

    def test_quotient(self):
        """(u/v)' = (v u' + (u * -1) v') / (v v)"""
        u, v = call("sin", X), call("cos", X)
        assert quotient_rule(divide(u, v), marker) == divide(
            add(multiply(v, marker(u)), multiply(multiply(u, NEG_ONE), marker(v))),
            multiply(v, v))

    def test_no_simplification(self):
        """x * x keeps its multiplications by 1."""
        assert format_sexpr(d(multiply(X, X))) == "(+ (* x 1.0) (* x 1.0))"


class TestElementaryShapes:
    """Each elementary function produces its documented tree."""

    u = call("sin", X)

    def rule(self, fn):
        return ELEMENTARY_RULES[fn]

    def test_sin(self):
        node = call("sin", self.u)
        assert self.rule(Function.SIN)(node, marker) == multiply(
            call("cos", self.u), marker(self.u))

    def test_cos(self):
        node = call("cos", self.u)
        assert self.rule(Function.COS)(node, marker) == multiply(
            multiply(call("sin", self.u), NEG_ONE), marker(self.u))

    def test_exp_reuses_call(self):
        """exp(u)' = exp(u) u', with the original call node in the result."""
        node = call("exp", self.u)
        result = self.rule(Function.EXP)(node, marker)
        assert result == multiply(node, marker(self.u))
        assert result.left is node

    def test_tan(self):
        node = call("tan", self.u)
        cos = call("cos", self.u)
        assert self.rule(Function.TAN)(node, marker) == divide(
            marker(self.u), multiply(cos, cos))

    def test_asin(self):
        node = call("asin", self.u)
        root = call("pow", add(ONE, multiply(multiply(NEG_ONE, self.u), self.u)), NEG_HALF)
        assert self.rule(Function.ASIN)(node, marker) == multiply(root, marker(self.u))

    def test_acos(self):
        node = call("acos", self.u)
        root = call("pow", add(ONE, multiply(multiply(NEG_ONE, self.u), self.u)), NEG_HALF)
        assert self.rule(Function.ACOS)(node, marker) == multiply(
            root, multiply(marker(self.u), NEG_ONE))

    def test_atan(self):
        node = call("atan", self.u)
        assert self.rule(Function.ATAN)(node, marker) == multiply(
            divide(ONE, add(ONE, multiply(self.u, self.u))), marker(self.u))

    def test_sin_of_variable(self):
        assert format_sexpr(d(call("sin", X))) == "(* (cos x) 1.0)"

    def test_all_functions_registered(self):
        assert set(ELEMENTARY_RULES) == set(Function)


class TestLogRule:
    """Natural and base-b logarithms."""

    def test_natural(self):
        u = call("sin", X)
        assert log_rule(call("log", u), marker) == divide(marker(u), u)

    def test_with_base(self):
        u = call("sin", X)
        base = const(10)
        assert log_rule(call("log", u, base), marker) == divide(
            marker(u), multiply(u, call("log", base)))

    def test_base_never_differentiated(self):
        """A base containing the variable is still treated as a constant."""
        assert d(call("log", const(2), X)) == divide(
            Constant(0.0), multiply(const(2), call("log", X)))

    @pytest.mark.parametrize("count", [0, 3])
    def test_arity(self, count):
        with pytest.raises(MalformedCall) as exc_info:
            log_rule(call("log", *([X] * count)), marker)
        assert exc_info.value.expected == "1 or 2"


class TestPowRule:
    """pow picks its identity from the operand shapes."""

    def test_variable_to_constant(self):
        assert format_sexpr(d(call("pow", X, const(3)))) == \
            "(* (* 3.0 (pow x (+ 3.0 -1.0))) 1.0)"

    def test_constant_to_expression(self):
        v = multiply(const(2), X)
        node = call("pow", const(3), v)
        result = ELEMENTARY_RULES[Function.POW](node, marker)
        assert result == multiply(marker(v), multiply(node, call("log", const(3))))
        assert result.right.left is node

    def test_constant_to_variable(self):
        node = call("pow", const(2), X)
        assert d(node) == multiply(ONE, multiply(node, call("log", const(2))))

    def test_general_case_rewrites_through_exp(self):
        """pow(x, x) is differentiated as exp(x log x)."""
        rewritten = call("exp", multiply(X, call("log", X)))
        assert d(call("pow", X, X)) == multiply(
            rewritten,
            add(multiply(X, divide(ONE, X)), multiply(call("log", X), ONE)))

    def test_expression_base_uses_general_case(self):
        """pow(2x, 3) is not the power rule: its base is not the variable."""
        base = multiply(const(2), X)
        result = d(call("pow", base, const(3)))
        assert result.left == call("exp", multiply(const(3), call("log", base)))

    @pytest.mark.parametrize("count", [1, 3])
    def test_arity(self, count):
        with pytest.raises(MalformedCall) as exc_info:
            ELEMENTARY_RULES[Function.POW](call("pow", *([X] * count)), marker)
        assert exc_info.value.expected == "2"


class TestArityWrappers:
    """unary_rule and binary_rule check argument counts before calling."""

    def test_unary_passes_argument(self):
        seen = []

        def rule(node, u, d):
            seen.append((node, u))
            return u

        node = call("f", X)
        assert unary_rule(rule)(node, marker) is X
        assert seen == [(node, X)]

    def test_unary_rejects(self):
        wrapped = unary_rule(lambda node, u, d: u)
        with pytest.raises(MalformedCall) as exc_info:
            wrapped(call("f", X, X), marker)
        assert exc_info.value.name == "f"
        assert exc_info.value.got == 2

    def test_binary_passes_arguments(self):
        wrapped = binary_rule(lambda node, a, b, d: add(b, a))
        assert wrapped(call("g", X, ONE), marker) == add(ONE, X)

    def test_binary_rejects(self):
        wrapped = binary_rule(lambda node, a, b, d: a)
        with pytest.raises(MalformedCall):
            wrapped(call("g", X), marker)
