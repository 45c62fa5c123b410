"""
Differentiation rules for dydx.

A rule is a callable ``rule(node, d) -> Node``. ``d`` is the recursion
callback handed in by the engine: ``d(child)`` returns the derivative of a
subexpression. Rules never simplify; they only wrap existing subtrees in
new nodes, so an input subtree may appear verbatim in the output.

Node-kind rules (NODE_RULES):
    constant   c'     = 0
    variable   x'     = 1
    add        (u+v)' = u' + v'
    multiply   (uv)'  = u v' + v u'
    divide     (u/v)' = (v u' + (u * -1) v') / (v v)

Elementary function rules (ELEMENTARY_RULES) are keyed by Function and
wrapped with an arity check, the same way fold handlers are built from
unary-only and binary-only builders:

    ELEMENTARY_RULES = {
        Function.SIN: unary_rule(_sin),
        Function.POW: binary_rule(_pow),
        ...
    }
"""

from typing import Callable, Dict

from .errors import MalformedCall
from .nodes import (
    Call, Constant, Function, Node, NodeKind,
    add, call, divide, multiply, is_constant, is_variable,
)

# d(child) -> derivative of child
Differentiate = Callable[[Node], Node]
Rule = Callable[[Node, Differentiate], Node]
CallRule = Callable[[Call, Differentiate], Node]

ZERO = Constant(0.0)
ONE = Constant(1.0)
NEG_ONE = Constant(-1.0)
NEG_HALF = Constant(-0.5)


# ============================================================
# Node-kind rules
# ============================================================

def constant_rule(node: Node, d: Differentiate) -> Node:
    return ZERO


def variable_rule(node: Node, d: Differentiate) -> Node:
    return ONE


def sum_rule(node: Node, d: Differentiate) -> Node:
    return add(d(node.left), d(node.right))


def product_rule(node: Node, d: Differentiate) -> Node:
    left, right = node.left, node.right
    return add(multiply(left, d(right)), multiply(right, d(left)))


def quotient_rule(node: Node, d: Differentiate) -> Node:
    num, den = node.left, node.right
    return divide(
        add(multiply(den, d(num)),
            multiply(multiply(num, NEG_ONE), d(den))),
        multiply(den, den),
    )


NODE_RULES: Dict[NodeKind, Rule] = {
    NodeKind.CONSTANT: constant_rule,
    NodeKind.VARIABLE: variable_rule,
    NodeKind.ADD: sum_rule,
    NodeKind.MULTIPLY: product_rule,
    NodeKind.DIVIDE: quotient_rule,
}


# ============================================================
# Arity wrappers
# ============================================================

def unary_rule(f: Callable[[Call, Node, Differentiate], Node]) -> CallRule:
    """Create a call rule for a one-argument function (e.g., sin, exp)."""
    def handler(node: Call, d: Differentiate) -> Node:
        if len(node.args) != 1:
            raise MalformedCall(node.name, "1", len(node.args))
        return f(node, node.args[0], d)
    return handler


def binary_rule(f: Callable[[Call, Node, Node, Differentiate], Node]) -> CallRule:
    """Create a call rule for a two-argument function (e.g., pow)."""
    def handler(node: Call, d: Differentiate) -> Node:
        if len(node.args) != 2:
            raise MalformedCall(node.name, "2", len(node.args))
        return f(node, node.args[0], node.args[1], d)
    return handler


# ============================================================
# Elementary function rules
# ============================================================

def _sin(node: Call, u: Node, d: Differentiate) -> Node:
    return multiply(call(Function.COS, u), d(u))


def _cos(node: Call, u: Node, d: Differentiate) -> Node:
    return multiply(multiply(call(Function.SIN, u), NEG_ONE), d(u))


def _exp(node: Call, u: Node, d: Differentiate) -> Node:
    return multiply(node, d(u))


def _tan(node: Call, u: Node, d: Differentiate) -> Node:
    cos = call(Function.COS, u)
    return divide(d(u), multiply(cos, cos))


def _one_minus_square(u: Node) -> Node:
    # 1 + (-1 * u) * u
    return add(ONE, multiply(multiply(NEG_ONE, u), u))


def _asin(node: Call, u: Node, d: Differentiate) -> Node:
    return multiply(call(Function.POW, _one_minus_square(u), NEG_HALF), d(u))


def _acos(node: Call, u: Node, d: Differentiate) -> Node:
    return multiply(call(Function.POW, _one_minus_square(u), NEG_HALF),
                    multiply(d(u), NEG_ONE))


def _atan(node: Call, u: Node, d: Differentiate) -> Node:
    return multiply(divide(ONE, add(ONE, multiply(u, u))), d(u))


def log_rule(node: Call, d: Differentiate) -> Node:
    """
    d/dx log(u) = u' / u, and d/dx log(u, b) = u' / (u * log(b)).

    The base of the two-argument form is treated as a constant and is
    never differentiated, even when it contains the variable.
    """
    args = node.args
    if len(args) == 1:
        u = args[0]
        return divide(d(u), u)
    if len(args) == 2:
        u, base = args
        return divide(d(u), multiply(u, call(Function.LOG, base)))
    raise MalformedCall(node.name, "1 or 2", len(args))


def _pow(node: Call, base: Node, exponent: Node, d: Differentiate) -> Node:
    """
    Differentiate pow(a, b), choosing the identity by operand shape:

        pow(x, k)  ->  k * pow(x, k + -1) * x'
        pow(c, v)  ->  v' * (pow(c, v) * log(c))      v not a literal
        otherwise  ->  derivative of exp(b * log(a))

    The last branch returns an exp/log shaped tree, not a pow shaped one.
    It agrees numerically with the power only where a > 0.
    """
    if is_variable(base) and is_constant(exponent):
        lowered = call(Function.POW, base, add(exponent, NEG_ONE))
        return multiply(multiply(exponent, lowered), d(base))

    if is_constant(base) and not is_constant(exponent):
        return multiply(d(exponent), multiply(node, call(Function.LOG, base)))

    rewritten = call(Function.EXP, multiply(exponent, call(Function.LOG, base)))
    return d(rewritten)


ELEMENTARY_RULES: Dict[Function, CallRule] = {
    Function.SIN: unary_rule(_sin),
    Function.COS: unary_rule(_cos),
    Function.POW: binary_rule(_pow),
    Function.EXP: unary_rule(_exp),
    Function.LOG: log_rule,
    Function.TAN: unary_rule(_tan),
    Function.ASIN: unary_rule(_asin),
    Function.ACOS: unary_rule(_acos),
    Function.ATAN: unary_rule(_atan),
}
