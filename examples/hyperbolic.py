"""
Example function file for dydx.

This file shows how to teach the engine extra functions. It defines a
FUNCTIONS dict mapping names to call rules; each rule receives the Call
node and the recursion callback d.

Usage:
    dydx -f examples/hyperbolic.py -e "(sinh (* 2 x))"

Or in scripts:
    :load examples/hyperbolic.py
    (cosh x)
"""

from dydx import call, multiply, divide, const, unary_rule


def _sinh(node, u, d):
    return multiply(call("cosh", u), d(u))


def _cosh(node, u, d):
    return multiply(call("sinh", u), d(u))


def _sqrt(node, u, d):
    # (sqrt u)' = u' / (2 sqrt u)
    return divide(d(u), multiply(const(2), node))


FUNCTIONS = {
    "sinh": unary_rule(_sinh),
    "cosh": unary_rule(_cosh),
    "sqrt": unary_rule(_sqrt),
}
