"""Shared fixtures: a test-only evaluator and a finite-difference helper."""

import math

import pytest

from dydx.nodes import NodeKind

MATH_FUNCTIONS = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "exp": math.exp,
    "log": math.log,
    "pow": math.pow,
    "sinh": math.sinh,
    "cosh": math.cosh,
    "sqrt": math.sqrt,
}


def _evaluate(node, x):
    """Evaluate a tree at x with the host's math functions."""
    kind = node.kind
    if kind is NodeKind.CONSTANT:
        return node.value
    if kind is NodeKind.VARIABLE:
        return x
    if kind is NodeKind.CALL:
        return MATH_FUNCTIONS[node.name](*(_evaluate(a, x) for a in node.args))
    left = _evaluate(node.left, x)
    right = _evaluate(node.right, x)
    if kind is NodeKind.ADD:
        return left + right
    if kind is NodeKind.MULTIPLY:
        return left * right
    return left / right


def _central_difference(node, x, h=1e-5):
    return (_evaluate(node, x + h) - _evaluate(node, x - h)) / (2 * h)


@pytest.fixture
def evaluate():
    """evaluate(node, x) -> float"""
    return _evaluate


@pytest.fixture
def central_difference():
    """central_difference(node, x, h=1e-5) -> float"""
    return _central_difference
