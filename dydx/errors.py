"""
Error taxonomy for dydx.

Every failure is a DifferentiationError subclass so callers can tell an
unsupported input apart from a zero derivative.
"""

from typing import Any, Optional


class DifferentiationError(Exception):
    """Base class for all dydx errors."""


class UnsupportedExpressionKind(DifferentiationError):
    """Raised when a node's kind has no registered rule."""

    def __init__(self, node: Any, message: Optional[str] = None):
        self.node = node
        if message is None:
            kind = getattr(node, "kind", None)
            if kind is None:
                message = f"cannot differentiate {type(node).__name__} object"
            else:
                message = f"no differentiation rule for node kind {kind}"
        super().__init__(message)


class UnsupportedFunction(DifferentiationError):
    """Raised when a call names a function outside the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unsupported function: {name!r}")


class MalformedCall(DifferentiationError):
    """Raised when a known function is called with the wrong number of arguments."""

    def __init__(self, name: str, expected: str, got: int):
        self.name = name
        self.expected = expected
        self.got = got
        super().__init__(f"{name}: expected {expected} argument(s), got {got}")


class ExpressionTooDeep(DifferentiationError):
    """Raised when a tree is nested deeper than the engine's max_depth."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"expression nested deeper than {max_depth} levels")


class ExpressionSyntaxError(DifferentiationError, ValueError):
    """Raised when s-expression text cannot be read into a tree."""
