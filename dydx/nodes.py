"""
Expression tree model for dydx.

Trees are built from six node kinds:

    Constant(2.0)                  - a literal, always stored as float
    Variable() / X                 - the single free parameter
    BinaryOp(NodeKind.ADD, l, r)   - also MULTIPLY and DIVIDE
    Call("sin", (u,))              - an elementary function application

Nodes are immutable values. The engine reads input nodes and only ever
creates new ones, so untouched subtrees of an input are shared with the
output instead of being copied.

Examples:
    from dydx.nodes import X, add, multiply, call, const

    # sin(2x) + x
    body = add(call("sin", multiply(const(2), X)), X)
"""

import enum
from typing import Any, Iterable, Union

NumericType = Union[int, float]


class NodeKind(enum.Enum):
    """Tag identifying the shape of a node."""

    CONSTANT = "constant"
    VARIABLE = "variable"
    ADD = "add"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    CALL = "call"

    def __str__(self) -> str:
        return self.value


BINARY_KINDS = frozenset({NodeKind.ADD, NodeKind.MULTIPLY, NodeKind.DIVIDE})


class Function(str, enum.Enum):
    """The nine elementary functions the engine knows how to differentiate."""

    SIN = "sin"
    COS = "cos"
    POW = "pow"
    EXP = "exp"
    LOG = "log"
    TAN = "tan"
    ASIN = "asin"
    ACOS = "acos"
    ATAN = "atan"

    def __str__(self) -> str:
        return self.value


# ============================================================
# Nodes
# ============================================================

class Node:
    """Base class for expression nodes. Instances are read-only."""

    __slots__ = ()
    kind: NodeKind

    def __setattr__(self, name: str, value: Any):
        raise AttributeError(f"{type(self).__name__} nodes are immutable")

    def __delattr__(self, name: str):
        raise AttributeError(f"{type(self).__name__} nodes are immutable")


class Constant(Node):
    """A numeric literal."""

    __slots__ = ('value',)
    kind = NodeKind.CONSTANT

    def __init__(self, value: NumericType):
        object.__setattr__(self, 'value', float(value))

    def __eq__(self, other):
        if isinstance(other, Constant):
            return self.value == other.value
        return NotImplemented

    def __hash__(self):
        return hash((NodeKind.CONSTANT, self.value))

    def __repr__(self) -> str:
        return f"Constant({self.value!r})"


class Variable(Node):
    """
    The free parameter.

    There is only one variable, so there is only one instance: every call
    to Variable() returns the same object, also exported as X.
    """

    __slots__ = ()
    kind = NodeKind.VARIABLE

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Variable()"


# Singleton instance
X = Variable()


class BinaryOp(Node):
    """Addition, multiplication or division of two subexpressions."""

    __slots__ = ('kind', 'left', 'right')

    def __init__(self, kind: NodeKind, left: Node, right: Node):
        if kind not in BINARY_KINDS:
            raise ValueError(f"not a binary operator kind: {kind}")
        object.__setattr__(self, 'kind', kind)
        object.__setattr__(self, 'left', left)
        object.__setattr__(self, 'right', right)

    def __eq__(self, other):
        if isinstance(other, BinaryOp):
            return (self.kind == other.kind and self.left == other.left
                    and self.right == other.right)
        return NotImplemented

    def __hash__(self):
        return hash((self.kind, self.left, self.right))

    def __repr__(self) -> str:
        return f"BinaryOp({self.kind.name}, {self.left!r}, {self.right!r})"


class Call(Node):
    """
    A named function applied to an ordered tuple of arguments.

    The name is not checked here; a call to an unknown function or with
    the wrong number of arguments is only rejected when differentiated.
    """

    __slots__ = ('name', 'args')
    kind = NodeKind.CALL

    def __init__(self, name: str, args: Iterable[Node]):
        object.__setattr__(self, 'name', str(name))
        object.__setattr__(self, 'args', tuple(args))

    def __eq__(self, other):
        if isinstance(other, Call):
            return self.name == other.name and self.args == other.args
        return NotImplemented

    def __hash__(self):
        return hash((NodeKind.CALL, self.name, self.args))

    def __repr__(self) -> str:
        args = ", ".join(repr(a) for a in self.args)
        return f"Call({self.name!r}, ({args}{',' if len(self.args) == 1 else ''}))"


class FunctionDefinition:
    """A one-parameter function: the unit the engine accepts and returns."""

    __slots__ = ('parameter', 'body')

    def __init__(self, parameter: str, body: Node):
        if not isinstance(parameter, str) or not parameter.isidentifier():
            raise ValueError(f"parameter must be an identifier, got {parameter!r}")
        object.__setattr__(self, 'parameter', parameter)
        object.__setattr__(self, 'body', body)

    def __setattr__(self, name: str, value: Any):
        raise AttributeError("FunctionDefinition is immutable")

    def __eq__(self, other):
        if isinstance(other, FunctionDefinition):
            return self.parameter == other.parameter and self.body == other.body
        return NotImplemented

    def __hash__(self):
        return hash((self.parameter, self.body))

    def __repr__(self) -> str:
        return f"FunctionDefinition({self.parameter!r}, {self.body!r})"


# ============================================================
# Construction helpers
# ============================================================

def const(value: NumericType) -> Constant:
    """Build a constant node."""
    return Constant(value)


def add(left: Node, right: Node) -> BinaryOp:
    """Build left + right."""
    return BinaryOp(NodeKind.ADD, left, right)


def multiply(left: Node, right: Node) -> BinaryOp:
    """Build left * right."""
    return BinaryOp(NodeKind.MULTIPLY, left, right)


def divide(left: Node, right: Node) -> BinaryOp:
    """Build left / right."""
    return BinaryOp(NodeKind.DIVIDE, left, right)


def call(name: str, *args: Node) -> Call:
    """
    Build a function call.

    Examples:
        call("sin", X)
        call("pow", X, const(3))
        call(Function.LOG, X, const(10))
    """
    return Call(name, args)


def is_constant(node: Any) -> bool:
    """Check if a node is a literal."""
    return isinstance(node, Constant)


def is_variable(node: Any) -> bool:
    """Check if a node is the free parameter."""
    return isinstance(node, Variable)
