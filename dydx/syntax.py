"""
S-expression front end for dydx.

The engine only sees node objects. This module reads and prints them in
a prefix syntax so trees can be typed at a prompt or stored in scripts:

    (+ (* 2 x) 1)              2x + 1
    (sin (* 2 x))              sin(2x)
    (pow x 3)  or  (^ x 3)     x^3
    (log x)  (log x 10)        natural log, log base 10
    (lambda (t) (exp t))       a function definition with parameter t

Numbers read as float constants, the parameter symbol reads as the
variable, + * / take exactly two operands, and any other head reads as a
function call. Unknown function names are accepted here and rejected by
the engine.

Expression builder:
    from dydx import E

    E("(sin x)")                        # parse
    E.mul(2, E.x)                       # build, numbers become constants
    E.fn("(* t t)", parameter="t")      # FunctionDefinition
"""

import re
from typing import Any, List, Tuple, Union

from .errors import ExpressionSyntaxError
from .nodes import (
    BinaryOp, Call, Constant, FunctionDefinition, Node, NodeKind, Variable,
    X, add, call, divide, multiply,
)

RawExpr = Union[float, str, List]

_TOKEN = re.compile(r"\(|\)|[^\s()]+")
_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

OPERATORS = {
    "+": NodeKind.ADD,
    "*": NodeKind.MULTIPLY,
    "/": NodeKind.DIVIDE,
}
OPERATOR_SYMBOLS = {kind: symbol for symbol, kind in OPERATORS.items()}

FUNCTION_ALIASES = {
    "^": "pow",
    "ln": "log",
}


# ============================================================
# Reader
# ============================================================

def read_sexpr(s: str) -> RawExpr:
    """
    Read an s-expression string into nested lists.

    Examples:
        "(+ x 1)" -> ["+", "x", 1.0]
        "(sin (* 2 x))" -> ["sin", ["*", 2.0, "x"]]

    Raises:
        ExpressionSyntaxError: on empty input, unbalanced parentheses,
            text left over after the first expression, or nesting too
            deep for the interpreter stack.
    """
    tokens = _TOKEN.findall(s)
    if not tokens:
        raise ExpressionSyntaxError("empty expression")

    try:
        expr, pos = _read(tokens, 0)
    except RecursionError:
        raise ExpressionSyntaxError("expression nested too deeply") from None
    if pos != len(tokens):
        raise ExpressionSyntaxError(f"unexpected input after expression: {tokens[pos]!r}")
    return expr


def _read(tokens: List[str], pos: int) -> Tuple[RawExpr, int]:
    if pos >= len(tokens):
        raise ExpressionSyntaxError("unexpected end of input: missing ')'")

    token = tokens[pos]
    if token == ')':
        raise ExpressionSyntaxError("unexpected ')'")

    if token == '(':
        items = []
        pos += 1
        while True:
            if pos >= len(tokens):
                raise ExpressionSyntaxError("unexpected end of input: missing ')'")
            if tokens[pos] == ')':
                return items, pos + 1
            item, pos = _read(tokens, pos)
            items.append(item)

    if _NUMBER.match(token):
        return float(token), pos + 1
    return token, pos + 1


def to_node(raw: RawExpr, parameter: str = "x") -> Node:
    """
    Convert a read s-expression into an expression tree.

    Args:
        raw: Output of read_sexpr.
        parameter: Symbol that stands for the variable.

    Raises:
        ExpressionSyntaxError: for unknown symbols, empty forms, wrong
            operand counts for + * /, subtraction, or nested lambdas.
    """
    if isinstance(raw, float):
        return Constant(raw)

    if isinstance(raw, str):
        if raw == parameter:
            return X
        raise ExpressionSyntaxError(
            f"unknown symbol {raw!r} (the parameter is {parameter!r})")

    if not raw:
        raise ExpressionSyntaxError("empty form ()")

    head, rest = raw[0], raw[1:]
    if not isinstance(head, str):
        raise ExpressionSyntaxError(f"form must start with a symbol, got {head!r}")

    if head in OPERATORS:
        if len(rest) != 2:
            raise ExpressionSyntaxError(
                f"{head} takes exactly 2 operands, got {len(rest)}")
        left, right = (to_node(r, parameter) for r in rest)
        return BinaryOp(OPERATORS[head], left, right)

    if head == "-":
        raise ExpressionSyntaxError(
            "subtraction is not supported; write (+ a (* -1 b))")

    if head == "lambda":
        raise ExpressionSyntaxError("nested function definitions are not supported")

    name = FUNCTION_ALIASES.get(head, head)
    return Call(name, [to_node(r, parameter) for r in rest])


def _convert(raw: RawExpr, parameter: str) -> Node:
    try:
        return to_node(raw, parameter)
    except RecursionError:
        raise ExpressionSyntaxError("expression nested too deeply") from None


def parse_expression(s: str, parameter: str = "x") -> Node:
    """Parse s-expression text into an expression tree."""
    return _convert(read_sexpr(s), parameter)


def parse_function(s: str, parameter: str = "x") -> FunctionDefinition:
    """
    Parse a function definition.

    Accepts either ``(lambda (p) body)`` or a bare body, in which case
    the given parameter name is used.

    Examples:
        parse_function("(lambda (t) (sin t))")
        parse_function("(sin x)")
        parse_function("(sin y)", parameter="y")
    """
    raw = read_sexpr(s)
    if isinstance(raw, list) and raw and raw[0] == "lambda":
        if (len(raw) != 3 or not isinstance(raw[1], list) or len(raw[1]) != 1
                or not isinstance(raw[1][0], str)):
            raise ExpressionSyntaxError("expected (lambda (parameter) body)")
        parameter = raw[1][0]
        raw = raw[2]

    if not parameter.isidentifier():
        raise ExpressionSyntaxError(f"parameter must be an identifier, got {parameter!r}")
    return FunctionDefinition(parameter, _convert(raw, parameter))


# ============================================================
# Printer
# ============================================================

def format_sexpr(node: Node, parameter: str = "x") -> str:
    """
    Format an expression tree as an s-expression string.

    Examples:
        add(multiply(const(2), X), const(1)) -> "(+ (* 2.0 x) 1.0)"
        call("sin", X) -> "(sin x)"
    """
    if isinstance(node, Constant):
        return repr(node.value)
    if isinstance(node, Variable):
        return parameter
    if isinstance(node, BinaryOp):
        return (f"({OPERATOR_SYMBOLS[node.kind]} {format_sexpr(node.left, parameter)} "
                f"{format_sexpr(node.right, parameter)})")
    if isinstance(node, Call):
        parts = [node.name] + [format_sexpr(a, parameter) for a in node.args]
        return "(" + " ".join(parts) + ")"
    raise TypeError(f"cannot format {type(node).__name__} as an expression")


def format_function(f: FunctionDefinition) -> str:
    """Format a function definition as ``(lambda (p) body)``."""
    return f"(lambda ({f.parameter}) {format_sexpr(f.body, f.parameter)})"


# ============================================================
# Expression Builder
# ============================================================

class _ExprBuilder:
    """
    Expression builder for dydx.

    Examples:
        from dydx import E

        # Parse s-expression text
        expr = E("(+ x (* 2 x))")

        # Build programmatically; numbers become constants and strings
        # are parsed
        expr = E.add(E.x, E.mul(2, E.x))
        expr = E.call("sin", "(* 2 x)")

        # Wrap a body as a function definition
        f = E.fn(expr)
    """

    def __call__(self, s: str, parameter: str = "x") -> Node:
        """
        Parse an s-expression string.

        Examples:
            E("(+ x 1)") -> add(X, const(1))
            E("(sin t)", parameter="t") -> call("sin", X)
        """
        return parse_expression(s, parameter)

    @property
    def x(self) -> Variable:
        """The variable."""
        return X

    def const(self, value: Union[int, float]) -> Constant:
        """Create a constant."""
        return Constant(value)

    def add(self, left: Any, right: Any) -> BinaryOp:
        return add(_coerce(left), _coerce(right))

    def mul(self, left: Any, right: Any) -> BinaryOp:
        return multiply(_coerce(left), _coerce(right))

    def div(self, left: Any, right: Any) -> BinaryOp:
        return divide(_coerce(left), _coerce(right))

    def call(self, name: str, *args: Any) -> Call:
        """
        Build a function call.

        Example:
            E.call("pow", E.x, 3) -> call("pow", X, const(3))
        """
        return call(name, *(_coerce(a) for a in args))

    def fn(self, body: Any, parameter: str = "x") -> FunctionDefinition:
        """
        Build a function definition.

        A string body is parsed with the given parameter name.
        """
        if isinstance(body, str):
            return FunctionDefinition(parameter, parse_expression(body, parameter))
        return FunctionDefinition(parameter, _coerce(body))

    def __repr__(self) -> str:
        return "E (expression builder)"


def _coerce(value: Any) -> Node:
    if isinstance(value, Node):
        return value
    if isinstance(value, bool):
        raise TypeError("booleans are not expressions")
    if isinstance(value, (int, float)):
        return Constant(value)
    if isinstance(value, str):
        return parse_expression(value)
    raise TypeError(f"cannot build an expression from {type(value).__name__}")


# Singleton instance
E = _ExprBuilder()
