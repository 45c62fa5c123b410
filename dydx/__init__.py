"""
dydx - exact symbolic derivatives of one-variable expressions

Given a function of one parameter as an expression tree, dydx builds a new
tree that is its exact derivative, using the constant, variable, sum,
product, quotient and chain rules plus rules for nine elementary
functions: sin, cos, tan, asin, acos, atan, exp, log and pow.

Quick Start:
    from dydx import differentiate, E, format_function

    f = E.fn("(* x (sin x))")
    df = differentiate(f)
    format_function(df)
    # => "(lambda (x) (+ (* x (* (cos x) 1.0)) (* (sin x) 1.0)))"

The output is never simplified. Evaluating or tidying it up is left to the
caller.

Expression Syntax:
    (+ a b)  (* a b)  (/ a b)     binary operators, exactly two operands
    (sin u) (cos u) (tan u)       trigonometric functions
    (asin u) (acos u) (atan u)    inverse trigonometric functions
    (exp u) (log u) (log u b)     exponential, natural and base-b logarithm
    (pow a b)  or  (^ a b)        power
    (lambda (t) body)             function with parameter t

Errors:
    UnsupportedExpressionKind   node of a kind with no rule
    UnsupportedFunction         call to an unknown function
    MalformedCall               known function, wrong number of arguments
    ExpressionTooDeep           tree nested deeper than max_depth
    ExpressionSyntaxError       unreadable s-expression text
"""

__version__ = "0.1.0"

# Expression trees
from .nodes import (
    NodeKind,
    Function,
    Node,
    Constant,
    Variable,
    X,
    BinaryOp,
    Call,
    FunctionDefinition,
    const,
    add,
    multiply,
    divide,
    call,
)

# Errors
from .errors import (
    DifferentiationError,
    UnsupportedExpressionKind,
    UnsupportedFunction,
    MalformedCall,
    ExpressionTooDeep,
    ExpressionSyntaxError,
)

# Rules and registry
from .rules import (
    unary_rule,
    binary_rule,
    ELEMENTARY_RULES,
    NODE_RULES,
)
from .registry import Registry, build_registry, DEFAULT_REGISTRY

# Engine
from .engine import (
    Differentiator,
    DerivationStep,
    DerivationTrace,
    DEFAULT_MAX_DEPTH,
    differentiate,
)

# S-expression syntax
from .syntax import (
    E,
    read_sexpr,
    parse_expression,
    parse_function,
    format_sexpr,
    format_function,
)

# Public API
__all__ = [
    # Version
    "__version__",
    # Trees
    "NodeKind",
    "Function",
    "Node",
    "Constant",
    "Variable",
    "X",
    "BinaryOp",
    "Call",
    "FunctionDefinition",
    "const",
    "add",
    "multiply",
    "divide",
    "call",
    # Errors
    "DifferentiationError",
    "UnsupportedExpressionKind",
    "UnsupportedFunction",
    "MalformedCall",
    "ExpressionTooDeep",
    "ExpressionSyntaxError",
    # Rules
    "unary_rule",
    "binary_rule",
    "ELEMENTARY_RULES",
    "NODE_RULES",
    "Registry",
    "build_registry",
    "DEFAULT_REGISTRY",
    # Engine
    "Differentiator",
    "DerivationStep",
    "DerivationTrace",
    "DEFAULT_MAX_DEPTH",
    "differentiate",
    # Syntax
    "E",
    "read_sexpr",
    "parse_expression",
    "parse_function",
    "format_sexpr",
    "format_function",
]
