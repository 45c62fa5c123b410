"""
Differentiation engine for dydx.

The engine walks an expression tree, looks up each node's rule in a
Registry and applies it. Rules recurse through the callback the engine
gives them, which is where the depth guard lives.

    from dydx import Differentiator, E

    engine = Differentiator()
    f = E.fn(E("(* x (sin x))"))
    df = engine(f)                     # FunctionDefinition
    df, trace = engine(f, trace=True)  # with a DerivationTrace

Tracing:
    Each rule application is recorded as a DerivationStep once its result
    is known, so steps appear children first and the root step comes last.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from .errors import DifferentiationError, ExpressionTooDeep
from .nodes import FunctionDefinition, Node, NodeKind
from .registry import DEFAULT_REGISTRY, Registry
from .syntax import format_sexpr

logger = logging.getLogger(__name__)

# Each level of nesting costs a few interpreter frames, so this stays
# well clear of the default recursion limit.
DEFAULT_MAX_DEPTH = 100

_KIND_LABELS: Dict[NodeKind, str] = {
    NodeKind.CONSTANT: "constant",
    NodeKind.VARIABLE: "variable",
    NodeKind.ADD: "sum",
    NodeKind.MULTIPLY: "product",
    NodeKind.DIVIDE: "quotient",
}


def rule_label(node: Node) -> str:
    """Name of the rule that handles node: a kind label or the function name."""
    if node.kind is NodeKind.CALL:
        return node.name
    return _KIND_LABELS[node.kind]


class DerivationStep:
    """A single rule application."""

    def __init__(self, rule: str, before: Node, after: Node, depth: int):
        self.rule = rule
        self.before = before
        self.after = after
        self.depth = depth

    def format(self, parameter: str = "x") -> str:
        return (f"{self.rule}: {format_sexpr(self.before, parameter)} → "
                f"{format_sexpr(self.after, parameter)}")

    def __repr__(self) -> str:
        return self.format()

    def to_dict(self, parameter: str = "x") -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "rule": self.rule,
            "depth": self.depth,
            "before": format_sexpr(self.before, parameter),
            "after": format_sexpr(self.after, parameter),
        }


class DerivationTrace:
    """
    A trace of every rule applied while differentiating one function.

    Formatting options:
        - format("verbose"): initial body, each step, final body (default)
        - format("compact"): single line showing the rule chain
        - format("rules"): just the rule names applied
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self, parameter: str = "x"):
        self.parameter = parameter
        self.steps: List[DerivationStep] = []
        self.initial: Optional[Node] = None
        self.final: Optional[Node] = None

    def add_step(self, step: DerivationStep):
        self.steps.append(step)

    def format(self, style: str = "verbose") -> str:
        """
        Format the trace.

        Args:
            style: One of "verbose", "compact", "rules"

        Returns:
            Formatted string representation of the trace.
        """
        if style == "compact":
            return (f"{self._fmt(self.initial)} --[{', '.join(self.rules_applied())}]--> "
                    f"{self._fmt(self.final)}")

        elif style == "rules":
            rules = self.rules_applied()
            return " -> ".join(rules) if rules else "(no rules applied)"

        elif style == "verbose":
            return repr(self)

        raise ValueError(f"unknown trace style: {style!r}")

    def _fmt(self, node: Optional[Node]) -> str:
        return format_sexpr(node, self.parameter) if node is not None else "?"

    def __repr__(self) -> str:
        lines = [f"Initial: {self._fmt(self.initial)}"]
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {'  ' * step.depth}{step.format(self.parameter)}")
        lines.append(f"Final: {self._fmt(self.final)}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any rule was applied."""
        return len(self.steps) > 0

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "parameter": self.parameter,
            "initial": self._fmt(self.initial),
            "final": self._fmt(self.final),
            "steps": [step.to_dict(self.parameter) for step in self.steps],
            "step_count": len(self.steps),
        }

    def rule_counts(self) -> Dict[str, int]:
        """Count how many times each rule was applied."""
        counts: Dict[str, int] = {}
        for step in self.steps:
            counts[step.rule] = counts.get(step.rule, 0) + 1
        return counts

    def rules_applied(self) -> List[str]:
        """Rule names in order of completion."""
        return [step.rule for step in self.steps]


class Differentiator:
    """
    Symbolic differentiation of one-parameter functions.

    The engine owns its Registry (DEFAULT_REGISTRY unless one is given)
    and holds no other state, so a single instance can serve concurrent
    callers.

    Example:
        from dydx import Differentiator, build_registry

        engine = Differentiator()
        engine = Differentiator(build_registry({"sinh": sinh_rule}), max_depth=50)
    """

    def __init__(self, registry: Optional[Registry] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Initialize a Differentiator.

        Args:
            registry: Dispatch tables to use. Default: DEFAULT_REGISTRY.
            max_depth: Deepest node level that may be differentiated
                before ExpressionTooDeep is raised. The root is level 0.
                Running out of interpreter stack below this limit raises
                ExpressionTooDeep as well.
        """
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 1:
            raise ValueError(f"max_depth must be a positive integer, got {max_depth!r}")
        self._registry = registry if registry is not None else DEFAULT_REGISTRY
        self._max_depth = max_depth

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def differentiate(
        self,
        f: FunctionDefinition,
        trace: bool = False,
    ) -> Union[FunctionDefinition, Tuple[FunctionDefinition, DerivationTrace]]:
        """
        Differentiate a function with respect to its parameter.

        Args:
            f: The function to differentiate.
            trace: If True, also return a DerivationTrace.

        Returns:
            A new FunctionDefinition with the same parameter, or a
            (definition, trace) tuple when trace=True.

        Raises:
            TypeError: if f is not a FunctionDefinition.
            UnsupportedExpressionKind, UnsupportedFunction, MalformedCall,
            ExpressionTooDeep: if the body cannot be differentiated. No
                partial result is produced.
        """
        if not isinstance(f, FunctionDefinition):
            raise TypeError(f"expected FunctionDefinition, got {type(f).__name__}")

        derivation = DerivationTrace(f.parameter) if trace else None
        logger.debug("differentiating %s", f.parameter)
        try:
            body = self._walk(f.body, derivation)
        except DifferentiationError as e:
            logger.debug("differentiation failed: %s", e)
            raise

        result = FunctionDefinition(f.parameter, body)
        if derivation is not None:
            derivation.initial = f.body
            derivation.final = body
            return result, derivation
        return result

    def differentiate_node(self, node: Node,
                           trace: Optional[DerivationTrace] = None) -> Node:
        """Differentiate a bare expression tree."""
        return self._walk(node, trace)

    def _walk(self, node: Node, trace: Optional[DerivationTrace]) -> Node:
        try:
            return self._dispatch(node, 0, trace)
        except RecursionError:
            # max_depth is larger than the interpreter stack allows
            raise ExpressionTooDeep(self._max_depth) from None

    def _dispatch(self, node: Node, depth: int,
                  trace: Optional[DerivationTrace]) -> Node:
        if depth > self._max_depth:
            raise ExpressionTooDeep(self._max_depth)

        rule = self._registry.kind_rule(node)

        def d(child: Node) -> Node:
            return self._dispatch(child, depth + 1, trace)

        result = rule(node, d)
        if trace is not None:
            trace.add_step(DerivationStep(rule_label(node), node, result, depth))
        return result

    def __call__(self, f: FunctionDefinition, **kwargs):
        """Shorthand for differentiate()."""
        return self.differentiate(f, **kwargs)

    def __repr__(self) -> str:
        return f"Differentiator(max_depth={self._max_depth}, {self._registry!r})"


_default_engine = Differentiator()


def differentiate(f: FunctionDefinition, trace: bool = False):
    """
    Differentiate f with the default engine.

    Example:
        from dydx import differentiate, E

        differentiate(E.fn(E("(* x x)")))
    """
    return _default_engine.differentiate(f, trace=trace)
