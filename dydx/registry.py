"""
Rule registry for dydx.

The registry holds two read-only tables:

    kind_rules   NodeKind -> rule   (constant, variable, add, multiply, divide, call)
    call_rules   name     -> rule   (the nine elementary functions, plus extras)

The CALL entry of kind_rules is always the registry's own dispatch_call,
which looks the function name up in call_rules.

build_registry() is the one-time initialization. The tables are wrapped
in MappingProxyType and never change afterwards, so a Registry can be
shared between any number of concurrent differentiations.

Extra functions can be registered at build time:

    from dydx import unary_rule

    def _sinh(node, u, d):
        return multiply(call("cosh", u), d(u))

    registry = build_registry({"sinh": unary_rule(_sinh)})
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .errors import UnsupportedExpressionKind, UnsupportedFunction
from .nodes import Call, Function, Node, NodeKind
from .rules import ELEMENTARY_RULES, NODE_RULES, CallRule, Differentiate, Rule

logger = logging.getLogger(__name__)


class Registry:
    """Immutable dispatch tables mapping node kinds and function names to rules."""

    __slots__ = ('kind_rules', 'call_rules')

    def __init__(self, kind_rules: Mapping[NodeKind, Rule],
                 call_rules: Mapping[str, CallRule]):
        """
        Args:
            kind_rules: Rules for the non-call node kinds.
            call_rules: Rules for function calls, keyed by name.

        Raises:
            ValueError: if kind_rules has a CALL entry. Calls are always
                dispatched through call_rules.
        """
        if NodeKind.CALL in kind_rules:
            raise ValueError("kind_rules must not contain a CALL rule; "
                             "calls are dispatched through call_rules")
        kinds = dict(kind_rules)
        kinds[NodeKind.CALL] = self.dispatch_call
        object.__setattr__(self, 'call_rules', MappingProxyType(dict(call_rules)))
        object.__setattr__(self, 'kind_rules', MappingProxyType(kinds))

    def __setattr__(self, name: str, value: Any):
        raise AttributeError("Registry is immutable")

    def kind_rule(self, node: Any) -> Rule:
        """
        Return the rule for a node's kind.

        Raises:
            UnsupportedExpressionKind: if the node has no kind or the kind
                has no registered rule.
        """
        kind = getattr(node, "kind", None)
        rule = self.kind_rules.get(kind) if isinstance(kind, NodeKind) else None
        if rule is None:
            raise UnsupportedExpressionKind(node)
        return rule

    def call_rule(self, name: str) -> CallRule:
        """
        Return the rule for a function name.

        Raises:
            UnsupportedFunction: if no rule is registered under name.
        """
        rule = self.call_rules.get(name)
        if rule is None:
            raise UnsupportedFunction(name)
        return rule

    def dispatch_call(self, node: Call, d: Differentiate) -> Node:
        """The CALL kind rule: hand the whole Call node to its function's rule."""
        return self.call_rule(node.name)(node, d)

    def functions(self):
        """Return the registered function names, sorted."""
        return sorted(self.call_rules)

    def __contains__(self, name: str) -> bool:
        return name in self.call_rules

    def __repr__(self) -> str:
        return f"Registry(functions={self.functions()})"


def _validate_extra(name: Any, rule: Any) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"function name must be a non-empty string, got {name!r}")
    if name in {f.value for f in Function}:
        raise ValueError(f"cannot override built-in function {name!r}")
    if not callable(rule):
        raise ValueError(f"rule for {name!r} is not callable")


def build_registry(extra_functions: Optional[Dict[str, CallRule]] = None) -> Registry:
    """
    Build the dispatch tables.

    Args:
        extra_functions: Optional mapping of additional function names to
            call rules. Names must be non-empty strings that do not shadow
            one of the nine built-in functions.

    Returns:
        A new immutable Registry.

    Raises:
        ValueError: if an extra function fails validation.
    """
    call_rules: Dict[str, CallRule] = {
        fn.value: rule for fn, rule in ELEMENTARY_RULES.items()
    }
    for name, rule in (extra_functions or {}).items():
        _validate_extra(name, rule)
        call_rules[name] = rule
        logger.debug("registered extra function %r", name)

    return Registry(NODE_RULES, call_rules)


# Built once at import
DEFAULT_REGISTRY = build_registry()
