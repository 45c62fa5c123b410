#!/usr/bin/env python3
"""
dydx Feature Demonstration

This script walks through the main features of the dydx library.
"""

import math

from dydx import (
    Differentiator, E, build_registry, differentiate,
    format_function, format_sexpr,
    DifferentiationError,
)


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_basic_rules():
    """Sum, product, quotient and chain rules."""
    section("Basic Rules")

    examples = [
        "(+ x 3)",
        "(* x x)",
        "(/ x 2)",
        "(sin (* 2 x))",
    ]

    for expr_str in examples:
        df = differentiate(E.fn(expr_str))
        print(f"  d/dx {expr_str} = {format_sexpr(df.body)}")


def demo_power_rule():
    """The three shapes of pow."""
    section("Powers")

    examples = [
        ("(pow x 3)", "variable base, constant exponent"),
        ("(pow 2 x)", "constant base"),
        ("(pow x x)", "general case, rewritten as exp(b log a)"),
    ]

    for expr_str, desc in examples:
        df = differentiate(E.fn(expr_str))
        print(f"  {expr_str} ({desc})")
        print(f"    => {format_sexpr(df.body)}")


def demo_parameters():
    """Function definitions carry their own parameter name."""
    section("Parameters")

    f = E.fn("(exp (* t t))", parameter="t")
    print(f"  {format_function(f)}")
    print(f"  => {format_function(differentiate(f))}")


def demo_tracing():
    """Show which rules fire."""
    section("Tracing")

    df, trace = differentiate(E.fn("(* x (log x))"), trace=True)
    print(trace)
    print()
    print(f"  rules: {trace.format('rules')}")
    print(f"  counts: {trace.rule_counts()}")


def demo_errors():
    """Unsupported input is reported, never silently dropped."""
    section("Errors")

    for expr_str in ["(sqrt x)", "(pow x)", "(log x 2 3)"]:
        try:
            differentiate(E.fn(expr_str))
        except DifferentiationError as e:
            print(f"  {expr_str}: {type(e).__name__}: {e}")


def demo_custom_functions():
    """Extend the registry with new functions."""
    section("Custom Functions")

    def sqrt_rule(node, d):
        (u,) = node.args
        return E.div(d(u), E.mul(2, node))

    engine = Differentiator(build_registry({"sqrt": sqrt_rule}))
    df = engine(E.fn("(sqrt x)"))
    print(f"  d/dx (sqrt x) = {format_sexpr(df.body)}")


def demo_checking_numerically():
    """Compare a derivative with a finite difference, outside the engine."""
    section("Numeric Check")

    funcs = {"sin": math.sin, "cos": math.cos, "pow": math.pow}

    def evaluate(node, x):
        if node.kind.value == "constant":
            return node.value
        if node.kind.value == "variable":
            return x
        if node.kind.value == "call":
            return funcs[node.name](*(evaluate(a, x) for a in node.args))
        left, right = evaluate(node.left, x), evaluate(node.right, x)
        return {"add": left + right, "multiply": left * right,
                "divide": left / right if right else math.nan}[node.kind.value]

    f = E.fn("(* (sin x) (pow x 2))")
    df = differentiate(f)
    h = 1e-6
    x = 1.3
    numeric = (evaluate(f.body, x + h) - evaluate(f.body, x - h)) / (2 * h)
    print(f"  symbolic: {evaluate(df.body, x):.8f}")
    print(f"  numeric:  {numeric:.8f}")


def main():
    """Run all demonstrations."""
    print("dydx - symbolic derivatives")

    demo_basic_rules()
    demo_power_rule()
    demo_parameters()
    demo_tracing()
    demo_errors()
    demo_custom_functions()
    demo_checking_numerically()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
