#!/usr/bin/env python3
"""
dydx Command-Line Interface

Differentiates s-expressions from the command line, from script files,
from a pipe, or interactively.

Usage:
    dydx                                 # Start REPL
    dydx script.dydx                     # Run script
    dydx -e "(* x (sin x))"              # Differentiate one expression
    dydx -p t -e "(exp (* 2 t))"         # Use t as the parameter
    dydx -f hyperbolic.py -e "(sinh x)"  # Load extra function rules
    echo "(pow x 3)" | dydx              # Filter mode

Each input line is a function body, or a (lambda (p) body) definition.
The derivative body is printed in the same syntax, unsimplified.

Script Format (.dydx files):
    #!/usr/bin/env dydx
    :param t
    :trace on

    (sin t)
    (lambda (u) (pow u u))

REPL Commands:
    :help              Show help
    :param NAME        Set the parameter name (default x)
    :trace on|off      Toggle tracing
    :load FILE         Load extra function rules from a Python file
    :functions         List known functions
    :depth N           Set the maximum nesting depth
    :quit              Exit

Function files define a FUNCTIONS dict mapping names to call rules,
the same way preludes are plain Python modules.
"""

import argparse
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from .engine import DEFAULT_MAX_DEPTH, Differentiator
from .registry import build_registry
from .rules import CallRule
from .syntax import format_sexpr, parse_function

logger = logging.getLogger(__name__)

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

# process_line results that mean the line failed
FAILURE_PREFIXES = ("Error", "Unknown", "Usage")

# Standard search paths for function files
FUNCTION_SEARCH_PATHS = [
    Path("./functions"),
    Path.home() / ".config" / "dydx" / "functions",
]


def load_custom_functions(name_or_path: str) -> Optional[Dict[str, CallRule]]:
    """
    Load extra function rules from a Python file.

    The file should define a FUNCTIONS dict.

    Args:
        name_or_path: Either a path to a .py file, or a name to search for

    Returns:
        The FUNCTIONS dict from the file, or None if not found
    """
    path = Path(name_or_path)

    if path.suffix == ".py" or "/" in name_or_path or "\\" in name_or_path:
        search_paths = [path]
    else:
        search_paths = [d / f"{name_or_path}.py" for d in FUNCTION_SEARCH_PATHS]

    for candidate in search_paths:
        if not candidate.exists():
            continue
        spec = importlib.util.spec_from_file_location("dydx_custom_functions", candidate)
        if spec is None or spec.loader is None:
            continue
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            print(f"Error loading functions from {candidate}: {e}", file=sys.stderr)
            continue
        functions = getattr(module, "FUNCTIONS", None)
        if isinstance(functions, dict):
            logger.debug("loaded %d function(s) from %s", len(functions), candidate)
            return functions
        logger.debug("%s defines no FUNCTIONS dict", candidate)

    return None


class DydxCompleter:
    """Tab completer for the dydx REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":param", ":trace", ":load", ":functions", ":depth",
    ]
    TRACE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'DydxREPL'):
        self.repl = repl
        self.matches: List[str] = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)
        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> List[str]:
        line = line.lstrip()

        if line.startswith(":trace "):
            return [t for t in self.TRACE_OPTIONS if t.startswith(text)]

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # Function names after an open paren
        stem = text.lstrip("(")
        prefix = text[:len(text) - len(stem)]
        return [prefix + name for name in self.repl.engine.registry.functions()
                if name.startswith(stem)]


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
    return depth


def is_failure(result: str) -> bool:
    """True if a process_line result reports an error or a misused command."""
    return result.startswith(FAILURE_PREFIXES)


class DydxREPL:
    """Interactive REPL for dydx."""

    def __init__(self):
        self.engine = Differentiator()
        self.extra_functions: Dict[str, CallRule] = {}
        self.parameter = "x"
        self.trace = False
        self.running = True
        self.multi_line_buffer = ""

        if HAS_READLINE:
            self.history_file = Path.home() / ".dydx_history"
            try:
                readline.read_history_file(self.history_file)
            except (FileNotFoundError, OSError):
                pass
            readline.set_history_length(1000)

            self.completer = DydxCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.debug("could not save history: %s", e)

    def load_functions(self, name_or_path: str) -> Optional[str]:
        """
        Load extra function rules and rebuild the engine with them.

        Returns:
            An error message, or None on success.
        """
        functions = load_custom_functions(name_or_path)
        if functions is None:
            return f"Error: no FUNCTIONS dict found in {name_or_path}"
        merged = {**self.extra_functions, **functions}
        try:
            registry = build_registry(merged)
        except ValueError as e:
            return f"Error: {e}"
        self.extra_functions = merged
        self.engine = Differentiator(registry, max_depth=self.engine.max_depth)
        return None

    def set_max_depth(self, depth: int):
        self.engine = Differentiator(self.engine.registry, max_depth=depth)

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "param":
            if not arg:
                return f"Parameter: {self.parameter}"
            if not arg.isidentifier():
                return f"Error: invalid parameter name: {arg}"
            self.parameter = arg
            return f"Parameter set to: {arg}"

        elif cmd == "trace":
            if arg.lower() in ("on", "true", "1"):
                self.trace = True
            elif arg.lower() in ("off", "false", "0"):
                self.trace = False
            else:
                self.trace = not self.trace
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "load":
            if not arg:
                return "Usage: :load FILENAME"
            error = self.load_functions(arg)
            if error:
                return error
            return f"Loaded functions from {arg}"

        elif cmd == "functions":
            return "Functions: " + ", ".join(self.engine.registry.functions())

        elif cmd == "depth":
            if not arg:
                return f"Max depth: {self.engine.max_depth}"
            try:
                self.set_max_depth(int(arg))
            except ValueError:
                return f"Error: max depth must be a positive integer, got {arg}"
            return f"Max depth set to: {self.engine.max_depth}"

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        """Return help text."""
        return """dydx REPL Commands:
  :help              Show this help
  :param NAME        Set the parameter name (default x)
  :trace on|off      Toggle tracing
  :load FILE         Load extra function rules from a Python file
  :functions         List known functions
  :depth N           Set the maximum nesting depth
  :quit              Exit

Syntax:
  (* x (sin x))                  Differentiate a body in the current parameter
  (lambda (t) (exp (* 2 t)))     Differentiate a function definition
  + * /                          Binary operators (exactly two operands)
  sin cos tan asin acos atan     Elementary functions
  exp log pow (^)                (log u b) is log base b
"""

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        line = line.strip()

        if not line or line.startswith("#"):
            return None

        if line.startswith(":"):
            return self.handle_command(line)

        try:
            f = parse_function(line, self.parameter)
            if self.trace:
                df, trace = self.engine(f, trace=True)
                return f"{format_sexpr(df.body, df.parameter)}\n{trace.format('rules')}"
            df = self.engine(f)
            return format_sexpr(df.body, df.parameter)
        except Exception as e:
            return f"Error: {e}"

    def run(self):
        """Run the REPL loop."""
        print("dydx - symbolic derivatives")
        print("Type :help for help, :quit to exit")
        print()

        while self.running:
            try:
                prompt = "...... " if self.multi_line_buffer else "d/dx> "
                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += "\n" + line
                else:
                    self.multi_line_buffer = line

                paren_count = count_parens(self.multi_line_buffer)
                if paren_count > 0:
                    continue
                elif paren_count < 0:
                    print("Error: Unbalanced parentheses (too many closing)")
                    self.multi_line_buffer = ""
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class ScriptRunner:
    """Runs dydx scripts, single expressions and stdin filters."""

    def __init__(self):
        self.repl = DydxREPL()

    def run_script(self, path: Path, quiet: bool = False) -> int:
        """
        Run a script file.

        Args:
            path: Path to the script
            quiet: If True, don't print command confirmations

        Returns:
            Exit code (0 for success)
        """
        try:
            lines = path.read_text().splitlines()
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            return 1

        for lineno, line in enumerate(lines, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            if not result:
                continue
            if is_failure(result):
                print(f"{path}:{lineno}: {result}", file=sys.stderr)
                return 1
            if line.startswith(":"):
                # Command confirmations are not part of the output
                if not quiet:
                    print(result, file=sys.stderr)
                continue
            print(result)

        return 0

    def run_expression(self, expr_str: str) -> int:
        """
        Differentiate a single expression.

        Returns:
            Exit code (0 for success)
        """
        result = self.repl.process_line(expr_str)
        if result:
            print(result)
            if is_failure(result):
                return 1
        return 0

    def run_stdin(self) -> int:
        """
        Read expressions from stdin and differentiate them.

        Returns:
            Exit code (0 for success)
        """
        for line in sys.stdin:
            result = self.repl.process_line(line)
            if result:
                print(result)
                if is_failure(result):
                    return 1
        return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="dydx",
        description="dydx - exact symbolic derivatives of one-variable expressions",
        epilog="Examples:\n"
               "  dydx                            Start REPL\n"
               "  dydx script.dydx                Run script\n"
               "  dydx -e '(* x (sin x))'         Differentiate an expression\n"
               "  dydx -p t -e '(exp t)'          Use t as the parameter\n"
               "  echo '(pow x 3)' | dydx         Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "script",
        nargs="?",
        help="Script file to run (.dydx)"
    )

    parser.add_argument(
        "-e", "--expr",
        help="Differentiate a single expression"
    )

    parser.add_argument(
        "-p", "--param",
        default="x",
        help="Parameter name used in bare bodies (default: x)"
    )

    parser.add_argument(
        "-f", "--functions",
        action="append",
        default=[],
        help="Load extra function rules from a Python file (repeatable)"
    )

    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        help="Show the rules applied"
    )

    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum expression nesting depth (default: {DEFAULT_MAX_DEPTH})"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debugging output to stderr"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        stream=sys.stderr,
    )

    runner = ScriptRunner()
    repl = runner.repl

    if not args.param.isidentifier():
        print(f"Invalid parameter name: {args.param}", file=sys.stderr)
        sys.exit(1)
    repl.parameter = args.param
    repl.trace = args.trace

    try:
        repl.set_max_depth(args.max_depth)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for functions_file in args.functions:
        error = repl.load_functions(functions_file)
        if error:
            print(f"{functions_file}: {error}", file=sys.stderr)
            sys.exit(1)
        if not args.quiet:
            print(f"Loaded functions from {functions_file}", file=sys.stderr)

    if args.script:
        sys.exit(runner.run_script(Path(args.script), quiet=args.quiet))

    elif args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        sys.exit(runner.run_stdin())

    else:
        repl.run()


if __name__ == "__main__":
    main()
