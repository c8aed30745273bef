# oida_runtime.py

import inspect
import math
import random
import sys
from typing import Any, Callable, Dict, List, Literal, Optional
from dataclasses import dataclass, field

from oidascript.oida_datatypes import Environment, OidaError, SyntaxFailure, TypeMismatch, IndexOutOfRange, MISSING
from oidascript.oida_http import DEFAULT_TIMEOUT
from oidascript.oida_interpreter import Evaluator, find_key, is_number, type_name, values_equal
from oidascript.oida_lexer import tokenize
from oidascript.oida_parser import parse
from oidascript.oida_printer import Printer, to_text


# ===================================================================
# 1. The Standard Library
# ===================================================================

def _require_list(name, value):
    if not isinstance(value, list):
        raise TypeMismatch(f"{name} needs an array, got {type_name(value)}")
    return value


class StdLib:
    """Contains Python implementations for the property builtins (`arr.umfang`, `arr.ane(x)`, ...)."""

    # Results of these are written back to the variable they were called on
    STORE_BACK = frozenset({'ane', 'ordne'})
    ALIASES = {'numma': 'umfang'}

    def __init__(self, evaluator):
        self.evaluator = evaluator
        table = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                # The receiver is the first parameter; the rest are call arguments
                arity = len(inspect.signature(member).parameters) - 1
                table[name[1:]] = (member, arity)
        for alias, target in self.ALIASES.items():
            table[alias] = table[target]
        evaluator.builtins = table
        evaluator.store_back = self.STORE_BACK

    # --- Size and access ---
    def _umfang(self, value):
        if isinstance(value, (list, dict, str)):
            return len(value)
        raise TypeMismatch(f"umfang needs an array or text, got {type_name(value)}")

    def _ausse(self, value, start):
        if not is_number(start) or isinstance(start, float):
            raise TypeMismatch(f"ausse needs an integer index, got {type_name(start)}")
        if isinstance(value, (list, str)):
            if not 0 <= start <= len(value):
                raise IndexOutOfRange(f"ausse start {start} out of range for length {len(value)}")
            return value[start:]
        raise TypeMismatch(f"ausse needs an array or text, got {type_name(value)}")

    def _gibts(self, value, item):
        match value:
            case list():
                return any(values_equal(x, item) for x in value)
            case dict():
                return find_key(value, item) is not MISSING
            case str():
                if not isinstance(item, str):
                    raise TypeMismatch(f"gibts on text needs text, got {type_name(item)}")
                return item in value
        raise TypeMismatch(f"gibts needs an array or text, got {type_name(value)}")

    def _nimmIrgendwas(self, value):
        if isinstance(value, dict):
            value = list(value.values())
        _require_list('nimmIrgendwas', value)
        if not value:
            raise TypeMismatch("nimmIrgendwas on an empty array")
        return random.choice(value)

    # --- Mutation (stored back by the evaluator) ---
    def _ane(self, value, item):
        _require_list('ane', value)
        value.append(item)
        return value

    def _ordne(self, value):
        _require_list('ordne', value)
        if all(is_number(x) for x in value) or all(isinstance(x, str) for x in value):
            return sorted(value)
        raise TypeMismatch("ordne needs an array of only numbers or only texts")

    # --- Conversion and predicates ---
    def _zuText(self, value): return to_text(value)
    def _isText(self, value): return isinstance(value, str)
    def _isArray(self, value): return isinstance(value, (list, dict))
    def _keinArray(self, value): return not isinstance(value, (list, dict))
    def _isNumma(self, value): return is_number(value)

    def _zuNumma(self, value):
        match value:
            case bool():
                return int(value)
            case int() | float():
                return value
            case str():
                text = value.strip()
                try:
                    return int(text)
                except ValueError:
                    pass
                try:
                    number = float(text)
                except ValueError:
                    raise TypeMismatch(f"Cannot turn {value!r} into a number") from None
                if not math.isfinite(number):
                    raise TypeMismatch(f"Cannot turn {value!r} into a finite number")
                return number
        raise TypeMismatch(f"Cannot turn {type_name(value)} into a number")


# ===================================================================
# 2. Script Execution
# ===================================================================

Token = Dict[str, Any]

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None
    errors: List[str] = field(default_factory=list)
    side_effects: List[Dict] = field(default_factory=list)

    @property
    def stdout(self) -> str:
        return ''.join(e['message'] + '\n' for e in self.side_effects if e.get('topics') == ['stdout'])

    def format_error(self) -> str:
        """Formats every diagnostic of the run, one after another."""
        if self.status != 'error':
            return ""
        if self.errors:
            return "\n".join(self.errors)
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Tokenizes, parses, and executes Oida code against one root Environment."""

    # Python frame budget while a script runs; each Oida call costs about five
    RECURSION_LIMIT = 10000
    # Innermost frames shown in a diagnostic stacktrace
    STACKTRACE_FRAMES = 8

    def __init__(self, fetcher: Optional[Callable[[str], Any]] = None, fetch_timeout: float = DEFAULT_TIMEOUT):
        self.root_env = Environment()
        self.evaluator = Evaluator(fetcher=fetcher, fetch_timeout=fetch_timeout)
        self.printer = Printer()

    def _format_parse_error(self, e: SyntaxFailure, source: str) -> str:
        tok = e.token
        if tok is not None:
            return f"ParseError: {e} (line {tok.line}, col {tok.col})\n{self._source_context(source, tok.line, tok.col)}"
        return f"ParseError: {e}"

    def _format_runtime_error(self, e: Exception) -> str:
        match e:
            case OidaError():
                msg = f"{e.kind}: {e}"
            case RecursionError():
                msg = "InternalError: maximum call depth exceeded"
            case _:
                msg = f"InternalError: {e}"
        st = self._format_stacktrace()
        if st:
            msg += "\n" + st
        return msg

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            ln = str(i).rjust(width)
            out.append(f"{prefix} {ln} | {lines[i - 1]}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        frames = []
        hidden = len(stack) - self.STACKTRACE_FRAMES
        if hidden > 0:
            frames.append(f"... {hidden} more")
            stack = stack[hidden:]
        for frame in stack:
            args_s = " ".join(self.printer.pformat(a, True) for a in frame.get('args') or [])
            frames.append(f"({frame['name']} {args_s})" if args_s else f"({frame['name']})")
        return "oida stacktrace: " + " ".join(frames)

    def handle_script(self, source_code: str) -> 'ExecutionResult':
        """The main entry point to execute a script.

        Each top-level statement runs on its own: a runtime error is recorded
        as a diagnostic and execution moves on to the next statement. A parse
        error means nothing runs.
        """
        effects = self.evaluator.side_effects
        effects.clear()
        self.evaluator.call_stack.clear()

        # 1. Tokenize and parse
        try:
            statements = parse(tokenize(source_code))
        except SyntaxFailure as e:
            msg = self._format_parse_error(e, source_code)
            effects.append({'topics': ['stderr'], 'message': msg})
            tok = e.token
            return ExecutionResult(
                status='error',
                error_message=msg,
                error_token={'line': tok.line, 'col': tok.col, 'text': tok.lexeme} if tok else None,
                errors=[msg],
                side_effects=list(effects),
            )

        # 2. Evaluate, one top-level statement at a time
        errors: List[str] = []
        value = None
        old_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(old_limit, self.RECURSION_LIMIT))
        try:
            for stmt in statements:
                self.evaluator.call_stack.clear()
                try:
                    value = self.evaluator.eval(stmt, self.root_env)
                except Exception as e:
                    msg = self._format_runtime_error(e)
                    errors.append(msg)
                    effects.append({'topics': ['stderr'], 'message': msg})
                    value = None
        finally:
            sys.setrecursionlimit(old_limit)

        return ExecutionResult(
            status='error' if errors else 'success',
            value=value,
            error_message=errors[0] if errors else None,
            errors=errors,
            side_effects=list(effects),
        )
