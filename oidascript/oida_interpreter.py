"""
The core Oida interpreter: a tree-walking Evaluator over the AST.
"""
import copy
import os
import sys
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from oidascript.oida_datatypes import (
    Environment, FunctionRef, ReturnSignal, is_return, unwrap_return, MISSING,
    Node, Literal, Identifier, ArrayLiteral, AssocLiteral,
    VariableDeclaration, Assignment, IndexAccess, IndexAssignment,
    PropertyAccess, Filter, BinaryArithmetic, UnaryArithmetic,
    Comparison, LogicalChain, If, For, While, ForEach,
    FunctionDefinition, FunctionCall, Fetch, Print, Return,
    UnknownIdentifier, TypeMismatch, ArityMismatch, ArithmeticFailure,
    UnknownOperator, UnknownNodeKind, IndexOutOfRange,
)
from oidascript.oida_http import HttpFetcher, DEFAULT_TIMEOUT
from oidascript.oida_printer import Printer


# =================================================================
# Value helpers
# =================================================================

def is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def is_truthy(v) -> bool:
    return bool(v)


def type_name(v) -> str:
    match v:
        case None:
            return 'absence'
        case bool():
            return 'boolean'
        case int() | float():
            return 'number'
        case str():
            return 'text'
        case list():
            return 'array'
        case dict():
            return 'associative array'
        case FunctionRef():
            return 'function'
    return type(v).__name__


def values_equal(a, b) -> bool:
    """Strict equality used by `gleich`, `isned` and `gibts`.

    Booleans only equal booleans, numbers compare numerically, anything
    else must be the same kind of value with equal contents.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    if isinstance(a, list):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict):
        return len(a) == len(b) and all(
            values_equal(ka, kb) and values_equal(a[ka], b[kb]) for ka, kb in zip(a, b)
        )
    return a == b


def is_key(v) -> bool:
    return isinstance(v, (str, bool)) or is_number(v)


def find_key(container: dict, key):
    """The stored key strictly equal to `key`, or MISSING.

    Python hashing treats `True` and `1` as the same key; this does not.
    """
    for stored in container:
        if values_equal(stored, key):
            return stored
    return MISSING


def put_key(container: dict, key, value):
    if not is_key(key):
        raise TypeMismatch(f"Associative array keys must be scalar, got {type_name(key)}")
    stored = find_key(container, key)
    if stored is MISSING and key in container:
        raise TypeMismatch(f"Key {key!r} collides with an existing key of another kind")
    container[key if stored is MISSING else stored] = value


def _check_orderable(left, op, right):
    if (is_number(left) and is_number(right)) or (isinstance(left, str) and isinstance(right, str)):
        return
    raise TypeMismatch(f"Cannot compare {type_name(left)} {op} {type_name(right)}")


# =================================================================
# Evaluator
# =================================================================

class Evaluator:
    """The Oida execution engine."""

    def __init__(self, fetcher: Optional[Callable[[str], Any]] = None, fetch_timeout: float = DEFAULT_TIMEOUT):
        self.side_effects: List[Dict] = []
        self.call_stack: List[Dict] = []
        self.fetcher = fetcher or HttpFetcher(timeout=fetch_timeout)
        self.printer = Printer()
        # Property builtins, bound by StdLib
        self.builtins: Dict[str, tuple] = {}
        self.store_back: frozenset = frozenset()
        from oidascript.oida_runtime import StdLib
        StdLib(self)

    def _push_frame(self, name, args):
        self.call_stack.append({'name': name, 'args': args})

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("OIDA_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def eval(self, node: Node, env: Environment) -> Any:
        """Public entry point for evaluation. Unwraps `speicher` signals."""
        return unwrap_return(self._eval(node, env))

    def run(self, statements: List[Node], env: Environment) -> Any:
        return unwrap_return(self._exec_block(statements, env))

    def _exec_block(self, statements: List[Node], env: Environment) -> Any:
        """Runs statements in `env`, stopping early on a return signal."""
        result = None
        for stmt in statements:
            result = self._eval(stmt, env)
            if is_return(result):
                return result
        return result

    def _eval(self, node: Node, env: Environment) -> Any:
        """Recursive dispatcher for evaluating any AST node."""
        self._dbg("EVAL", type(node).__name__)

        match node:
            case Literal(value=value):
                return value

            case Identifier(name=name):
                value = env.lookup_variable(name)
                if value is not MISSING:
                    return value
                if env.find_function_owner(name) is not None:
                    return env.get_function(name)
                raise UnknownIdentifier(name)

            case ArrayLiteral(elements=elements):
                return [self._eval(e, env) for e in elements]

            case AssocLiteral(keys=keys, values=values):
                return self._eval_assoc(keys, values, env)

            case VariableDeclaration(name=name, initializer=value_node) | Assignment(name=name, value=value_node):
                value = self._eval(value_node, env)
                if isinstance(value_node, AssocLiteral) and value is None:
                    # Key/value count mismatch: nothing is bound
                    return None
                env.define_variable(name, value)
                return value

            case IndexAccess(array=name, index=index_node):
                container = env.get_variable(name)
                return self._index_get(name, container, self._eval(index_node, env))

            case IndexAssignment(array=name, index=index_node, value=value_node):
                container = copy.copy(env.get_variable(name))
                index = self._eval(index_node, env)
                value = self._eval(value_node, env)
                self._index_set(name, container, index, value)
                env.define_variable(name, container)
                return value

            case PropertyAccess():
                return self._eval_property(node, env)

            case Filter(array=array_node, item_name=item_name, predicate=predicate):
                source = self._eval(array_node, env)
                if not isinstance(source, list):
                    raise TypeMismatch(f"nimmAusse needs an array, got {type_name(source)}")
                kept = []
                for item in source:
                    env.define_variable(item_name, item)
                    if is_truthy(self._eval(predicate, env)):
                        kept.append(item)
                return kept

            case BinaryArithmetic(left=left, operator=op, right=right):
                return self._arithmetic(op, self._eval(left, env), self._eval(right, env))

            case UnaryArithmetic(operator=op, operand=operand):
                return self._step(op, operand, env)

            case Comparison(left=left, operator=op, right=right):
                return self._compare(self._eval(left, env), op, self._eval(right, env))

            case LogicalChain(items=items):
                return self._fold_chain(items, env)

            case If(condition=condition, body=body, else_body=else_body):
                if is_truthy(self._eval(condition, env)):
                    return self._exec_block(body, env)
                if else_body is not None:
                    return self._exec_block(else_body, env)
                return None

            case For(initialization=init, condition=condition, iteration=step, body=body):
                self._eval(init, env)
                while is_truthy(self._eval(condition, env)):
                    result = self._exec_block(body, env)
                    if is_return(result):
                        return result
                    self._eval(step, env)
                return None

            case While(condition=condition, body=body):
                while is_truthy(self._eval(condition, env)):
                    result = self._exec_block(body, env)
                    if is_return(result):
                        return result
                return None

            case ForEach(array=array_node, item_name=item_name, body=body):
                source = self._eval(array_node, env)
                if isinstance(source, dict):
                    items = list(source.values())
                elif isinstance(source, list):
                    items = list(source)
                else:
                    raise TypeMismatch(f"fiaOis needs an array, got {type_name(source)}")
                for item in items:
                    env.define_variable(item_name, item)
                    result = self._exec_block(body, env)
                    if is_return(result):
                        return result
                return None

            case FunctionDefinition(name=name, parameters=parameters, body=body):
                env.define_function(name, body, parameters)
                return None

            case FunctionCall(name=name, arguments=arguments):
                return self.call(name, arguments, env)

            case Fetch(url=url_node):
                return self._fetch(self._eval(url_node, env))

            case Print(values=values):
                rendered = [self.printer.pformat(self._eval(v, env)) for v in values]
                self.side_effects.append({'topics': ['stdout'], 'message': ' '.join(rendered)})
                return None

            case Return(value=value_node):
                value = None if value_node is None else self._eval(value_node, env)
                return ReturnSignal(value)

            case _:
                raise UnknownNodeKind(f"Unknown node type: {type(node).__name__}")

    # --- functions ---

    def call(self, name: str, arguments: List[Node], env: Environment) -> Any:
        """Calls `name` with a fresh environment chained to the caller's `env`."""
        func = env.get_function(name)
        args = [self._eval(arg, env) for arg in arguments]
        if len(args) != len(func.parameters):
            raise ArityMismatch(
                f"{name} expects {len(func.parameters)} argument(s), got {len(args)}"
            )
        call_env = Environment(parent=env)
        for param, arg in zip(func.parameters, args):
            call_env.define_variable(param, arg)
        self._dbg("CALL", name, args)
        self._push_frame(name, args)
        result = self._exec_block(func.body, call_env)
        self._pop_frame()
        return unwrap_return(result)

    # --- collections ---

    def _eval_assoc(self, keys: ArrayLiteral, values: ArrayLiteral, env: Environment) -> Optional[dict]:
        if len(keys.elements) != len(values.elements):
            return None
        out = {}
        for key_node, value_node in zip(keys.elements, values.elements):
            key = self._eval(key_node, env)
            put_key(out, key, self._eval(value_node, env))
        return out

    def _index_get(self, name: str, container, index):
        match container:
            case dict():
                if not is_key(index):
                    raise TypeMismatch(f"Associative array keys must be scalar, got {type_name(index)}")
                stored = find_key(container, index)
                if stored is MISSING:
                    raise IndexOutOfRange(f"{name} has no key {self.printer.pformat(index, True)}")
                return container[stored]
            case list() | str():
                if not is_number(index) or isinstance(index, float):
                    raise TypeMismatch(f"Index into {name} must be an integer, got {type_name(index)}")
                if not 0 <= index < len(container):
                    raise IndexOutOfRange(f"Index {index} out of range for {name} of length {len(container)}")
                return container[index]
        raise TypeMismatch(f"{name} is not an array ({type_name(container)})")

    def _index_set(self, name: str, container, index, value):
        match container:
            case dict():
                put_key(container, index, value)
                return
            case list():
                if not is_number(index) or isinstance(index, float):
                    raise TypeMismatch(f"Index into {name} must be an integer, got {type_name(index)}")
                if index == len(container):
                    container.append(value)
                    return
                if not 0 <= index < len(container):
                    raise IndexOutOfRange(f"Index {index} out of range for {name} of length {len(container)}")
                container[index] = value
                return
        raise TypeMismatch(f"{name} is not an array ({type_name(container)})")

    def _eval_property(self, node: PropertyAccess, env: Environment):
        entry = self.builtins.get(node.property)
        if entry is None:
            raise UnknownOperator(f"Unknown property: {node.property}")
        func, arity = entry
        target = self._eval(node.object, env)
        args = [] if node.value is None else [self._eval(node.value, env)]
        if len(args) != arity:
            raise ArityMismatch(f"{node.property} expects {arity} argument(s), got {len(args)}")
        result = func(copy.copy(target), *args)
        if node.property in self.store_back:
            if not isinstance(node.object, Identifier):
                raise TypeMismatch(f"{node.property} can only store back into a variable")
            env.define_variable(node.object.name, result)
        return result

    # --- operators ---

    def _arithmetic(self, op: str, left, right):
        if op == 'plus' and isinstance(left, str) and isinstance(right, str):
            return left + right
        if not (is_number(left) and is_number(right)):
            raise TypeMismatch(f"Cannot apply {op} to {type_name(left)} and {type_name(right)}")
        match op:
            case 'plus':
                return left + right
            case 'minus':
                return left - right
            case 'mal':
                return left * right
            case 'dividier':
                if right == 0:
                    raise ArithmeticFailure("Division by zero")
                if isinstance(left, int) and isinstance(right, int) and left % right == 0:
                    return left // right
                return left / right
        raise UnknownOperator(f"Unknown operator: {op}")

    def _step(self, op: str, operand: Node, env: Environment):
        value = self._eval(operand, env)
        if not is_number(value):
            raise TypeMismatch(f"Cannot apply {op} to {type_name(value)}")
        match op:
            case 'plusplus':
                value = value + 1
            case 'minusminus':
                value = value - 1
            case _:
                raise UnknownOperator(f"Unknown operator: {op}")
        if isinstance(operand, Identifier):
            env.define_variable(operand.name, value)
        return value

    def _compare(self, left, op: str, right) -> bool:
        match op:
            case 'gleich':
                return values_equal(left, right)
            case 'isned':
                return not values_equal(left, right)
            case 'klana':
                _check_orderable(left, op, right)
                return left < right
            case 'größer':
                _check_orderable(left, op, right)
                return left > right
            case 'klanaglei':
                _check_orderable(left, op, right)
                return left <= right
            case 'größerglei':
                _check_orderable(left, op, right)
                return left >= right
        raise UnknownOperator(f"Unknown comparison operator: {op}")

    def _fold_chain(self, items: list, env: Environment) -> bool:
        # Every member is evaluated; operators apply strictly left to right.
        result = is_truthy(self._eval(items[0], env))
        for i in range(1, len(items), 2):
            op = items[i]
            following = is_truthy(self._eval(items[i + 1], env))
            match op:
                case 'und':
                    result = result and following
                case 'oda':
                    result = result or following
                case _:
                    raise UnknownOperator(f"Unknown logical operator: {op}")
        return result

    # --- fetch ---

    def _fetch(self, url):
        if not isinstance(url, str):
            raise TypeMismatch(f"holma needs a URL text, got {type_name(url)}")
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise TypeMismatch(f"Malformed URL: {url!r}")
        self._dbg("FETCH", url)
        return self.fetcher(url)
