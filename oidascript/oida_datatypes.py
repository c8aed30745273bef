"""
Defines the core data types for the Oida language runtime.

This module provides the token and AST node types produced by the lexer and
parser, the Environment used by the evaluator, and the error taxonomy shared
by every stage of the pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =================================================================
# Errors
# =================================================================

class OidaError(Exception):
    """Base class for all errors raised by the Oida pipeline."""
    kind = "OidaError"


class SyntaxFailure(OidaError):
    """A required clause or body could not be parsed."""
    kind = "SyntaxFailure"

    def __init__(self, message: str, token: Optional['Token'] = None):
        super().__init__(message)
        self.token = token


class UnknownIdentifier(OidaError):
    kind = "UnknownIdentifier"

    def __init__(self, name: str):
        super().__init__(f"Unknown identifier: {name}")
        self.name = name


class TypeMismatch(OidaError):
    kind = "TypeMismatch"


class ArityMismatch(OidaError):
    kind = "ArityMismatch"


class ArithmeticFailure(OidaError):
    kind = "ArithmeticFailure"


class UnknownOperator(OidaError):
    kind = "UnknownOperator"


class UnknownNodeKind(OidaError):
    kind = "UnknownNodeKind"


class IndexOutOfRange(OidaError):
    kind = "IndexOutOfRange"


class FetchFailure(OidaError):
    kind = "FetchFailure"


# =================================================================
# Tokens
# =================================================================

class TokenKind(Enum):
    PRINT = "print"
    LET = "let"
    IF = "if"
    ELSE = "else"
    FALSE = "false"
    COLON = "colon"
    TRUE = "true"
    FUNCTION = "function"
    LOGICAL_AND = "logical-and"
    LOGICAL_OR = "logical-or"
    RETURN = "return"
    COMPARISON_OPERATOR = "comparison-operator"
    ARITHMETIC_OPERATOR = "arithmetic-operator"
    FILTER_ARROW = "filter-arrow"
    ASSIGN = "assign"
    NUMBER = "number"
    STRING = "string"
    OPENING_BRACKET = "opening-bracket"
    CLOSING_BRACKET = "closing-bracket"
    OPENING_BRACE = "opening-brace"
    CLOSING_BRACE = "closing-brace"
    OPENING_PARENTHESIS = "opening-parenthesis"
    CLOSING_PARENTHESIS = "closing-parenthesis"
    SEPARATOR = "separator"
    SEMICOLON = "semicolon"
    FOR = "for"
    WHILE = "while"
    FOREACH = "foreach"
    AS = "as"
    DOT = "dot"
    COMMENT = "comment"
    FETCH = "fetch"
    IDENTIFIER = "identifier"


@dataclass(frozen=True)
class Token:
    """A single lexeme; line/col are diagnostic metadata only."""
    kind: TokenKind
    lexeme: str
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)

    def __repr__(self) -> str:
        return f"Token<{self.kind.name} {self.lexeme!r}>"


# =================================================================
# AST Nodes
# =================================================================

class Node:
    """Marker base class for all AST node variants."""
    pass


@dataclass
class Literal(Node):
    value: Any


@dataclass
class Identifier(Node):
    name: str


@dataclass
class ArrayLiteral(Node):
    elements: List[Node]


@dataclass
class AssocLiteral(Node):
    """`[k1, k2]: [v1, v2]`, keys and values paired by position."""
    keys: ArrayLiteral
    values: ArrayLiteral


@dataclass
class VariableDeclaration(Node):
    name: str
    initializer: Node


@dataclass
class Assignment(Node):
    name: str
    value: Node


@dataclass
class IndexAccess(Node):
    array: str
    index: Node


@dataclass
class IndexAssignment(Node):
    array: str
    index: Node
    value: Node


@dataclass
class PropertyAccess(Node):
    object: Node
    property: str
    value: Optional[Node] = None


@dataclass
class Filter(Node):
    array: Node
    item_name: str
    predicate: Node


@dataclass
class BinaryArithmetic(Node):
    left: Node
    operator: str
    right: Node


@dataclass
class UnaryArithmetic(Node):
    operator: str
    operand: Node


@dataclass
class Comparison(Node):
    left: Node
    operator: str
    right: Node


@dataclass
class LogicalChain(Node):
    """Alternating members and operators: [cond, 'und', cond, 'oda', cond, ...]."""
    items: List[Any]


@dataclass
class If(Node):
    condition: Node
    body: List[Node]
    else_body: Optional[List[Node]] = None


@dataclass
class For(Node):
    initialization: Node
    condition: Node
    iteration: Node
    body: List[Node]


@dataclass
class While(Node):
    condition: Node
    body: List[Node]


@dataclass
class ForEach(Node):
    array: Node
    item_name: str
    body: List[Node]


@dataclass
class FunctionDefinition(Node):
    name: str
    parameters: List[str]
    body: List[Node]


@dataclass
class FunctionCall(Node):
    name: str
    arguments: List[Node]


@dataclass
class Fetch(Node):
    url: Node


@dataclass
class Print(Node):
    values: List[Node]


@dataclass
class Return(Node):
    value: Optional[Node] = None


# =================================================================
# Runtime Values
# =================================================================

@dataclass
class FunctionRef:
    """What a function name evaluates to. Not callable by value."""
    name: str
    parameters: List[str]
    body: List[Node] = field(repr=False)


class ReturnSignal:
    """Wraps the value of a `speicher` statement while it unwinds to its call."""
    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"ReturnSignal({self.value!r})"


def is_return(x) -> bool:
    return isinstance(x, ReturnSignal)


def unwrap_return(x):
    return x.value if is_return(x) else x


# Sentinel for the non-throwing variable probe
MISSING = object()


# =================================================================
# Environment
# =================================================================

class Environment:
    """A chained namespace with separate variable and function bindings.

    Lookups walk from this environment outward through `parent`. For a
    call activation, the parent is the caller's environment at call time,
    not the environment the function was defined in.
    """
    def __init__(self, parent: Optional['Environment'] = None):
        self.variables: Dict[str, Any] = {}
        self.functions: Dict[str, Tuple[List[str], List[Node]]] = {}
        self.parent = parent

    def set_parent(self, env: 'Environment'):
        self.parent = env

    def define_variable(self, name: str, value: Any):
        self.variables[name] = value

    def find_variable_owner(self, name: str) -> Optional['Environment']:
        env = self
        while env is not None:
            if name in env.variables:
                return env
            env = env.parent
        return None

    def lookup_variable(self, name: str) -> Any:
        """Non-throwing probe; returns MISSING when `name` is not bound."""
        owner = self.find_variable_owner(name)
        if owner is None:
            return MISSING
        return owner.variables[name]

    def get_variable(self, name: str) -> Any:
        owner = self.find_variable_owner(name)
        if owner is None:
            raise UnknownIdentifier(name)
        return owner.variables[name]

    def define_function(self, name: str, body: List[Node], parameters: List[str]):
        self.functions[name] = (list(parameters or []), body)

    def find_function_owner(self, name: str) -> Optional['Environment']:
        env = self
        while env is not None:
            if name in env.functions:
                return env
            env = env.parent
        return None

    def get_function(self, name: str) -> FunctionRef:
        owner = self.find_function_owner(name)
        if owner is None:
            raise UnknownIdentifier(name)
        parameters, body = owner.functions[name]
        return FunctionRef(name, parameters, body)

    def __repr__(self) -> str:
        names = ', '.join(self.variables.keys())
        fns = ', '.join(self.functions.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Environment variables=[{names}] functions=[{fns}]{parent_id}>"
