"""
Recursive-descent parser for the Oida language.

Every production takes a token position and returns either None (no match,
the caller tries its next alternative) or a `(node, next_position)` pair.
Alternatives are tried in a fixed order and the first match wins.

Arithmetic is right-leaning with no precedence table: `Operand Operator
Expr`, so `a plus b mal c` parses as `a plus (b mal c)` and `a mal b plus c`
as `a mal (b plus c)`.
"""
from typing import List, Optional, Tuple

from oidascript.oida_datatypes import (
    Token, TokenKind as T, SyntaxFailure,
    Node, Literal, Identifier, ArrayLiteral, AssocLiteral,
    VariableDeclaration, Assignment, IndexAccess, IndexAssignment,
    PropertyAccess, Filter, BinaryArithmetic, UnaryArithmetic,
    Comparison, LogicalChain, If, For, While, ForEach,
    FunctionDefinition, FunctionCall, Fetch, Print, Return,
)

Match = Optional[Tuple[Node, int]]

UNARY_OPERATORS = ('plusplus', 'minusminus')

# `x += e` is `x = x plus e`
COMPOUND_ASSIGN = {
    '+=': 'plus',
    '-=': 'minus',
    '*=': 'mal',
    '/=': 'dividier',
}


class Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = list(tokens)

    # --- token helpers ---

    def _tok(self, pos: int) -> Optional[Token]:
        if 0 <= pos < len(self.tokens):
            return self.tokens[pos]
        return None

    def _is(self, pos: int, kind: T) -> bool:
        tok = self._tok(pos)
        return tok is not None and tok.kind is kind

    def _fail(self, message: str, pos: int) -> SyntaxFailure:
        tok = self._tok(pos)
        if tok is None and self.tokens:
            tok = self.tokens[-1]
        if tok is not None:
            message = f"{message} (got {tok.lexeme!r})" if pos < len(self.tokens) else f"{message} (at end of input)"
        return SyntaxFailure(message, tok)

    def _expect(self, pos: int, kind: T, what: str) -> int:
        if not self._is(pos, kind):
            raise self._fail(f"Expected {what}", pos)
        return pos + 1

    # --- entry points ---

    def parse(self) -> List[Node]:
        statements, pos = self.parse_code_block(0)
        if pos < len(self.tokens):
            raise self._fail("Unexpected token", pos)
        return statements

    def parse_code_block(self, pos: int) -> Tuple[List[Node], int]:
        """Statements until one fails to parse. Never raises for an empty block."""
        statements = []
        while True:
            result = self.parse_statement(pos)
            if result is None:
                break
            node, pos = result
            statements.append(node)
            if self._is(pos, T.SEMICOLON):
                pos += 1
        return statements, pos

    def _parse_body(self, pos: int, what: str) -> Tuple[List[Node], int]:
        pos = self._expect(pos, T.OPENING_BRACE, f"'{{' to open body of {what}")
        body, pos = self.parse_code_block(pos)
        if not self._is(pos, T.CLOSING_BRACE):
            raise self._fail(f"Expected '}}' to close body of {what}", pos)
        if not body:
            raise self._fail(f"Body of {what} is empty", pos)
        return body, pos + 1

    # --- statements ---

    def parse_statement(self, pos: int) -> Match:
        for production in (
            self._parse_if,
            self._parse_for,
            self._parse_while,
            self._parse_foreach,
            self._parse_function,
            self._parse_index_assignment,
            self._parse_variable,
            self._parse_assignment,
            self._parse_return,
            self._parse_print,
            self.parse_value,
        ):
            result = production(pos)
            if result is not None:
                return result
        return None

    def _parse_parenthesized_condition(self, pos: int, what: str) -> Tuple[Node, int]:
        pos = self._expect(pos, T.OPENING_PARENTHESIS, f"'(' after {what}")
        cond = self.parse_value(pos)
        if cond is None:
            raise self._fail(f"Expected condition in {what}", pos)
        node, pos = cond
        pos = self._expect(pos, T.CLOSING_PARENTHESIS, f"')' after condition of {what}")
        return node, pos

    def _parse_if(self, pos: int) -> Match:
        if not self._is(pos, T.IF):
            return None
        condition, pos = self._parse_parenthesized_condition(pos + 1, 'wenn')
        body, pos = self._parse_body(pos, 'wenn')
        else_body = None
        if self._is(pos, T.ELSE):
            else_body, pos = self._parse_body(pos + 1, 'sonst')
        return If(condition, body, else_body), pos

    def _parse_for(self, pos: int) -> Match:
        if not self._is(pos, T.FOR):
            return None
        pos = self._expect(pos + 1, T.OPENING_PARENTHESIS, "'(' after aufi")
        init = self._parse_assignment(pos)
        if init is None:
            raise self._fail("Expected assignment in loop initialization", pos)
        initialization, pos = init
        pos = self._expect(pos, T.SEMICOLON, "';' after loop initialization")
        cond = self.parse_value(pos)
        if cond is None:
            raise self._fail("Expected expression in loop condition", pos)
        condition, pos = cond
        pos = self._expect(pos, T.SEMICOLON, "';' after loop condition")
        step = self._parse_assignment(pos) or self.parse_value(pos)
        if step is None:
            raise self._fail("Expected expression in loop iteration", pos)
        iteration, pos = step
        pos = self._expect(pos, T.CLOSING_PARENTHESIS, "')' after loop header")
        body, pos = self._parse_body(pos, 'aufi')
        return For(initialization, condition, iteration, body), pos

    def _parse_while(self, pos: int) -> Match:
        if not self._is(pos, T.WHILE):
            return None
        condition, pos = self._parse_parenthesized_condition(pos + 1, 'geh weida')
        body, pos = self._parse_body(pos, 'geh weida')
        return While(condition, body), pos

    def _parse_foreach(self, pos: int) -> Match:
        if not self._is(pos, T.FOREACH):
            return None
        pos = self._expect(pos + 1, T.OPENING_PARENTHESIS, "'(' after fiaOis")
        array = self._parse_identifier(pos)
        if array is None:
            raise self._fail("Expected array name in fiaOis", pos)
        array_node, pos = array
        pos = self._expect(pos, T.AS, "'als' in fiaOis")
        item = self._parse_identifier(pos)
        if item is None:
            raise self._fail("Expected item name after 'als'", pos)
        item_node, pos = item
        pos = self._expect(pos, T.CLOSING_PARENTHESIS, "')' after fiaOis header")
        body, pos = self._parse_body(pos, 'fiaOis')
        return ForEach(array_node, item_node.name, body), pos

    def _parse_function(self, pos: int) -> Match:
        if not self._is(pos, T.FUNCTION):
            return None
        pos += 1
        if not self._is(pos, T.IDENTIFIER):
            raise self._fail("Expected function name after hawara", pos)
        name = self.tokens[pos].lexeme
        pos = self._expect(pos + 1, T.OPENING_PARENTHESIS, f"'(' after function name {name!r}")
        parameters = []
        while self._is(pos, T.IDENTIFIER):
            parameters.append(self.tokens[pos].lexeme)
            pos += 1
            if not self._is(pos, T.SEPARATOR):
                break
            pos += 1
        if not self._is(pos, T.CLOSING_PARENTHESIS):
            raise self._fail(f"Malformed parameter list of {name!r}", pos)
        body, pos = self._parse_body(pos + 1, f"hawara {name}")
        return FunctionDefinition(name, parameters, body), pos

    def _parse_index_assignment(self, pos: int) -> Match:
        access = self._parse_index_access(pos)
        if access is None:
            return None
        node, pos = access
        tok = self._tok(pos)
        if tok is None or tok.kind is not T.ASSIGN or tok.lexeme != '=':
            return None
        value = self.parse_value(pos + 1)
        if value is None:
            return None
        value_node, pos = value
        return IndexAssignment(node.array, node.index, value_node), pos

    def _parse_variable(self, pos: int) -> Match:
        if not self._is(pos, T.LET):
            return None
        pos += 1
        if not self._is(pos, T.IDENTIFIER):
            raise self._fail("Expected variable name after heast", pos)
        name = self.tokens[pos].lexeme
        tok = self._tok(pos + 1)
        if tok is None or tok.kind is not T.ASSIGN or tok.lexeme != '=':
            raise self._fail(f"Expected '=' after heast {name}", pos + 1)
        value = self.parse_value(pos + 2)
        if value is None:
            raise self._fail(f"Expected value for heast {name}", pos + 2)
        value_node, pos = value
        return VariableDeclaration(name, value_node), pos

    def _parse_assignment(self, pos: int) -> Match:
        if not (self._is(pos, T.IDENTIFIER) and self._is(pos + 1, T.ASSIGN)):
            return None
        name = self.tokens[pos].lexeme
        op = self.tokens[pos + 1].lexeme
        value = self.parse_value(pos + 2)
        if value is None:
            return None
        value_node, pos = value
        if op in COMPOUND_ASSIGN:
            value_node = BinaryArithmetic(Identifier(name), COMPOUND_ASSIGN[op], value_node)
        return Assignment(name, value_node), pos

    def _parse_return(self, pos: int) -> Match:
        if not self._is(pos, T.RETURN):
            return None
        value = self.parse_value(pos + 1)
        if value is None:
            return Return(None), pos + 1
        node, pos = value
        return Return(node), pos

    def _parse_print(self, pos: int) -> Match:
        if not self._is(pos, T.PRINT):
            return None
        pos = self._expect(pos + 1, T.OPENING_PARENTHESIS, "'(' after oida.sag")
        values, pos = self._parse_value_list(pos)
        pos = self._expect(pos, T.CLOSING_PARENTHESIS, "')' to close oida.sag")
        return Print(values), pos

    def _parse_value_list(self, pos: int) -> Tuple[List[Node], int]:
        """Comma-separated values; every separator must be followed by a value."""
        values = []
        while True:
            result = self.parse_value(pos)
            if result is None:
                if values:
                    raise self._fail("Expected value after ','", pos)
                break
            node, pos = result
            values.append(node)
            if not self._is(pos, T.SEPARATOR):
                break
            pos += 1
        return values, pos

    # --- conditions ---

    def parse_value(self, pos: int) -> Match:
        """An expression, a single comparison, or a flat und/oda chain."""
        first = self._parse_chain_member(pos)
        if first is None:
            return None
        node, pos = first
        items = [node]
        while self._is(pos, T.LOGICAL_AND) or self._is(pos, T.LOGICAL_OR):
            op = self.tokens[pos].lexeme
            member = self._parse_chain_member(pos + 1)
            if member is None:
                raise self._fail(f"Expected condition after {op!r}", pos + 1)
            node, pos = member
            items.extend([op, node])
        if len(items) == 1:
            return items[0], pos
        return LogicalChain(items), pos

    def _parse_chain_member(self, pos: int) -> Match:
        left = self.parse_expression(pos)
        if left is None:
            return None
        left_node, pos = left
        if not self._is(pos, T.COMPARISON_OPERATOR):
            return left_node, pos
        op = self.tokens[pos].lexeme
        right = self.parse_expression(pos + 1)
        if right is None:
            raise self._fail(f"Expected right-hand side of {op!r}", pos + 1)
        right_node, pos = right
        return Comparison(left_node, op, right_node), pos

    # --- expressions ---

    def parse_expression(self, pos: int) -> Match:
        for production in (
            self._parse_collection_literal,
            self._parse_index_access,
            self._parse_property_access,
            self._parse_fetch,
            self._parse_function_call,
            self._parse_arithmetic,
            self._parse_literal,
            self._parse_identifier,
        ):
            result = production(pos)
            if result is not None:
                return result
        return None

    def _parse_literal(self, pos: int) -> Match:
        tok = self._tok(pos)
        if tok is None:
            return None
        match tok.kind:
            case T.STRING:
                return Literal(tok.lexeme), pos + 1
            case T.NUMBER:
                return Literal(int(tok.lexeme)), pos + 1
            case T.TRUE:
                return Literal(True), pos + 1
            case T.FALSE:
                return Literal(False), pos + 1
        return None

    def _parse_identifier(self, pos: int) -> Match:
        if self._is(pos, T.IDENTIFIER):
            return Identifier(self.tokens[pos].lexeme), pos + 1
        return None

    def _parse_operand(self, pos: int) -> Match:
        tok = self._tok(pos)
        if tok is None:
            return None
        if tok.kind in (T.NUMBER, T.STRING):
            return self._parse_literal(pos)
        return self._parse_identifier(pos)

    def _parse_arithmetic(self, pos: int) -> Match:
        left = self._parse_operand(pos)
        if left is None:
            return None
        left_node, pos = left
        if not self._is(pos, T.ARITHMETIC_OPERATOR):
            return None
        op = self.tokens[pos].lexeme
        pos += 1
        if op in UNARY_OPERATORS:
            return UnaryArithmetic(op, left_node), pos
        right = self.parse_expression(pos)
        if right is None:
            return None
        right_node, pos = right
        return BinaryArithmetic(left_node, op, right_node), pos

    def _parse_array_literal(self, pos: int) -> Match:
        if not self._is(pos, T.OPENING_BRACKET):
            return None
        elements, pos = self._parse_value_list(pos + 1)
        if not self._is(pos, T.CLOSING_BRACKET):
            return None
        return ArrayLiteral(elements), pos + 1

    def _parse_collection_literal(self, pos: int) -> Match:
        keys = self._parse_array_literal(pos)
        if keys is None:
            return None
        keys_node, pos = keys
        if not self._is(pos, T.COLON):
            return keys_node, pos
        values = self._parse_array_literal(pos + 1)
        if values is None:
            raise self._fail("Expected value list after ':'", pos + 1)
        values_node, pos = values
        return AssocLiteral(keys_node, values_node), pos

    def _parse_index_access(self, pos: int) -> Match:
        if not (self._is(pos, T.IDENTIFIER) and self._is(pos + 1, T.OPENING_BRACKET)):
            return None
        name = self.tokens[pos].lexeme
        index = self.parse_value(pos + 2)
        if index is None:
            return None
        index_node, pos = index
        if not self._is(pos, T.CLOSING_BRACKET):
            return None
        return IndexAccess(name, index_node), pos + 1

    def _parse_property_access(self, pos: int) -> Match:
        if not (self._is(pos, T.IDENTIFIER) and self._is(pos + 1, T.DOT)):
            return None
        obj = Identifier(self.tokens[pos].lexeme)
        pos += 2
        if not self._is(pos, T.IDENTIFIER):
            raise self._fail("Expected property name after '.'", pos)
        prop = self.tokens[pos].lexeme
        pos += 1
        if prop == 'nimmAusse':
            return self._parse_filter(pos, obj)
        if not self._is(pos, T.OPENING_PARENTHESIS):
            return PropertyAccess(obj, prop), pos
        pos += 1
        value_node = None
        value = self.parse_value(pos)
        if value is not None:
            value_node, pos = value
        if not self._is(pos, T.CLOSING_PARENTHESIS):
            raise self._fail("Expected closing parenthesis for method call", pos)
        return PropertyAccess(obj, prop, value_node), pos + 1

    def _parse_filter(self, pos: int, array: Identifier) -> Match:
        """`arr.nimmAusse(item => { condition })`, positioned after `nimmAusse`."""
        pos = self._expect(pos, T.OPENING_PARENTHESIS, "'(' after nimmAusse")
        if not self._is(pos, T.IDENTIFIER):
            raise self._fail("Missing name in filter function", pos)
        item_name = self.tokens[pos].lexeme
        pos = self._expect(pos + 1, T.FILTER_ARROW, "'=>' in filter function")
        pos = self._expect(pos, T.OPENING_BRACE, "'{' to open filter body")
        cond = self.parse_value(pos)
        if cond is None:
            raise self._fail("Body of filter is empty", pos)
        predicate, pos = cond
        pos = self._expect(pos, T.CLOSING_BRACE, "'}' to close filter body")
        pos = self._expect(pos, T.CLOSING_PARENTHESIS, "')' to close nimmAusse")
        return Filter(array, item_name, predicate), pos

    def _parse_fetch(self, pos: int) -> Match:
        if not self._is(pos, T.FETCH):
            return None
        pos = self._expect(pos + 1, T.OPENING_PARENTHESIS, "'(' after holma")
        url = self.parse_value(pos)
        if url is None:
            raise self._fail("Expected URL in holma", pos)
        url_node, pos = url
        pos = self._expect(pos, T.CLOSING_PARENTHESIS, "')' to close holma")
        return Fetch(url_node), pos

    def _parse_function_call(self, pos: int) -> Match:
        if not (self._is(pos, T.IDENTIFIER) and self._is(pos + 1, T.OPENING_PARENTHESIS)):
            return None
        name = self.tokens[pos].lexeme
        args, pos = self._parse_value_list(pos + 2)
        if not self._is(pos, T.CLOSING_PARENTHESIS):
            return None
        return FunctionCall(name, args), pos + 1


def parse(tokens: List[Token]) -> List[Node]:
    return Parser(tokens).parse()
