"""
Tokenizer for the Oida language.

A single scan over the source with one composite pattern built from an
ordered list of per-kind patterns. The kind of each matched span is the
first pattern, in declaration order, that matches the whole span. Spans
that match nothing (stray characters) are dropped without an error.
"""
import re
from typing import List, Tuple

from oidascript.oida_datatypes import Token, TokenKind

# Order is significant: keywords before identifiers, `=>` before `=`,
# `plusplus` before `plus`, `klanaglei` before `klana`.
TOKEN_PATTERNS: List[Tuple[TokenKind, str]] = [
    (TokenKind.PRINT, r'\boida\.sag\b'),
    (TokenKind.LET, r'\bheast\b'),
    (TokenKind.IF, r'\bwenn\b'),
    (TokenKind.ELSE, r'\bsonst\b'),
    (TokenKind.FALSE, r'\bsichaned\b'),
    (TokenKind.COLON, r':'),
    (TokenKind.TRUE, r'\bbasst\b'),
    (TokenKind.FUNCTION, r'\bhawara\b'),
    (TokenKind.LOGICAL_AND, r'\bund\b'),
    (TokenKind.LOGICAL_OR, r'\boda\b'),
    (TokenKind.RETURN, r'\bspeicher\b'),
    (TokenKind.COMPARISON_OPERATOR, r'\b(?:gleich|isned|klanaglei|größerglei|klana|größer)\b'),
    (TokenKind.ARITHMETIC_OPERATOR, r'\b(?:plusplus|minusminus|mal|dividier|plus|minus)\b'),
    (TokenKind.FILTER_ARROW, r'=>'),
    (TokenKind.ASSIGN, r'\+=|-=|\*=|/=|='),
    (TokenKind.NUMBER, r'\d+'),
    (TokenKind.STRING, r'"(?:.*?)"'),
    (TokenKind.OPENING_BRACKET, r'\['),
    (TokenKind.CLOSING_BRACKET, r'\]'),
    (TokenKind.OPENING_BRACE, r'\{'),
    (TokenKind.CLOSING_BRACE, r'\}'),
    (TokenKind.OPENING_PARENTHESIS, r'\('),
    (TokenKind.CLOSING_PARENTHESIS, r'\)'),
    (TokenKind.SEPARATOR, r','),
    (TokenKind.SEMICOLON, r';'),
    (TokenKind.FOR, r'\baufi\b'),
    (TokenKind.WHILE, r'\bgeh weida\b'),
    (TokenKind.FOREACH, r'\bfiaOis\b'),
    (TokenKind.AS, r'\bals\b'),
    (TokenKind.DOT, r'\.'),
    (TokenKind.COMMENT, r'\bkommentar\b[^\n]*'),
    (TokenKind.FETCH, r'\bholma\b'),
    (TokenKind.IDENTIFIER, r'[a-zA-Z_]\w*'),
]

_COMPILED = [(kind, re.compile(pattern)) for kind, pattern in TOKEN_PATTERNS]
_SCANNER = re.compile('|'.join(f'(?:{pattern})' for _, pattern in TOKEN_PATTERNS))

# Matched but never emitted
SKIPPED_KINDS = frozenset({TokenKind.COMMENT})


def classify(lexeme: str) -> TokenKind | None:
    """Returns the first kind whose pattern matches the whole lexeme."""
    for kind, rx in _COMPILED:
        if rx.fullmatch(lexeme):
            return kind
    return None


def tokenize(source: str) -> List[Token]:
    tokens: List[Token] = []
    line = 1
    line_start = 0
    scanned = 0
    for m in _SCANNER.finditer(source):
        start = m.start()
        # Track line/col for diagnostics
        line += source.count('\n', scanned, start)
        nl = source.rfind('\n', 0, start)
        if nl >= 0:
            line_start = nl + 1
        scanned = start

        lexeme = m.group(0)
        kind = classify(lexeme)
        if kind is None or kind in SKIPPED_KINDS:
            continue
        if kind is TokenKind.STRING:
            lexeme = lexeme[1:-1]
        tokens.append(Token(kind, lexeme, line, start - line_start + 1))
    return tokens
