import pytest

from oidascript.oida_lexer import tokenize, classify
from oidascript.oida_datatypes import Token, TokenKind as T


def kinds(src):
    return [t.kind for t in tokenize(src)]


def test_variable_declaration_tokens():
    assert tokenize('heast x = 5;') == [
        Token(T.LET, 'heast'),
        Token(T.IDENTIFIER, 'x'),
        Token(T.ASSIGN, '='),
        Token(T.NUMBER, '5'),
        Token(T.SEMICOLON, ';'),
    ]


def test_keywords_win_over_identifiers():
    assert kinds('basst sichaned wenn sonst hawara speicher') == [
        T.TRUE, T.FALSE, T.IF, T.ELSE, T.FUNCTION, T.RETURN,
    ]
    # Only whole words are keywords
    assert kinds('basster wennst') == [T.IDENTIFIER, T.IDENTIFIER]


def test_string_value_has_no_quotes():
    toks = tokenize('"hallo welt" ""')
    assert toks == [Token(T.STRING, 'hallo welt'), Token(T.STRING, '')]


def test_print_is_a_single_token():
    assert tokenize('oida.sag(x)') == [
        Token(T.PRINT, 'oida.sag'),
        Token(T.OPENING_PARENTHESIS, '('),
        Token(T.IDENTIFIER, 'x'),
        Token(T.CLOSING_PARENTHESIS, ')'),
    ]


def test_property_access_splits_on_dot():
    assert kinds('arr.umfang') == [T.IDENTIFIER, T.DOT, T.IDENTIFIER]


@pytest.mark.parametrize("src, lexeme", [
    ("i plusplus", "plusplus"),
    ("i minusminus", "minusminus"),
    ("a plus b", "plus"),
    ("a minus b", "minus"),
    ("a mal b", "mal"),
    ("a dividier b", "dividier"),
])
def test_arithmetic_operators(src, lexeme):
    toks = tokenize(src)
    assert toks[1] == Token(T.ARITHMETIC_OPERATOR, lexeme)


def test_arithmetic_operator_needs_whole_word():
    assert tokenize('malzeit mal 2') == [
        Token(T.IDENTIFIER, 'malzeit'),
        Token(T.ARITHMETIC_OPERATOR, 'mal'),
        Token(T.NUMBER, '2'),
    ]


@pytest.mark.parametrize("op", ["gleich", "isned", "klana", "größer", "klanaglei", "größerglei"])
def test_comparison_operators(op):
    assert tokenize(f"a {op} b")[1] == Token(T.COMPARISON_OPERATOR, op)


def test_filter_arrow_before_assign():
    assert kinds('n => x = 1') == [T.IDENTIFIER, T.FILTER_ARROW, T.IDENTIFIER, T.ASSIGN, T.NUMBER]


@pytest.mark.parametrize("op", ["+=", "-=", "*=", "/=", "="])
def test_assignment_forms(op):
    assert tokenize(f"x {op} 1")[1] == Token(T.ASSIGN, op)


def test_loop_keywords():
    assert kinds('aufi geh weida fiaOis als holma') == [T.FOR, T.WHILE, T.FOREACH, T.AS, T.FETCH]


def test_unrecognized_characters_are_dropped():
    assert tokenize('heast x = 5 @ # $ ;') == tokenize('heast x = 5;')


def test_comment_runs_to_end_of_line():
    src = 'heast x = 1; kommentar das wird ignoriert "auch das"\nheast y = 2;'
    assert [t.lexeme for t in tokenize(src)] == [
        'heast', 'x', '=', '1', ';', 'heast', 'y', '=', '2', ';',
    ]


def test_tokens_carry_line_and_column():
    toks = tokenize('heast x\n  = 5')
    assign = toks[2]
    assert (assign.line, assign.col) == (2, 3)
    assert (toks[0].line, toks[0].col) == (1, 1)


def test_classify_uses_priority_order():
    assert classify('basst') is T.TRUE
    assert classify('basster') is T.IDENTIFIER
    assert classify('=>') is T.FILTER_ARROW
    assert classify('@') is None
