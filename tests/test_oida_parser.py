import pytest

from oidascript.oida_lexer import tokenize
from oidascript.oida_parser import Parser, parse
from oidascript.oida_datatypes import (
    SyntaxFailure,
    Literal, Identifier, ArrayLiteral, AssocLiteral,
    VariableDeclaration, Assignment, IndexAccess, IndexAssignment,
    PropertyAccess, Filter, BinaryArithmetic, UnaryArithmetic,
    Comparison, LogicalChain, If, For, While, ForEach,
    FunctionDefinition, FunctionCall, Fetch, Print, Return,
)


def parse_src(src):
    return parse(tokenize(src))


def test_variable_declaration():
    assert parse_src('heast x = 5;') == [VariableDeclaration('x', Literal(5))]


def test_literals():
    assert parse_src('"a"; 1; basst; sichaned;') == [
        Literal("a"), Literal(1), Literal(True), Literal(False),
    ]


def test_arithmetic_is_right_leaning():
    assert parse_src('heast y = 2 mal 3 plus 4;') == [
        VariableDeclaration('y', BinaryArithmetic(
            Literal(2), 'mal', BinaryArithmetic(Literal(3), 'plus', Literal(4))
        ))
    ]
    assert parse_src('a plus b mal c') == [
        BinaryArithmetic(Identifier('a'), 'plus', BinaryArithmetic(Identifier('b'), 'mal', Identifier('c')))
    ]


def test_increment_is_unary():
    assert parse_src('i plusplus;') == [UnaryArithmetic('plusplus', Identifier('i'))]
    assert parse_src('3 minusminus;') == [UnaryArithmetic('minusminus', Literal(3))]


def test_if_with_else():
    src = 'wenn (x größer 3) { oida.sag("gross"); } sonst { oida.sag("klein"); }'
    assert parse_src(src) == [
        If(
            Comparison(Identifier('x'), 'größer', Literal(3)),
            [Print([Literal('gross')])],
            [Print([Literal('klein')])],
        )
    ]


def test_if_with_single_expression_condition():
    assert parse_src('wenn (ok) { 1; }') == [If(Identifier('ok'), [Literal(1)])]


def test_logical_chain_is_flat():
    src = 'wenn (a klana 1 und b gleich 2 oda c) { x; }'
    [node] = parse_src(src)
    assert node.condition == LogicalChain([
        Comparison(Identifier('a'), 'klana', Literal(1)),
        'und',
        Comparison(Identifier('b'), 'gleich', Literal(2)),
        'oda',
        Identifier('c'),
    ])


@pytest.mark.parametrize("src", [
    'wenn (basst) { }',
    'wenn (basst) { 1; } sonst { }',
    'aufi (i = 0; i klana 3; i plusplus) { }',
    'geh weida (basst) { }',
    'fiaOis (a als b) { }',
    'hawara f() { }',
])
def test_empty_bodies_are_rejected(src):
    with pytest.raises(SyntaxFailure, match="empty"):
        parse_src(src)


def test_for_loop():
    src = 'aufi (i = 0; i klana 3; i plusplus) { oida.sag(i); }'
    assert parse_src(src) == [
        For(
            Assignment('i', Literal(0)),
            Comparison(Identifier('i'), 'klana', Literal(3)),
            UnaryArithmetic('plusplus', Identifier('i')),
            [Print([Identifier('i')])],
        )
    ]


def test_while_loop():
    assert parse_src('geh weida (i klana 3) { i plusplus; }') == [
        While(Comparison(Identifier('i'), 'klana', Literal(3)), [UnaryArithmetic('plusplus', Identifier('i'))])
    ]


def test_foreach():
    assert parse_src('fiaOis (zahlen als z) { oida.sag(z); }') == [
        ForEach(Identifier('zahlen'), 'z', [Print([Identifier('z')])])
    ]


def test_filter():
    src = 'heast g = nums.nimmAusse(n => { n größer 2 });'
    assert parse_src(src) == [
        VariableDeclaration('g', Filter(
            Identifier('nums'), 'n', Comparison(Identifier('n'), 'größer', Literal(2))
        ))
    ]


def test_filter_without_item_name():
    with pytest.raises(SyntaxFailure, match="Missing name"):
        parse_src('nums.nimmAusse(=> { basst })')


def test_function_definition_and_call():
    src = 'hawara add(a, b) { speicher a plus b; } add(1, 2);'
    assert parse_src(src) == [
        FunctionDefinition('add', ['a', 'b'], [
            Return(BinaryArithmetic(Identifier('a'), 'plus', Identifier('b')))
        ]),
        FunctionCall('add', [Literal(1), Literal(2)]),
    ]


def test_bare_return():
    assert parse_src('hawara f() { speicher; }') == [FunctionDefinition('f', [], [Return(None)])]


def test_nested_assoc_literal():
    src = 'heast m = ["a", "b"]: [1, [2, 3]];'
    assert parse_src(src) == [
        VariableDeclaration('m', AssocLiteral(
            ArrayLiteral([Literal('a'), Literal('b')]),
            ArrayLiteral([Literal(1), ArrayLiteral([Literal(2), Literal(3)])]),
        ))
    ]


def test_index_access_and_assignment():
    assert parse_src('arr[0] = 5; arr[1];') == [
        IndexAssignment('arr', Literal(0), Literal(5)),
        IndexAccess('arr', Literal(1)),
    ]


def test_property_access():
    assert parse_src('b.ane(4); b.umfang; b.ordne();') == [
        PropertyAccess(Identifier('b'), 'ane', Literal(4)),
        PropertyAccess(Identifier('b'), 'umfang'),
        PropertyAccess(Identifier('b'), 'ordne'),
    ]


def test_compound_assignment_desugars():
    assert parse_src('x += 2;') == [Assignment('x', BinaryArithmetic(Identifier('x'), 'plus', Literal(2)))]
    assert parse_src('x /= 2;') == [Assignment('x', BinaryArithmetic(Identifier('x'), 'dividier', Literal(2)))]


def test_standalone_comparison_as_value():
    assert parse_src('heast b = x gleich 3;') == [
        VariableDeclaration('b', Comparison(Identifier('x'), 'gleich', Literal(3)))
    ]


def test_fetch_expression():
    assert parse_src('heast d = holma("http://example.org");') == [
        VariableDeclaration('d', Fetch(Literal('http://example.org')))
    ]


def test_print_multiple_values():
    assert parse_src('oida.sag(1, "a", x);') == [Print([Literal(1), Literal('a'), Identifier('x')])]


def test_leftover_tokens_are_a_syntax_failure():
    with pytest.raises(SyntaxFailure, match="Unexpected token") as exc:
        parse_src('heast x = 5;\n)')
    assert exc.value.token.line == 2


def test_code_block_stops_quietly():
    parser = Parser(tokenize(') heast x = 1;'))
    assert parser.parse_code_block(0) == ([], 0)


def test_missing_property_name():
    with pytest.raises(SyntaxFailure, match="property name"):
        parse_src('a.;')


@pytest.mark.parametrize("src", ['f(1,)', 'heast a = [1, 2,];', 'oida.sag("a",);'])
def test_trailing_separator_is_rejected(src):
    with pytest.raises(SyntaxFailure, match="Expected value after ','"):
        parse_src(src)
