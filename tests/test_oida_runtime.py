from oidascript import ScriptRunner, ExecutionResult


def test_success_result_shape():
    res = ScriptRunner().handle_script('oida.sag("a"); oida.sag("b"); 3')
    assert res.status == 'success'
    assert res.value == 3
    assert res.errors == []
    assert res.error_message is None
    assert res.stdout == "a\nb\n"
    assert res.format_error() == ""


def test_value_is_none_when_last_statement_fails():
    res = ScriptRunner().handle_script('1; nix')
    assert res.status == 'error'
    assert res.value is None


def test_every_failing_statement_is_reported():
    res = ScriptRunner().handle_script('a; b; oida.sag("c");')
    assert res.errors == [
        "UnknownIdentifier: Unknown identifier: a",
        "UnknownIdentifier: Unknown identifier: b",
    ]
    assert res.error_message == res.errors[0]
    assert res.format_error() == "\n".join(res.errors)
    assert res.stdout == "c\n"


def test_parse_error_points_at_the_token():
    res = ScriptRunner().handle_script('heast x = 5;\n)')
    assert res.status == 'error'
    assert res.error_token == {'line': 2, 'col': 1, 'text': ')'}
    assert res.error_message.startswith("ParseError: Unexpected token (got ')') (line 2, col 1)")
    assert "> 2 | )" in res.error_message
    assert res.side_effects == [{'topics': ['stderr'], 'message': res.error_message}]


def test_side_effects_reset_between_runs():
    runner = ScriptRunner()
    runner.handle_script('oida.sag("eins");')
    res = runner.handle_script('oida.sag("zwei");')
    assert res.stdout == "zwei\n"


def test_stack_is_cleared_between_statements():
    runner = ScriptRunner()
    src = 'hawara f() { speicher nix; } f(); nix'
    res = runner.handle_script(src)
    assert len(res.errors) == 2
    assert "oida stacktrace: (f)" in res.errors[0]
    assert "stacktrace" not in res.errors[1]


def test_stdout_ignores_stderr_effects():
    res = ExecutionResult(status='success', side_effects=[
        {'topics': ['stderr'], 'message': 'x'},
        {'topics': ['stdout'], 'message': 'y'},
    ])
    assert res.stdout == "y\n"


def test_recursion_limit_is_restored_after_a_run():
    import sys
    before = sys.getrecursionlimit()
    ScriptRunner().handle_script('hawara f(n) { speicher f(n); } f(1)')
    assert sys.getrecursionlimit() == before
