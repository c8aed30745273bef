import pytest

from oidascript.oida_datatypes import (
    Environment, FunctionRef, UnknownIdentifier, MISSING,
    ReturnSignal, is_return, unwrap_return, Literal,
)


def test_define_and_get_variable():
    env = Environment()
    env.define_variable("x", 5)
    assert env.get_variable("x") == 5


def test_lookup_walks_parents():
    root = Environment()
    root.define_variable("x", "root")
    child = Environment(parent=root)
    grandchild = Environment(parent=child)
    assert grandchild.get_variable("x") == "root"
    assert grandchild.find_variable_owner("x") is root


def test_local_definition_shadows_without_touching_parent():
    root = Environment()
    root.define_variable("x", 1)
    child = Environment(parent=root)
    child.define_variable("x", 2)
    assert child.get_variable("x") == 2
    assert root.get_variable("x") == 1


def test_unknown_variable_raises():
    env = Environment(parent=Environment())
    with pytest.raises(UnknownIdentifier, match="Unknown identifier: nix"):
        env.get_variable("nix")
    assert env.lookup_variable("nix") is MISSING


def test_functions_have_their_own_namespace():
    env = Environment()
    body = [Literal(1)]
    env.define_variable("f", 99)
    env.define_function("f", body, ["a", "b"])
    assert env.get_variable("f") == 99
    ref = env.get_function("f")
    assert isinstance(ref, FunctionRef)
    assert ref.name == "f"
    assert ref.parameters == ["a", "b"]
    assert ref.body is body


def test_function_lookup_walks_parents():
    root = Environment()
    root.define_function("g", [Literal(2)], [])
    child = Environment(parent=root)
    assert child.find_function_owner("g") is root
    assert child.get_function("g").parameters == []
    with pytest.raises(UnknownIdentifier):
        child.get_function("h")


def test_set_parent_relinks_lookup():
    a = Environment()
    a.define_variable("v", "a")
    b = Environment()
    b.define_variable("v", "b")
    child = Environment(parent=a)
    assert child.get_variable("v") == "a"
    child.set_parent(b)
    assert child.get_variable("v") == "b"


def test_return_signal_helpers():
    sig = ReturnSignal(3)
    assert is_return(sig)
    assert not is_return(3)
    assert unwrap_return(sig) == 3
    assert unwrap_return("x") == "x"
