from oidascript.oida_runtime import ScriptRunner, ExecutionResult, StdLib
from oidascript.oida_lexer import tokenize
from oidascript.oida_parser import parse, Parser
from oidascript.oida_interpreter import Evaluator
from oidascript.oida_datatypes import Environment

__all__ = [
    "ScriptRunner",
    "ExecutionResult",
    "StdLib",
    "tokenize",
    "parse",
    "Parser",
    "Evaluator",
    "Environment",
]
