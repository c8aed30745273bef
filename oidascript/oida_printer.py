"""
A printer for Oida runtime values.
"""
import collections.abc

from oidascript.oida_datatypes import FunctionRef

TRUE_WORD = 'basst'
FALSE_WORD = 'sichaned'


class Printer:
    """Formats Oida values as text.

    `pformat` renders values the way `oida.sag` writes them: strings are raw
    at the top level and quoted inside collections, so a printed list or
    associative array reads back as an equivalent literal.
    """

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj, nested=False):
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj, nested)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, collections.abc.Mapping):
            return self._pformat_dict
        if isinstance(obj, (list, tuple)):
            return self._pformat_list
        if isinstance(obj, str):
            return self._pformat_str
        return lambda o, n: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_primitive,
            float: self._pformat_float,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            list: self._pformat_list,
            dict: self._pformat_dict,
            FunctionRef: self._pformat_function,
        }

    def _pformat_primitive(self, obj, nested):
        return str(obj)

    def _pformat_float(self, obj, nested):
        if obj.is_integer():
            return str(int(obj))
        return repr(obj)

    def _pformat_str(self, obj, nested):
        if nested:
            return f'"{obj}"'
        return obj

    def _pformat_bool(self, obj, nested):
        return TRUE_WORD if obj else FALSE_WORD

    def _pformat_none(self, obj, nested):
        return ''

    def _pformat_list(self, obj, nested):
        return '[' + ', '.join(self.pformat(item, True) for item in obj) + ']'

    def _pformat_dict(self, obj, nested):
        keys = self._pformat_list(list(obj.keys()), True)
        values = self._pformat_list(list(obj.values()), True)
        return f"{keys}: {values}"

    def _pformat_function(self, obj, nested):
        return f"<hawara {obj.name}({', '.join(obj.parameters)})>"


def to_text(value) -> str:
    """Stringify for `zuText`: list elements joined by a single space."""
    printer = Printer()
    if isinstance(value, collections.abc.Mapping):
        value = list(value.values())
    if isinstance(value, list):
        return ' '.join(printer.pformat(item) for item in value)
    return printer.pformat(value)
