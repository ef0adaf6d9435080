"""
A printer for Lispy values.
"""

from lispy.lispy_datatypes import Number, Error, Symbol, SExpr, QExpr


class Printer:
    """Formats Lispy values into the strings the REPL shows."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj):
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Subclasses print like their nearest known base
        for base in obj_type.__mro__[1:]:
            if base in self._handlers:
                return self._handlers[base]
        # Default to Python's repr for non-Lispy objects
        return repr

    def _create_handlers(self):
        return {
            Number: self._pformat_number,
            Error: self._pformat_error,
            Symbol: self._pformat_symbol,
            SExpr: self._pformat_sexpr,
            QExpr: self._pformat_qexpr,
        }

    def _pformat_number(self, obj):
        return str(obj.value)

    def _pformat_error(self, obj):
        return f"Error: {obj.message}"

    def _pformat_symbol(self, obj):
        return obj.name

    def _pformat_sexpr(self, obj):
        return self._pformat_block(obj, "(", ")")

    def _pformat_qexpr(self, obj):
        return self._pformat_block(obj, "{", "}")

    def _pformat_block(self, obj, open_char, close_char):
        inner = " ".join(self.pformat(node) for node in obj.nodes)
        return f"{open_char}{inner}{close_char}"
