"""
The core Lispy interpreter: the Evaluator and its builtin dispatch.
"""
import os
import sys
from typing import Callable, Dict, List

from lispy.lispy_datatypes import (
    LispyValue, LispyError, Error, Symbol, SExpr
)

# A builtin takes ownership of its operand S-Expression and returns a fresh value.
Builtin = Callable[[SExpr], LispyValue]


class Evaluator:
    """The Lispy execution engine."""
    def __init__(self):
        # Populated by StdLib; maps exact operator names to handlers.
        self.builtins: Dict[str, Builtin] = {}
        # Names of the builtins currently being applied, innermost last.
        self.call_stack: List[str] = []

    def _dbg(self, *parts):
        if os.environ.get("LISPY_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    def register(self, name: str, func: Builtin):
        self.builtins[name] = func

    def eval(self, value: LispyValue) -> LispyValue:
        """
        Reduces value to its simplest form. Only S-Expressions are reduced;
        every other variant, Q-Expressions included, evaluates to itself.
        """
        if isinstance(value, SExpr):
            return self._eval_sexpr(value)
        return value

    def _eval_sexpr(self, sexpr: SExpr) -> LispyValue:
        for i in range(len(sexpr)):
            sexpr[i] = self.eval(sexpr[i])

        if len(sexpr) == 0:
            return sexpr
        if len(sexpr) == 1:
            return sexpr.take_at(0)

        # First error wins; everything else in the expression is dropped.
        for i, node in enumerate(sexpr):
            if isinstance(node, Error):
                self._dbg("ERROR", node.message)
                return sexpr.take_at(i)

        head = sexpr.remove_at(0)
        if not isinstance(head, Symbol):
            head.discard()
            sexpr.discard()
            return Error("S-Expression does not start with symbol")
        try:
            return self.call(head.name, sexpr)
        finally:
            head.discard()

    def call(self, name: str, args: SExpr) -> LispyValue:
        """Applies the builtin called name to args, consuming args on every path."""
        func = self.builtins.get(name)
        if func is None:
            self._dbg("UNSUPPORTED", name)
            args.discard()
            return Error("Unsupported function")

        self._dbg("CALL", name, "argc", len(args))
        self.call_stack.append(name)
        try:
            result = func(args)
        except LispyError as e:
            self._dbg("ERROR", name, str(e))
            result = Error(str(e))
        finally:
            if not args.discarded:
                args.discard()
        self.call_stack.pop()
        return result
