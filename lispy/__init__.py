"""Lispy: a small Lisp dialect with S-Expressions and quoted Q-Expressions."""

from lispy.lispy_datatypes import (
    LispyValue, LispyBlock, Number, Error, Symbol, SExpr, QExpr,
    LispyError, LispyArityError, LispyTypeError, LispyEmptyError, LispyZeroDivisionError,
)
from lispy.lispy_reader import LispyReader
from lispy.lispy_interpreter import Evaluator
from lispy.lispy_printer import Printer
from lispy.lispy_runtime import StdLib, ScriptRunner, ExecutionResult
