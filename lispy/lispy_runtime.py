# lispy_runtime.py

import re
import os
import inspect
import functools
from pathlib import Path
from typing import Any, Dict, Optional, Literal
from dataclasses import dataclass

import yaml
from koine import Parser

from lispy.lispy_reader import LispyReader
from lispy.lispy_interpreter import Evaluator
from lispy.lispy_datatypes import (
    LispyArityError, LispyTypeError, LispyEmptyError, LispyZeroDivisionError,
    Number, SExpr, QExpr
)

DEFAULT_GRAMMAR_PATH = Path(__file__).parent / "grammar" / "lispy_grammar.yaml"

ARITHMETIC_OPERATORS = ('+', '-', '*', '/', '%')

# koine reports failure positions as "... at L2:C1 ..."
LOCATION_RE = re.compile(r"\bL(\d+):C(\d+)\b")

# ===================================================================
# 1. Builtins
# ===================================================================


class StdLib:
    """Contains Python implementations for all Lispy builtins.

    Every method named `_<name>` is registered on the evaluator as `<name>`;
    the arithmetic operators all share `arith`. Each builtin receives the
    operand S-Expression and either consumes it or leaves it for the
    evaluator to discard.
    """
    def __init__(self, evaluator: Evaluator):
        self.evaluator = evaluator
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                evaluator.register(name[1:], member)
        for op in ARITHMETIC_OPERATORS:
            evaluator.register(op, functools.partial(self.arith, op))

    # --- Operand checks ---

    def check_arity(self, name: str, args: SExpr, expected: int):
        if len(args) != expected:
            raise LispyArityError(
                f"Function '{name}' passed {len(args)} arguments, expected {expected}"
            )

    def check_qexpr(self, name: str, args: SExpr, index: int):
        node = args[index]
        if not isinstance(node, QExpr):
            raise LispyTypeError(
                f"Function '{name}' passed incorrect type for argument {index}: "
                f"got {node.type_name}, expected {QExpr.type_name}"
            )

    def take_single_qexpr(self, name: str, args: SExpr, non_empty: bool = True) -> QExpr:
        """Validates a one-operand Q-Expression call and returns the operand."""
        self.check_arity(name, args, 1)
        self.check_qexpr(name, args, 0)
        if non_empty and len(args[0]) == 0:
            raise LispyEmptyError(f"Function '{name}' passed {{}}")
        return args.take_at(0)

    # --- Math ---

    def arith(self, op: str, args: SExpr) -> Number:
        if len(args) == 0:
            raise LispyArityError(f"Function '{op}' passed no arguments")
        for node in args:
            if not isinstance(node, Number):
                raise LispyTypeError(f"Cannot operate on non-number: got {node.type_name}")

        first = args.remove_at(0)
        result = first.value
        first.discard()
        # Unary minus
        if op == '-' and len(args) == 0:
            return Number(-result)
        while len(args) > 0:
            operand = args.remove_at(0)
            try:
                result = self.fold(op, result, operand.value)
            finally:
                operand.discard()
        return Number(result)

    def fold(self, op: str, a: int, b: int) -> int:
        match op:
            case '+':
                return a + b
            case '-':
                return a - b
            case '*':
                return a * b
            case '/' | '%':
                if b == 0:
                    raise LispyZeroDivisionError()
                # Integer division truncates toward zero; the remainder takes the dividend's sign.
                q = abs(a) // abs(b)
                if (a < 0) != (b < 0):
                    q = -q
                return q if op == '/' else a - b * q
        raise ValueError(f"Unknown arithmetic operator '{op}'")

    # --- Q-Expression Utilities ---

    def _list(self, args: SExpr) -> QExpr:
        return args.retag(QExpr)

    def _cons(self, args: SExpr) -> QExpr:
        out = QExpr()
        while len(args) > 0:
            out.append(args.remove_at(0))
        return out

    def _head(self, args: SExpr) -> QExpr:
        q = self.take_single_qexpr('head', args)
        while len(q) > 1:
            del q[1]
        return q

    def _tail(self, args: SExpr) -> QExpr:
        q = self.take_single_qexpr('tail', args)
        del q[0]
        return q

    def _init(self, args: SExpr) -> QExpr:
        q = self.take_single_qexpr('init', args)
        del q[len(q) - 1]
        return q

    def _len(self, args: SExpr) -> Number:
        q = self.take_single_qexpr('len', args, non_empty=False)
        n = len(q)
        q.discard()
        return Number(n)

    def _join(self, args: SExpr) -> QExpr:
        for i in range(len(args)):
            self.check_qexpr('join', args, i)
        if len(args) == 0:
            return QExpr()
        out = args.remove_at(0)
        while len(args) > 0:
            other = args.remove_at(0)
            while len(other) > 0:
                out.append(other.remove_at(0))
            other.discard()
        return out

    def _eval(self, args: SExpr):
        q = self.take_single_qexpr('eval', args, non_empty=False)
        return self.evaluator.eval(q.retag(SExpr))


# ===================================================================
# 2. Script Execution
# ===================================================================

Token = Dict[str, Any]


@dataclass
class ExecutionResult:
    """The structured result of a script execution.

    A Lispy Error value is a successful execution whose value is an Error;
    status is 'error' only for parse failures and internal faults.
    """
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = self.error_message or "Unknown error"
        if self.error_token:
            return f"Error on line {self.error_token['line']}, col {self.error_token['col']}: {msg}"
        return msg


def load_parser(grammar_path) -> Parser:
    """Builds a koine Parser from a YAML grammar file."""
    with open(grammar_path, encoding="utf-8") as f:
        grammar_def = yaml.safe_load(f)
    return Parser(grammar_def)


class ScriptRunner:
    """Parses, reads, and evaluates Lispy source."""

    # Parsers are built once per grammar file and shared between runners.
    _parsers: Dict[str, Parser] = {}
    _reader: Optional[LispyReader] = None

    def __init__(self, grammar_path: Optional[str] = None):
        self.grammar_path = str(grammar_path or os.environ.get("LISPY_GRAMMAR") or DEFAULT_GRAMMAR_PATH)
        if self.grammar_path not in ScriptRunner._parsers:
            ScriptRunner._parsers[self.grammar_path] = load_parser(self.grammar_path)

        if ScriptRunner._reader is None:
            ScriptRunner._reader = LispyReader()

        self.parser = ScriptRunner._parsers[self.grammar_path]
        self.reader = ScriptRunner._reader

        self.evaluator = Evaluator()
        self.stdlib = StdLib(self.evaluator)

    def _parse_error_token(self, parse_out) -> Optional[Token]:
        """Locates a koine parse failure, from its error node or its 'L<line>:C<col>' message."""
        node = parse_out.get('error_node') or {}
        if node.get('line') is not None and node.get('col') is not None:
            return {'line': node['line'], 'col': node['col']}
        m = LOCATION_RE.search(parse_out.get('message') or "")
        if m:
            return {'line': int(m.group(1)), 'col': int(m.group(2))}
        return None

    def _format_parse_error(self, parse_out, source: str, token: Optional[Token]) -> str:
        base = parse_out.get('message') or parse_out.get('error_message') or "parse failed"
        msg = f"ParseError: {base}"
        if token:
            context = self._source_context(source, token['line'], token['col'])
            if context:
                msg = f"{msg}\n{context}"
        return msg

    def _source_context(self, source: str, line: int, col: int) -> str:
        lines = source.splitlines()
        if not 1 <= line <= len(lines):
            return ""
        gutter = " " * len(str(line))
        return f"{line} | {lines[line - 1]}\n{gutter} | {' ' * max(col - 1, 0)}^"

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        return "Lispy stacktrace: " + " ".join(f"({name})" for name in stack)

    def parse(self, source_code: str):
        """Parses source into a koine tree. Returns (tree, None) or (None, ExecutionResult)."""
        try:
            parse_out = self.parser.parse(source_code)
        except Exception as e:
            msg = f"ParseError: {e}" if str(e) else "ParseError: parse failed"
            return None, ExecutionResult(status='error', error_message=msg)

        if isinstance(parse_out, dict) and 'status' in parse_out:
            if parse_out.get('status') != 'success':
                token = self._parse_error_token(parse_out)
                return None, ExecutionResult(
                    status='error',
                    error_message=self._format_parse_error(parse_out, source_code, token),
                    error_token=token,
                )
            tree = parse_out.get('ast')
            if tree is None:
                return None, ExecutionResult(status='error', error_message="ParseError: missing AST in parser result")
            return tree, None
        return parse_out, None

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a line or script."""
        self.evaluator.call_stack.clear()
        tree, failure = self.parse(source_code)
        if failure is not None:
            return failure

        try:
            value = self.reader.read(tree)
            result = self.evaluator.eval(value)
        except Exception as e:
            msg = f"InternalError: {e}"
            st = self._format_stacktrace()
            if st:
                msg += "\n" + st
            return ExecutionResult(status='error', error_message=msg)

        return ExecutionResult(status='success', value=result)
