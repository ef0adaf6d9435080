"""
Defines the core data types for the Lispy language runtime.

Every runtime value is one of five variants: Number, Error, Symbol, SExpr and
QExpr. Containers own their children exclusively; a value can live in at most
one container at a time, so every value tree is acyclic.
"""

from abc import ABC
from typing import List, Optional, Iterable, Type
import collections.abc


# =================================================================
# Errors raised by builtins
# =================================================================

class LispyError(Exception):
    """Base class for builtin failures. Converted to an Error value by the evaluator."""
    pass

class LispyArityError(LispyError):
    """Raised when a builtin receives the wrong number of operands."""
    pass

class LispyTypeError(LispyError):
    """Raised when an operand is not of the variant a builtin expects."""
    pass

class LispyEmptyError(LispyError):
    """Raised when a builtin needs a non-empty Q-Expression."""
    pass

class LispyZeroDivisionError(LispyError):
    def __init__(self):
        super().__init__("Division by zero")


# =================================================================
# Abstract Base Class
# =================================================================

class LispyValue(ABC):
    """Abstract base class for every Lispy value."""
    type_name = "Value"

    def __init__(self):
        self.owner: Optional['LispyBlock'] = None
        self.discarded = False

    def discard(self):
        """Destroys this value. A value may only be discarded once."""
        if self.discarded:
            raise RuntimeError(f"{self.type_name} discarded twice")
        self.discarded = True
        self.owner = None

    def __repr__(self) -> str:
        from lispy.lispy_printer import Printer
        return Printer().pformat(self)


# =================================================================
# Terminal Values
# =================================================================

class Number(LispyValue):
    type_name = "Number"

    def __init__(self, value: int):
        super().__init__()
        self.value = value

    def __eq__(self, other):
        return isinstance(other, Number) and self.value == other.value

    def __hash__(self):
        return hash(("Number", self.value))


class Error(LispyValue):
    """A language-level error. Errors are ordinary values and propagate by being returned."""
    type_name = "Error"

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def __eq__(self, other):
        return isinstance(other, Error) and self.message == other.message

    def __hash__(self):
        return hash(("Error", self.message))


class Symbol(LispyValue):
    type_name = "Symbol"

    def __init__(self, name: str):
        super().__init__()
        self.name = name

    def __eq__(self, other):
        return isinstance(other, Symbol) and self.name == other.name

    def __hash__(self):
        return hash(("Symbol", self.name))


# =================================================================
# Containers
# =================================================================

class LispyBlock(LispyValue, collections.abc.MutableSequence):
    """
    Abstract base class for SExpr and QExpr, the sequence-like values that
    own an ordered list of child values.

    Ownership moves with the value: adopting a child that already belongs to
    another container raises ValueError, and removing a child hands it back
    to the caller unowned.
    """
    def __init__(self, nodes: Iterable[LispyValue] = ()):
        super().__init__()
        self.nodes: List[LispyValue] = []
        for node in nodes:
            self.append(node)

    # --- Ownership ---

    def _adopt(self, value: LispyValue):
        if not isinstance(value, LispyValue):
            raise TypeError(f"Cannot store {type(value).__name__} in {self.type_name}")
        if value.discarded:
            raise ValueError(f"Cannot store a discarded {value.type_name}")
        if value is self:
            raise ValueError(f"{self.type_name} cannot contain itself")
        if value.owner is not None and value.owner is not self:
            raise ValueError(f"{value.type_name} is already owned by another container")
        value.owner = self

    def _release(self, value: LispyValue):
        if value.owner is self:
            value.owner = None

    # --- MutableSequence protocol ---

    def __getitem__(self, index):
        return self.nodes[index]

    def __setitem__(self, index, value):
        old = self.nodes[index]
        if old is not value:
            self._adopt(value)
            self._release(old)
        self.nodes[index] = value

    def __delitem__(self, index):
        self.remove_at(index).discard()

    def __len__(self) -> int:
        return len(self.nodes)

    def insert(self, index, value):
        self._adopt(value)
        self.nodes.insert(index, value)

    def __eq__(self, other):
        return type(self) is type(other) and self.nodes == other.nodes

    __hash__ = None

    # --- Container operations ---

    def append(self, value: LispyValue) -> 'LispyBlock':
        """Adds value at the end and takes ownership of it. Returns self for chaining."""
        self._adopt(value)
        self.nodes.append(value)
        return self

    def remove_at(self, index: int) -> LispyValue:
        """Removes and returns the child at index; the caller becomes its owner."""
        if not 0 <= index < len(self.nodes):
            raise IndexError(f"{self.type_name} index {index} out of range (len {len(self.nodes)})")
        value = self.nodes.pop(index)
        self._release(value)
        return value

    def pop(self, index: int = -1) -> LispyValue:
        # MutableSequence.pop goes through __delitem__, which discards.
        if index < 0:
            index += len(self.nodes)
        return self.remove_at(index)

    def take_at(self, index: int) -> LispyValue:
        """Removes the child at index and discards this container."""
        value = self.remove_at(index)
        self.discard()
        return value

    def retag(self, cls: Type['LispyBlock']) -> 'LispyBlock':
        """
        Moves this container's children, unchanged and uncopied, into a new
        container of class cls. This container is left empty and discarded.
        """
        block = cls()
        block.nodes = self.nodes
        for node in block.nodes:
            node.owner = block
        self.nodes = []
        self.discard()
        return block

    def discard(self):
        """Discards every child, then this container."""
        super().discard()
        nodes, self.nodes = self.nodes, []
        for node in nodes:
            node.owner = None
            node.discard()

    @property
    def ast(self):
        """Provides access to the raw child values."""
        return self.nodes


class SExpr(LispyBlock):
    """An evaluable list: the head symbol names the operation applied to the rest."""
    type_name = "S-Expression"


class QExpr(LispyBlock):
    """A quoted list. Never evaluated implicitly."""
    type_name = "Q-Expression"
