"""
Expression nodes for the table algebra.

This module provides expression representations for use in operations like Filter,
Mutate, and Summarize. Expressions are represented as an AST: Column references,
Literal values, BinaryOp / UnaryOp for arithmetic/comparison/logic, FunctionCall
for built-in scalar functions, MapValues for elementwise Python callables, and
AggregateCall for reductions evaluated once per group.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import UnsupportedOperationError


def _wrap(other: Any) -> "Expression":
    """Promote a plain Python value to a Literal when needed."""
    if isinstance(other, Expression):
        return other
    return Literal(value=other)


@dataclass(eq=False)
class Expression:
    """Base class for all expression types.

    Supports Python operators so you can write ``col("age") > 30`` and get
    back a ``BinaryOp`` AST node.
    """

    def __bool__(self) -> bool:
        raise TypeError(
            "Expressions have no truth value; combine predicates with & and | "
            "instead of 'and' / 'or'"
        )

    # Arithmetic
    def __add__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="+", left=self, right=_wrap(other))

    def __radd__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="+", left=_wrap(other), right=self)

    def __sub__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="-", left=self, right=_wrap(other))

    def __rsub__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="-", left=_wrap(other), right=self)

    def __mul__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="*", left=self, right=_wrap(other))

    def __rmul__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="*", left=_wrap(other), right=self)

    def __truediv__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="/", left=self, right=_wrap(other))

    def __rtruediv__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="/", left=_wrap(other), right=self)

    def __floordiv__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="//", left=self, right=_wrap(other))

    def __mod__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="%", left=self, right=_wrap(other))

    def __pow__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="**", left=self, right=_wrap(other))

    def __neg__(self) -> "UnaryOp":
        return UnaryOp(op="neg", operand=self)

    # Comparison: returns BinaryOp nodes, NOT Python bools
    def __gt__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op=">", left=self, right=_wrap(other))

    def __ge__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op=">=", left=self, right=_wrap(other))

    def __lt__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="<", left=self, right=_wrap(other))

    def __le__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="<=", left=self, right=_wrap(other))

    def __eq__(self, other: Any) -> "BinaryOp":  # type: ignore[override]
        return BinaryOp(op="==", left=self, right=_wrap(other))

    def __ne__(self, other: Any) -> "BinaryOp":  # type: ignore[override]
        return BinaryOp(op="!=", left=self, right=_wrap(other))

    __hash__ = object.__hash__

    # Logical (bitwise operators used as logical, like pandas)
    def __and__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="and", left=self, right=_wrap(other))

    def __or__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="or", left=self, right=_wrap(other))

    def __invert__(self) -> "UnaryOp":
        return UnaryOp(op="not", operand=self)

    # Missing-value helpers
    def is_na(self) -> "FunctionCall":
        """True where the value is missing. Never itself missing."""
        return FunctionCall(func="is_na", args=[self])

    def fill_na(self, value: Any) -> "FunctionCall":
        """Replace missing values with ``value``."""
        return FunctionCall(func="coalesce", args=[self, _wrap(value)])

    def isin(self, values: List[Any]) -> "FunctionCall":
        return FunctionCall(func="isin", args=[self, Literal(value=list(values))])

    def map(self, func: Callable[[Any], Any], dtype: Optional[str] = None) -> "MapValues":
        """Apply ``func`` to every non-missing value."""
        return MapValues(operand=self, func=func, dtype=dtype)

    def columns(self) -> List[str]:
        """Names of every column referenced by this expression, in order."""
        return []

    # Serialization
    def to_dict(self) -> Dict[str, Any]:
        raise UnsupportedOperationError(
            f"to_dict not implemented for {self.__class__.__name__}"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expression":
        type_name = data.get("type")
        type_map: dict[str, type] = {
            "column": Column,
            "literal": Literal,
            "binary_op": BinaryOp,
            "unary_op": UnaryOp,
            "function_call": FunctionCall,
            "aggregate_call": AggregateCall,
        }
        target = type_map.get(type_name)
        if target is None:
            raise UnsupportedOperationError(f"Unknown expression type: {type_name!r}")
        return target._from_dict(data)  # type: ignore[attr-defined]


@dataclass(eq=False)
class Column(Expression):
    """Reference to a named table column."""

    name: str = ""

    def __str__(self) -> str:
        return self.name

    def columns(self) -> List[str]:
        return [self.name]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "column", "name": self.name}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(name=data["name"])


@dataclass(eq=False)
class Literal(Expression):
    """A constant / literal value.

    ``Literal(42)`` and ``Literal(value=42)`` are both accepted. ``Literal(None)``
    is the missing value.
    """

    value: Any = None

    def __str__(self) -> str:
        if self.value is None:
            return "NA"
        return repr(self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "literal", "value": self.value}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Literal":
        return cls(value=data["value"])


@dataclass(eq=False)
class BinaryOp(Expression):
    """Binary operation (arithmetic, comparison, or logical)."""

    op: str = ""
    left: Expression = field(default_factory=Literal)
    right: Expression = field(default_factory=Literal)

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"

    def columns(self) -> List[str]:
        return _unique(self.left.columns() + self.right.columns())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "binary_op",
            "op": self.op,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "BinaryOp":
        return cls(
            op=data["op"],
            left=Expression.from_dict(data["left"]),
            right=Expression.from_dict(data["right"]),
        )


@dataclass(eq=False)
class UnaryOp(Expression):
    """Unary operation (negation, logical NOT)."""

    op: str = ""
    operand: Expression = field(default_factory=Literal)

    def __str__(self) -> str:
        return f"({self.op} {self.operand})"

    def columns(self) -> List[str]:
        return self.operand.columns()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "unary_op",
            "op": self.op,
            "operand": self.operand.to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "UnaryOp":
        return cls(
            op=data["op"],
            operand=Expression.from_dict(data["operand"]),
        )


@dataclass(eq=False)
class FunctionCall(Expression):
    """Application of a named function to argument expressions."""

    func: str = ""
    args: List[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.func}({args_str})"

    def columns(self) -> List[str]:
        names: List[str] = []
        for arg in self.args:
            names.extend(arg.columns())
        return _unique(names)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "function_call",
            "func": self.func,
            "args": [a.to_dict() for a in self.args],
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "FunctionCall":
        return cls(
            func=data["func"],
            args=[Expression.from_dict(a) for a in data.get("args", [])],
        )


@dataclass(eq=False)
class MapValues(Expression):
    """Elementwise application of a Python callable.

    Missing values are passed through without calling ``func``. Not serializable.
    """

    operand: Expression = field(default_factory=Literal)
    func: Optional[Callable[[Any], Any]] = None
    dtype: Optional[str] = None

    def __str__(self) -> str:
        name = getattr(self.func, "__name__", "func")
        return f"map({self.operand}, {name})"

    def columns(self) -> List[str]:
        return self.operand.columns()


@dataclass(eq=False)
class AggregateCall(Expression):
    """Reduction of an argument expression to one value per group.

    By default a missing value anywhere in the argument makes the result missing;
    ``na_rm=True`` drops missing values before reducing.
    """

    func: str = ""
    arg: Optional[Expression] = None
    na_rm: bool = False

    def __str__(self) -> str:
        arg_str = str(self.arg) if self.arg is not None else ""
        if self.na_rm:
            arg_str += ", na_rm=True"
        return f"{self.func}({arg_str})"

    def columns(self) -> List[str]:
        return self.arg.columns() if self.arg is not None else []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "aggregate_call",
            "func": self.func,
            "arg": self.arg.to_dict() if self.arg is not None else None,
            "na_rm": self.na_rm,
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "AggregateCall":
        arg = data.get("arg")
        return cls(
            func=data["func"],
            arg=Expression.from_dict(arg) if arg is not None else None,
            na_rm=data.get("na_rm", False),
        )


def _unique(names: List[str]) -> List[str]:
    return list(dict.fromkeys(names))


def col(name: str) -> Column:
    """Create a Column reference expression.

    Example:
        >>> c = col("body_mass_g")
        >>> pred = c > 4000     # BinaryOp(op='>', left=Column('body_mass_g'), right=Literal(4000))
    """
    return Column(name=name)


def lit(value: Any) -> Literal:
    """Create a Literal expression. ``lit(None)`` is the missing value."""
    return Literal(value=value)
