"""
Operation nodes for the table algebra.

Each operation is a node in the logical plan tree. Operations are dataclasses that
capture the intent of a transformation without executing it; executing a node never
modifies its input.

Constructor shortcuts
---------------------
Unary operations accept ``input=<op>`` as shorthand for ``inputs=[<op>]``.
Additional aliases (e.g. ``n`` for ``count``) are listed per-class.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from enum import Enum

import pandas as pd

from ..exceptions import PlanValidationError, UnsupportedOperationError
from .expressions import AggregateCall, Expression


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class LimitEnd(str, Enum):
    HEAD = "head"
    TAIL = "tail"


def _resolve_inputs(
    inputs: List["Operation"],
    *,
    input: Optional["Operation"] = None,
) -> List["Operation"]:
    """Build the inputs list from explicit inputs or the ``input`` alias."""
    if inputs:
        return inputs
    if input is not None:
        return [input]
    return []


def _expr_to_dict(expression: Expression) -> Dict[str, Any]:
    return expression.to_dict()


@dataclass
class Operation:
    """Base class for all operations."""

    inputs: List["Operation"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError(
            f"to_dict not implemented for {self.__class__.__name__}"
        )

    def _single_input_dict(self) -> Dict[str, Any]:
        return self.inputs[0].to_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Operation":
        op_type = data.get("type")
        if not op_type:
            raise PlanValidationError("Operation dict must have 'type' field")

        type_map = {
            "source": Source,
            "select": Select,
            "filter": Filter,
            "mutate": Mutate,
            "summarize": Summarize,
            "sort": Sort,
            "limit": Limit,
            "pivot_longer": PivotLonger,
            "pivot_wider": PivotWider,
        }

        op_class = type_map.get(op_type)
        if not op_class:
            raise PlanValidationError(f"Unknown operation type: {op_type}")

        inputs_data = data.get("inputs", [])
        if not inputs_data:
            single = data.get("input")
            if single is not None:
                inputs_data = [single] if isinstance(single, dict) else single
        if isinstance(inputs_data, dict):
            inputs_data = [inputs_data]
        inputs = [Operation.from_dict(inp) for inp in inputs_data]

        kwargs = {k: v for k, v in data.items() if k not in ("type", "inputs", "input")}
        kwargs["inputs"] = inputs

        if op_type == "filter":
            kwargs["predicate"] = Expression.from_dict(kwargs["predicate"])
        elif op_type == "mutate":
            kwargs["assignments"] = [
                (name, Expression.from_dict(expr)) for name, expr in kwargs["assignments"]
            ]
        elif op_type == "summarize":
            kwargs["aggregations"] = [
                (name, Expression.from_dict(expr)) for name, expr in kwargs["aggregations"]
            ]
        elif op_type == "sort":
            kwargs["keys"] = [tuple(key) for key in kwargs["keys"]]

        try:
            return op_class(**kwargs)
        except TypeError as e:
            raise PlanValidationError(f"Invalid fields for {op_type!r}: {e}") from e


@dataclass
class Source(Operation):
    """Data source; always a leaf node.

    ``data`` holds the materialized frame for eager execution. Deserialized plans
    carry only ``source_id`` and ``schema``; bind their data at execution time.

    Aliases: ``name`` → ``source_id``.
    """

    source_id: str = ""
    schema: Optional[List[str]] = None
    data: Optional[pd.DataFrame] = field(default=None, repr=False)
    name: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if self.name is not None and not self.source_id:
            self.source_id = self.name
        self.name = None
        if self.inputs:
            raise ValueError("Source operation cannot have inputs")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "source",
            "source_id": self.source_id,
            "schema": self.schema,
            "inputs": [],
        }


@dataclass
class Select(Operation):
    """Column projection.

    Aliases: ``input`` → ``inputs[0]``.
    """

    columns: List[str] = field(default_factory=list)
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("Select operation must have exactly one input")
        if not self.columns:
            raise ValueError("Select operation must specify at least one column")
        if len(set(self.columns)) != len(self.columns):
            raise ValueError(f"Select columns must be unique, got: {self.columns}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "select",
            "columns": list(self.columns),
            "input": self._single_input_dict(),
        }


@dataclass
class Filter(Operation):
    """Row filtering.

    Keeps rows where ``predicate`` is true; rows where it is false or unknown
    (missing) are dropped.

    Aliases: ``input`` → ``inputs[0]``.
    """

    predicate: Optional[Expression] = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("Filter operation must have exactly one input")
        if self.predicate is None:
            raise ValueError("Filter operation must specify a predicate")
        if not isinstance(self.predicate, Expression):
            raise TypeError(
                f"Filter predicate must be an Expression, got {type(self.predicate).__name__}"
            )
        if isinstance(self.predicate, AggregateCall):
            raise ValueError("Filter predicate cannot be an aggregate")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "filter",
            "predicate": _expr_to_dict(self.predicate),
            "input": self._single_input_dict(),
        }


@dataclass
class Mutate(Operation):
    """Add or replace columns.

    ``assignments`` is an ordered list of ``(column, expression)`` pairs evaluated
    left to right; later expressions may reference earlier outputs.

    Aliases: ``input`` → ``inputs[0]``.
    """

    assignments: List[Tuple[str, Expression]] = field(default_factory=list)
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("Mutate operation must have exactly one input")
        if not self.assignments:
            raise ValueError("Mutate operation must specify at least one column")
        for name, expression in self.assignments:
            if not name:
                raise ValueError("Mutate operation must specify a column name")
            if not isinstance(expression, Expression):
                raise TypeError(
                    f"Mutate expression for {name!r} must be an Expression, "
                    f"got {type(expression).__name__}"
                )
            if isinstance(expression, AggregateCall):
                raise ValueError(f"Mutate expression for {name!r} cannot be an aggregate")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "mutate",
            "assignments": [[name, _expr_to_dict(e)] for name, e in self.assignments],
            "input": self._single_input_dict(),
        }


@dataclass
class Summarize(Operation):
    """Partitioned aggregation.

    One output row per distinct key tuple, in order of first appearance. With no
    keys the whole input is one group and the output has exactly one row.

    Aliases: ``input`` → ``inputs[0]``.
    """

    keys: List[str] = field(default_factory=list)
    aggregations: List[Tuple[str, AggregateCall]] = field(default_factory=list)
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("Summarize operation must have exactly one input")
        if not self.aggregations:
            raise ValueError("Summarize operation must specify at least one aggregation")
        if len(set(self.keys)) != len(self.keys):
            raise ValueError(f"Summarize keys must be unique, got: {self.keys}")
        for name, aggregation in self.aggregations:
            if not isinstance(aggregation, AggregateCall):
                raise TypeError(
                    f"Aggregation {name!r} must be an AggregateCall, "
                    f"got {type(aggregation).__name__}"
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "summarize",
            "keys": list(self.keys),
            "aggregations": [[name, _expr_to_dict(a)] for name, a in self.aggregations],
            "input": self._single_input_dict(),
        }


@dataclass
class Sort(Operation):
    """Stable row reordering. Missing values sort last in either direction.

    Aliases: ``input`` → ``inputs[0]``.
    """

    keys: List[Tuple[str, str]] = field(default_factory=list)
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("Sort operation must have exactly one input")
        if not self.keys:
            raise ValueError("Sort operation must specify at least one sort key")
        keys = []
        for column, direction in self.keys:
            try:
                direction = SortDirection(direction)
            except ValueError:
                raise ValueError(f"Sort direction must be 'asc' or 'desc', got: {direction}") from None
            keys.append((column, direction.value))
        self.keys = keys

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "sort",
            "keys": [list(key) for key in self.keys],
            "input": self._single_input_dict(),
        }


@dataclass
class Limit(Operation):
    """Row truncation.

    Aliases: ``input`` → ``inputs[0]``, ``n`` → ``count``.
    """

    count: int = 0
    end: str = "head"
    input: Optional[Operation] = field(default=None, repr=False)
    n: Optional[int] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if self.n is not None and self.count == 0:
            self.count = self.n
        self.n = None
        if len(self.inputs) != 1:
            raise ValueError("Limit operation must have exactly one input")
        if self.count < 0:
            raise ValueError("Limit count must be non-negative")
        try:
            self.end = LimitEnd(self.end).value
        except ValueError:
            raise ValueError(f"Limit end must be 'head' or 'tail', got: {self.end}") from None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "limit",
            "count": self.count,
            "end": self.end,
            "input": self._single_input_dict(),
        }


@dataclass
class PivotLonger(Operation):
    """Wide-to-long reshaping.

    Every column in ``cols`` is collapsed into a ``names_to`` column holding the
    original column name and a ``values_to`` column holding the cell value.
    Output is row-major: each input row expands to ``len(cols)`` rows.

    Aliases: ``input`` → ``inputs[0]``.
    """

    cols: List[str] = field(default_factory=list)
    names_to: str = "name"
    values_to: str = "value"
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("PivotLonger operation must have exactly one input")
        if not self.cols:
            raise ValueError("PivotLonger operation must specify columns to collapse")
        if len(set(self.cols)) != len(self.cols):
            raise ValueError(f"PivotLonger columns must be unique, got: {self.cols}")
        if not self.names_to or not self.values_to:
            raise ValueError("PivotLonger operation must name both output columns")
        if self.names_to == self.values_to:
            raise ValueError("PivotLonger names_to and values_to must differ")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "pivot_longer",
            "cols": list(self.cols),
            "names_to": self.names_to,
            "values_to": self.values_to,
            "input": self._single_input_dict(),
        }


@dataclass
class PivotWider(Operation):
    """Long-to-wide reshaping.

    One output row per distinct ``id_cols`` tuple and one output column per
    distinct value of ``names_from``. ``id_cols=None`` means every column other
    than ``names_from`` and ``values_from``. Duplicate cells are an error unless
    ``values_fn`` (an aggregate name or a callable over a Series) collapses them.

    Aliases: ``input`` → ``inputs[0]``.
    """

    names_from: str = "name"
    values_from: str = "value"
    id_cols: Optional[List[str]] = None
    values_fn: Optional[Union[str, Callable[[pd.Series], Any]]] = None
    values_fill: Any = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("PivotWider operation must have exactly one input")
        if not self.names_from or not self.values_from:
            raise ValueError("PivotWider operation must specify names_from and values_from")
        if self.names_from == self.values_from:
            raise ValueError("PivotWider names_from and values_from must differ")
        if self.id_cols is not None:
            overlap = {self.names_from, self.values_from} & set(self.id_cols)
            if overlap:
                raise ValueError(f"PivotWider id_cols overlap name/value columns: {sorted(overlap)}")
        if self.values_fn is not None and not (
            isinstance(self.values_fn, str) or callable(self.values_fn)
        ):
            raise TypeError("PivotWider values_fn must be an aggregate name or a callable")

    def to_dict(self) -> Dict[str, Any]:
        if callable(self.values_fn):
            raise UnsupportedOperationError(
                "Cannot serialize PivotWider with a callable values_fn; use an aggregate name"
            )
        return {
            "type": "pivot_wider",
            "names_from": self.names_from,
            "values_from": self.values_from,
            "id_cols": list(self.id_cols) if self.id_cols is not None else None,
            "values_fn": self.values_fn,
            "values_fill": self.values_fill,
            "input": self._single_input_dict(),
        }
