"""
tidyframe.Table: an immutable table with logical plan tracking.

Every verb (filter, mutate, summarize, pivot_longer, ...) executes eagerly in pandas
AND records a node in the logical plan. The underlying frame is never handed out
mutably, so a Table can be shared freely; each verb returns a new Table.

Key features:
- Dual-mode execution: each verb materializes its result and extends the plan
- Nullable dtypes: ``pd.NA`` is the one missing marker in every column
- Plan access: ``plan``, ``explain()`` and ``visualize()`` expose the computation graph
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..algebra import (
    AggregateCall,
    Expression,
    Filter,
    Limit,
    LogicalPlan,
    Mutate,
    PivotLonger,
    PivotWider,
    Select,
    Sort,
    Source,
    Summarize,
    aggregates,
)
from ..algebra.eager import _is_missing, apply_operation, as_frame
from ..algebra.operations import LimitEnd, Operation, SortDirection
from ..config import get_settings
from ..exceptions import SchemaError

SortKey = Union[str, Tuple[str, str]]


def desc(column: str) -> Tuple[str, str]:
    """Mark a column for descending order in ``Table.arrange``."""
    return (column, SortDirection.DESC.value)


def _as_list(columns) -> List[str]:
    if columns is None:
        return []
    if isinstance(columns, str):
        return [columns]
    return list(columns)


class Table:
    """Immutable table of equal-length named columns.

    Attributes:
        plan: LogicalPlan tracking the computation graph from source to current state

    Example:
        >>> penguins = Table({"species": ["Adelie", "Gentoo"], "body_mass_g": [3750, None]})
        >>> heavy = penguins.filter(col("body_mass_g") > 3000)
        >>> print(heavy.explain())
    """

    __slots__ = ("_frame", "_plan")

    def __init__(self, data=None, source_id: Optional[str] = None):
        """Initialize a Table.

        Args:
            data: Mapping of column name to values, or a pandas DataFrame
            source_id: Identifier recorded on the plan's Source node
        """
        frame = as_frame({} if data is None else data)
        if source_id is None:
            source_id = "<table>"
        source = Source(source_id=source_id, schema=list(frame.columns), data=frame.copy())
        self._frame = frame
        self._plan = LogicalPlan(source)

    @classmethod
    def _from_operation(cls, op: Operation, frame: pd.DataFrame) -> "Table":
        table = cls.__new__(cls)
        table._frame = frame
        table._plan = LogicalPlan(op)
        return table

    def _apply(self, op: Operation) -> "Table":
        frame = apply_operation(op, [self._frame])
        return Table._from_operation(op, frame)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def plan(self) -> LogicalPlan:
        return self._plan

    @property
    def columns(self) -> List[str]:
        return list(self._frame.columns)

    @property
    def dtypes(self) -> Dict[str, str]:
        return {name: str(dtype) for name, dtype in self._frame.dtypes.items()}

    @property
    def num_rows(self) -> int:
        return len(self._frame)

    @property
    def shape(self) -> Tuple[int, int]:
        return self._frame.shape

    def __len__(self) -> int:
        return len(self._frame)

    def column(self, name: str) -> pd.Series:
        """Return a copy of one column as a pandas Series."""
        if name not in self._frame.columns:
            raise SchemaError(
                f"Column {name!r} not found; available columns: {self.columns}", column=name
            )
        return self._frame[name].copy()

    def to_pandas(self) -> pd.DataFrame:
        """Return a copy of the data as a pandas DataFrame."""
        return self._frame.copy()

    def to_dict(self) -> Dict[str, List[Any]]:
        """Return ``{column: [values...]}`` with ``pd.NA`` for missing values."""
        return {
            name: [pd.NA if _is_missing(value) else value for value in self._frame[name].tolist()]
            for name in self._frame.columns
        }

    def equals(self, other: "Table") -> bool:
        """True when both tables hold the same columns, dtypes and values in order."""
        if not isinstance(other, Table):
            return False
        return self._frame.equals(other._frame)

    def explain(self) -> str:
        return self._plan.explain()

    def visualize(self) -> str:
        from ..utils.visualization import visualize

        return visualize(self._plan)

    def __repr__(self) -> str:
        limit = get_settings().REPR_ROWS
        header = f"Table: {self.num_rows} rows x {len(self.columns)} columns"
        if self.num_rows == 0 or limit == 0:
            return header + "\n" + ", ".join(self.columns)
        body = self._frame.head(limit).to_string(index=False)
        more = self.num_rows - limit
        if more > 0:
            body += f"\n# ... with {more} more rows"
        return header + "\n" + body

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def filter(self, *predicates: Expression) -> "Table":
        """Keep rows where every predicate is true.

        Rows where a predicate is false or unknown (a comparison with a missing
        value) are dropped. Column set, dtypes and row order are preserved.

        Raises:
            SchemaError: If a predicate references an unknown column
        """
        if not predicates:
            raise ValueError("filter() requires at least one predicate")
        predicate = predicates[0]
        for extra in predicates[1:]:
            predicate = predicate & extra
        return self._apply(Filter(predicate=predicate, inputs=[self._plan.root]))

    def mutate(self, **columns: Expression) -> "Table":
        """Add or replace columns, evaluated left to right.

        Later expressions may reference columns created earlier in the same call.
        Missing operands propagate to the result.
        """
        assignments = [(name, expr) for name, expr in columns.items()]
        return self._apply(Mutate(assignments=assignments, inputs=[self._plan.root]))

    def select(self, *columns: str) -> "Table":
        return self._apply(Select(columns=list(columns), inputs=[self._plan.root]))

    def arrange(self, *keys: SortKey) -> "Table":
        """Stable sort by one or more columns; wrap a name in ``desc()`` to reverse it.

        Missing values sort last.
        """
        sort_keys = [(k, "asc") if isinstance(k, str) else tuple(k) for k in keys]
        return self._apply(Sort(keys=sort_keys, inputs=[self._plan.root]))

    def head(self, n: int = 5) -> "Table":
        return self._apply(Limit(count=n, end=LimitEnd.HEAD, inputs=[self._plan.root]))

    def tail(self, n: int = 5) -> "Table":
        return self._apply(Limit(count=n, end=LimitEnd.TAIL, inputs=[self._plan.root]))

    def group_by(self, *keys: str) -> "GroupedTable":
        """Group rows by key columns; finish with ``summarize`` or ``count``."""
        return GroupedTable(self, list(keys))

    def summarize(self, by=None, **aggregations: AggregateCall) -> "Table":
        """Reduce the table (or each group of ``by``) to one row of aggregates.

        Args:
            by: Grouping column name(s); None summarizes the whole table
            **aggregations: Output column name -> aggregate, e.g. ``agg.mean("x")``
        """
        op = Summarize(
            keys=_as_list(by),
            aggregations=list(aggregations.items()),
            inputs=[self._plan.root],
        )
        return self._apply(op)

    summarise = summarize

    def count(self, *keys: str, name: str = "n") -> "Table":
        """Number of rows per distinct combination of ``keys``."""
        return self.summarize(by=list(keys), **{name: aggregates.n()})

    def pivot_longer(
        self,
        cols: Sequence[str],
        names_to: str = "name",
        values_to: str = "value",
    ) -> "Table":
        """Collapse ``cols`` into name/value pairs, one output row per (row, column)."""
        op = PivotLonger(
            cols=_as_list(cols),
            names_to=names_to,
            values_to=values_to,
            inputs=[self._plan.root],
        )
        return self._apply(op)

    def pivot_wider(
        self,
        names_from: str = "name",
        values_from: str = "value",
        id_cols: Optional[Sequence[str]] = None,
        values_fn: Optional[Union[str, Callable[[pd.Series], Any]]] = None,
        values_fill: Any = None,
    ) -> "Table":
        """Spread name/value pairs into one column per distinct name.

        Raises:
            AmbiguousPivotError: If several rows map to one cell and no ``values_fn``
                is given
        """
        op = PivotWider(
            names_from=names_from,
            values_from=values_from,
            id_cols=_as_list(id_cols) if id_cols is not None else None,
            values_fn=values_fn,
            values_fill=values_fill,
            inputs=[self._plan.root],
        )
        return self._apply(op)

    def pipe(self, func: Callable[..., "Table"], *args, **kwargs) -> "Table":
        """Apply ``func(self, *args, **kwargs)``; lets custom steps join a chain."""
        return func(self, *args, **kwargs)


class GroupedTable:
    """A Table with grouping keys attached, awaiting a summary."""

    def __init__(self, table: Table, keys: List[str]):
        if not keys:
            raise ValueError("group_by() requires at least one key column")
        self._table = table
        self._keys = keys

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    def summarize(self, **aggregations: AggregateCall) -> Table:
        return self._table.summarize(by=self._keys, **aggregations)

    summarise = summarize

    def count(self, name: str = "n") -> Table:
        return self._table.count(*self._keys, name=name)

    def __repr__(self) -> str:
        return f"GroupedTable(keys={self._keys}, rows={len(self._table)})"
