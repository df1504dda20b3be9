"""
Aggregate functions for Summarize and PivotWider.

Each constructor (``mean``, ``sum``, ``n``, ...) returns an ``AggregateCall`` node.
``reduce_values`` evaluates a reducer over one group's values. Reducers are
missing-sensitive: unless ``na_rm=True`` is given, any missing value in the group
makes the result missing. ``n`` counts rows and ``first`` / ``last`` return the
value at that position whether or not it is missing.

Usage:
    >>> from tidyframe import agg, col
    >>> table.group_by("species").summarize(
    ...     mean_mass=agg.mean("body_mass_g", na_rm=True),
    ...     count=agg.n(),
    ... )
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Optional, Union

import numpy as np
import pandas as pd

from ..exceptions import UnsupportedOperationError
from .expressions import AggregateCall, Column, Expression

ColumnLike = Union[str, Expression]

# Result dtype family per reducer: "float" always Float64, "int" always Int64,
# "input" keeps the input column's dtype, None lets pandas infer.
_RESULT_KIND: Dict[str, Optional[str]] = {
    "mean": "float",
    "median": "float",
    "sd": "float",
    "var": "float",
    "sum": None,
    "min": "input",
    "max": "input",
    "first": "input",
    "last": "input",
    "n": "int",
    "n_distinct": "int",
}


def _is_missing(value: Any) -> bool:
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_scalar(value: Any) -> Any:
    """Normalize a reducer result: numpy scalars become Python, NaN becomes NA."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None:
        return pd.NA
    if isinstance(value, float) and math.isnan(value):
        return pd.NA
    if _is_missing(value):
        return pd.NA
    return value


def _numeric(values: pd.Series, func: Callable[[pd.Series], Any]) -> Any:
    if len(values) == 0:
        return pd.NA
    return func(values)


def _sum(values: pd.Series) -> Any:
    if len(values) == 0:
        return 0
    return values.sum()


def _extreme(values: pd.Series, which: str) -> Any:
    if len(values) == 0:
        return pd.NA
    return values.min() if which == "min" else values.max()


def _positional(values: pd.Series, index: int) -> Any:
    if len(values) == 0:
        return pd.NA
    return values.iloc[index]


_REDUCERS: Dict[str, Callable[[pd.Series], Any]] = {
    "mean": lambda s: _numeric(s, lambda v: v.mean()),
    "median": lambda s: _numeric(s, lambda v: v.median()),
    "sd": lambda s: _numeric(s, lambda v: v.std(ddof=1)),
    "var": lambda s: _numeric(s, lambda v: v.var(ddof=1)),
    "sum": _sum,
    "min": lambda s: _extreme(s, "min"),
    "max": lambda s: _extreme(s, "max"),
}


def reduce_values(func: str, values: Optional[pd.Series], na_rm: bool = False, size: int = 0) -> Any:
    """Reduce one group's values to a scalar.

    Args:
        func: Aggregate function name
        values: The group's argument values (None for ``n``)
        na_rm: Drop missing values before reducing
        size: Number of rows in the group (used by ``n``)

    Returns:
        A Python scalar or ``pd.NA``

    Raises:
        UnsupportedOperationError: If ``func`` is not a known aggregate
    """
    if func == "n":
        return size
    if func not in _RESULT_KIND:
        raise UnsupportedOperationError(f"Unknown aggregate function: {func!r}")
    if values is None:
        raise UnsupportedOperationError(f"Aggregate {func!r} requires an argument")

    if func == "first":
        return to_scalar(_positional(values, 0))
    if func == "last":
        return to_scalar(_positional(values, -1))

    missing = values.isna()
    if func == "n_distinct":
        kept = values[~missing] if na_rm else values
        distinct = set()
        for value in kept.tolist():
            distinct.add(pd.NA if _is_missing(value) else value)
        return len(distinct)

    if missing.any():
        if not na_rm:
            return pd.NA
        values = values[~missing]
    return to_scalar(_REDUCERS[func](values))


def result_array(func: str, results: list, input_dtype=None):
    """Build the output column for a list of per-group results."""
    kind = _RESULT_KIND.get(func, None)
    if kind == "float":
        return pd.array(results, dtype="Float64")
    if kind == "int":
        return pd.array(results, dtype="Int64")
    if kind == "input" and input_dtype is not None:
        try:
            return pd.array(results, dtype=input_dtype)
        except (TypeError, ValueError):
            pass
    if not results:
        return pd.array(results, dtype="Float64")
    return pd.array(results)


def is_known(func: str) -> bool:
    return func in _RESULT_KIND


def _arg(column: ColumnLike) -> Expression:
    if isinstance(column, Expression):
        return column
    return Column(name=column)


# Constructors

def mean(column: ColumnLike, na_rm: bool = False) -> AggregateCall:
    """Arithmetic mean. Missing-sensitive unless ``na_rm``."""
    return AggregateCall(func="mean", arg=_arg(column), na_rm=na_rm)


def median(column: ColumnLike, na_rm: bool = False) -> AggregateCall:
    return AggregateCall(func="median", arg=_arg(column), na_rm=na_rm)


def sd(column: ColumnLike, na_rm: bool = False) -> AggregateCall:
    """Sample standard deviation (n - 1 denominator)."""
    return AggregateCall(func="sd", arg=_arg(column), na_rm=na_rm)


def var(column: ColumnLike, na_rm: bool = False) -> AggregateCall:
    """Sample variance (n - 1 denominator)."""
    return AggregateCall(func="var", arg=_arg(column), na_rm=na_rm)


def sum(column: ColumnLike, na_rm: bool = False) -> AggregateCall:  # noqa: A001
    """Sum. An empty group (after dropping missing values) sums to 0."""
    return AggregateCall(func="sum", arg=_arg(column), na_rm=na_rm)


def min(column: ColumnLike, na_rm: bool = False) -> AggregateCall:  # noqa: A001
    return AggregateCall(func="min", arg=_arg(column), na_rm=na_rm)


def max(column: ColumnLike, na_rm: bool = False) -> AggregateCall:  # noqa: A001
    return AggregateCall(func="max", arg=_arg(column), na_rm=na_rm)


def first(column: ColumnLike) -> AggregateCall:
    return AggregateCall(func="first", arg=_arg(column))


def last(column: ColumnLike) -> AggregateCall:
    return AggregateCall(func="last", arg=_arg(column))


def n() -> AggregateCall:
    """Number of rows in the group."""
    return AggregateCall(func="n")


def n_distinct(column: ColumnLike, na_rm: bool = False) -> AggregateCall:
    """Number of distinct values; missing counts as one value unless ``na_rm``."""
    return AggregateCall(func="n_distinct", arg=_arg(column), na_rm=na_rm)
