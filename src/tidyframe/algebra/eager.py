"""Eager executor: evaluates an operation tree bottom-up using pandas.

This is the "dual-mode" eager path: every operation produces a concrete
pandas DataFrame so users can inspect intermediate results, while the
operation tree is simultaneously available for explanation and serialization.

Frames handled here always use pandas nullable dtypes, so ``pd.NA`` is the
single missing marker: it propagates through arithmetic, turns comparisons
into "unknown", and follows three-valued logic under ``&`` / ``|``.
"""

from __future__ import annotations

import operator
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from ..exceptions import (
    AmbiguousPivotError,
    PlanValidationError,
    SchemaError,
    UnsupportedOperationError,
)
from ..utils.logging import get_logger
from .aggregates import is_known, reduce_values, result_array, to_scalar
from .expressions import (
    AggregateCall,
    BinaryOp,
    Column,
    Expression,
    FunctionCall,
    Literal,
    MapValues,
    UnaryOp,
)
from .operations import (
    Filter,
    Limit,
    Mutate,
    Operation,
    PivotLonger,
    PivotWider,
    Select,
    Sort,
    Source,
    Summarize,
)

logger = get_logger(__name__)

_COMPARE_OPS: dict[str, Any] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

_ARITH_OPS: dict[str, Any] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "//": operator.floordiv,
    "%": operator.mod,
    "**": operator.pow,
}

_BUILTIN_FUNCS: dict[str, Any] = {
    "abs": np.abs,
    "round": np.round,
    "sqrt": np.sqrt,
    "log": np.log,
    "exp": np.exp,
    "floor": np.floor,
    "ceil": np.ceil,
}

# Group key placeholder for missing values; missing keys group together.
_MISSING = object()


# ----------------------------------------------------------------------
# Frame helpers
# ----------------------------------------------------------------------


def as_frame(data: Any) -> pd.DataFrame:
    """Copy ``data`` into a DataFrame with unique names and nullable dtypes.

    Raises:
        SchemaError: If column names are not unique
    """
    if isinstance(data, pd.DataFrame):
        frame = data.copy()
    elif hasattr(data, "to_pandas"):
        frame = data.to_pandas()
    else:
        frame = pd.DataFrame(data)

    if not frame.columns.is_unique:
        duplicated = list(frame.columns[frame.columns.duplicated()])
        raise SchemaError(f"Duplicate column names: {duplicated}", column=duplicated[0])

    frame = frame.reset_index(drop=True)
    return frame.convert_dtypes()


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _require_columns(df: pd.DataFrame, columns: List[str], context: str) -> None:
    for name in columns:
        if name not in df.columns:
            raise SchemaError(
                f"{context}: column {name!r} not found; available columns: {list(df.columns)}",
                column=name,
            )


def _as_series(value: Any, index: pd.Index) -> pd.Series:
    """Broadcast a scalar result to a Series aligned with ``index``."""
    if isinstance(value, pd.Series):
        return value
    if _is_missing(value):
        value = pd.NA
    return pd.Series(pd.array([value] * len(index)), index=index)


def _to_nullable(series: pd.Series) -> pd.Series:
    """Convert numpy-backed results to the matching nullable dtype."""
    dtype = series.dtype
    if not isinstance(dtype, np.dtype):
        return series
    if dtype.kind == "b":
        return series.astype("boolean")
    if dtype.kind in "iu":
        return series.astype("Int64")
    if dtype.kind == "f":
        return series.astype("Float64")
    return series


def _nan_to_na(value: Any) -> Any:
    """Mask float NaN (e.g. from ``0 / 0``) as ``pd.NA`` in arithmetic results."""
    if isinstance(value, pd.Series):
        if value.dtype.kind != "f":
            return value
        nan = np.isnan(value.to_numpy(dtype="float64", na_value=np.nan))
        if not nan.any():
            return value
        value = value.astype("Float64")
        value[nan] = pd.NA
        return value
    if isinstance(value, float) and np.isnan(value):
        return pd.NA
    return value


def _missing_mask(value: Any, index: pd.Index) -> pd.Series:
    if isinstance(value, pd.Series):
        return value.isna()
    return pd.Series(_is_missing(value), index=index)


def _unknown(index: pd.Index) -> pd.Series:
    return pd.Series(pd.array([pd.NA] * len(index), dtype="boolean"), index=index)


def _as_boolean(value: Any) -> Any:
    if isinstance(value, pd.Series):
        return value.astype("boolean")
    if _is_missing(value):
        return pd.NA
    return bool(value)


def _array_like(values: list, dtype: Any = None):
    """Build an array from Python values, keeping ``dtype`` when it fits."""
    if dtype is not None:
        try:
            return pd.array(values, dtype=dtype)
        except (TypeError, ValueError):
            pass
    try:
        return pd.array(values)
    except (TypeError, ValueError):
        return pd.array(values, dtype=object)


# ----------------------------------------------------------------------
# Expressions
# ----------------------------------------------------------------------


def evaluate_expression(expr: Expression, df: pd.DataFrame) -> pd.Series | Any:
    """Evaluate an Expression AST against a DataFrame, producing a Series or scalar."""
    match expr:
        case Column(name=name):
            if name not in df.columns:
                raise SchemaError(
                    f"Column {name!r} not found; available columns: {list(df.columns)}",
                    column=name,
                )
            return df[name]

        case Literal(value=value):
            return pd.NA if value is None else value

        case BinaryOp(op=op, left=left, right=right):
            lval = evaluate_expression(left, df)
            rval = evaluate_expression(right, df)

            if op in _COMPARE_OPS:
                return _compare(op, lval, rval, df.index)
            if op in _ARITH_OPS:
                return _nan_to_na(_ARITH_OPS[op](lval, rval))
            if op == "and":
                return _as_boolean(lval) & _as_boolean(rval)
            if op == "or":
                return _as_boolean(lval) | _as_boolean(rval)
            raise UnsupportedOperationError(f"Unknown binary operator: {op!r}")

        case UnaryOp(op="neg", operand=operand):
            return -evaluate_expression(operand, df)

        case UnaryOp(op="not", operand=operand):
            value = _as_boolean(evaluate_expression(operand, df))
            if isinstance(value, pd.Series):
                return ~value
            return pd.NA if value is pd.NA else not value

        case FunctionCall(func=func, args=args):
            evaluated_args = [evaluate_expression(a, df) for a in args]
            return _call_function(func, evaluated_args, df.index)

        case MapValues(operand=operand, func=func, dtype=dtype):
            series = _as_series(evaluate_expression(operand, df), df.index)
            mapped = [pd.NA if _is_missing(v) else func(v) for v in series.tolist()]
            return pd.Series(_array_like(mapped, dtype), index=df.index)

        case AggregateCall():
            raise PlanValidationError(
                f"Aggregate {expr} can only be evaluated inside summarize()"
            )

        case _:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")


def _compare(op: str, lval: Any, rval: Any, index: pd.Index) -> Any:
    """Compare with three-valued semantics: anything against missing is unknown."""
    l_series = isinstance(lval, pd.Series)
    r_series = isinstance(rval, pd.Series)
    if not l_series and not r_series:
        if _is_missing(lval) or _is_missing(rval):
            return pd.NA
        return _COMPARE_OPS[op](lval, rval)
    if (not l_series and _is_missing(lval)) or (not r_series and _is_missing(rval)):
        return _unknown(index)

    result = _COMPARE_OPS[op](lval, rval).astype("boolean")
    missing = _missing_mask(lval, index) | _missing_mask(rval, index)
    if missing.any():
        result = result.copy()
        result[missing] = pd.NA
    return result


def _call_function(func: str, args: List[Any], index: pd.Index) -> Any:
    if func == "is_na":
        return _missing_mask(args[0], index)
    if func == "coalesce":
        result = args[0]
        for fallback in args[1:]:
            if isinstance(result, pd.Series):
                result = result.where(result.notna(), fallback)
            elif _is_missing(result):
                result = fallback
        return result
    if func == "isin":
        values = list(args[1])
        if isinstance(args[0], pd.Series):
            return args[0].isin(values)
        return args[0] in values
    if func not in _BUILTIN_FUNCS:
        raise UnsupportedOperationError(f"Unknown function: {func!r}")
    return _BUILTIN_FUNCS[func](*args)


# ----------------------------------------------------------------------
# Operations
# ----------------------------------------------------------------------


def execute(op: Operation, sources: Optional[Mapping[str, Any]] = None) -> pd.DataFrame:
    """Recursively execute an operation tree, returning a pandas DataFrame.

    Args:
        op: Root of the operation tree
        sources: Tables (or DataFrames) bound to Source nodes by ``source_id``;
            used for Source nodes that carry no data, e.g. deserialized plans

    Raises:
        PlanValidationError: If a Source node has no data to execute against
    """
    frames = [execute(child, sources) for child in op.inputs]
    return apply_operation(op, frames, sources)


def apply_operation(
    op: Operation,
    frames: List[pd.DataFrame],
    sources: Optional[Mapping[str, Any]] = None,
) -> pd.DataFrame:
    """Apply a single operation node to already-materialized input frames."""
    result = _apply(op, frames, sources)
    logger.debug(
        "operation_applied",
        operation=type(op).__name__,
        rows_in=[len(f) for f in frames],
        rows_out=len(result),
    )
    return result


def _apply(
    op: Operation,
    frames: List[pd.DataFrame],
    sources: Optional[Mapping[str, Any]],
) -> pd.DataFrame:
    match op:
        case Source(data=data, source_id=source_id, schema=schema):
            if data is None:
                if sources is None or source_id not in sources:
                    raise PlanValidationError(
                        f"Source {source_id!r} has no data for eager execution. "
                        "Bind it with execute(op, sources={source_id: table})."
                    )
                data = as_frame(sources[source_id])
            if schema is not None and list(data.columns) != list(schema):
                raise PlanValidationError(
                    f"Source {source_id!r} expected columns {schema}, got {list(data.columns)}"
                )
            return data.copy()

        case Select(columns=columns):
            df = frames[0]
            _require_columns(df, columns, "select")
            return df[columns].reset_index(drop=True)

        case Filter(predicate=predicate):
            return _filter(frames[0], predicate)

        case Mutate(assignments=assignments):
            return _mutate(frames[0], assignments)

        case Summarize(keys=keys, aggregations=aggregations):
            return _summarize(frames[0], keys, aggregations)

        case Sort(keys=keys):
            df = frames[0]
            cols = [k[0] for k in keys]
            _require_columns(df, cols, "arrange")
            ascending = [k[1] == "asc" for k in keys]
            return df.sort_values(
                cols, ascending=ascending, kind="mergesort", na_position="last"
            ).reset_index(drop=True)

        case Limit(count=n, end=end):
            df = frames[0]
            if end == "head":
                return df.head(n).reset_index(drop=True)
            return df.tail(n).reset_index(drop=True)

        case PivotLonger(cols=cols, names_to=names_to, values_to=values_to):
            return _pivot_longer(frames[0], cols, names_to, values_to)

        case PivotWider():
            return _pivot_wider(frames[0], op)

        case _:
            raise TypeError(f"Unknown operation type: {type(op).__name__}")


def _filter(df: pd.DataFrame, predicate: Expression) -> pd.DataFrame:
    result = _as_series(evaluate_expression(predicate, df), df.index)
    mask = result.astype("boolean").fillna(False).to_numpy(dtype=bool)
    return df.loc[mask].reset_index(drop=True)


def _mutate(df: pd.DataFrame, assignments) -> pd.DataFrame:
    df = df.copy()
    for name, expression in assignments:
        value = evaluate_expression(expression, df)
        df[name] = _to_nullable(_as_series(value, df.index))
    return df


def _group_rows(df: pd.DataFrame, keys: List[str]) -> Dict[tuple, List[int]]:
    """Map each distinct key tuple to its row positions, in first-appearance order."""
    groups: Dict[tuple, List[int]] = {}
    key_values = [df[k].tolist() for k in keys]
    for position, key in enumerate(zip(*key_values)):
        key = tuple(_MISSING if _is_missing(v) else v for v in key)
        groups.setdefault(key, []).append(position)
    return groups


def _summarize(df: pd.DataFrame, keys: List[str], aggregations) -> pd.DataFrame:
    _require_columns(df, keys, "summarize")
    for name, aggregation in aggregations:
        if not is_known(aggregation.func):
            raise UnsupportedOperationError(f"Unknown aggregate function: {aggregation.func!r}")

    if keys:
        groups = list(_group_rows(df, keys).values())
        first_rows = [positions[0] for positions in groups]
        out: Dict[str, Any] = {
            k: df[k].iloc[first_rows].reset_index(drop=True) for k in keys
        }
    else:
        groups = [list(range(len(df)))]
        out = {}

    for name, aggregation in aggregations:
        if name in out:
            raise SchemaError(f"summarize: duplicate output column {name!r}", column=name)
        values = None
        if aggregation.arg is not None:
            values = _as_series(evaluate_expression(aggregation.arg, df), df.index)
        results = [
            reduce_values(
                aggregation.func,
                values.iloc[positions] if values is not None else None,
                na_rm=aggregation.na_rm,
                size=len(positions),
            )
            for positions in groups
        ]
        dtype = values.dtype if values is not None else None
        out[name] = result_array(aggregation.func, results, dtype)

    return pd.DataFrame(out, index=pd.RangeIndex(len(groups)))


def _pivot_longer(df: pd.DataFrame, cols: List[str], names_to: str, values_to: str) -> pd.DataFrame:
    _require_columns(df, cols, "pivot_longer")
    id_cols = [c for c in df.columns if c not in cols]
    for name in (names_to, values_to):
        if name in id_cols:
            raise SchemaError(
                f"pivot_longer: output column {name!r} already exists", column=name
            )

    n_rows, n_cols = len(df), len(cols)
    out = df[id_cols].iloc[np.repeat(np.arange(n_rows), n_cols)].reset_index(drop=True)

    columns = [df[c].tolist() for c in cols]
    values = [columns[j][i] for i in range(n_rows) for j in range(n_cols)]
    first_dtype = df[cols[0]].dtype
    dtype = first_dtype if all(df[c].dtype == first_dtype for c in cols) else None

    out[names_to] = pd.array(list(cols) * n_rows, dtype="string")
    out[values_to] = _array_like(values, dtype)
    return out


def _pivot_wider(df: pd.DataFrame, op: PivotWider) -> pd.DataFrame:
    names_from, values_from = op.names_from, op.values_from
    _require_columns(df, [names_from, values_from], "pivot_wider")
    if op.id_cols is not None:
        id_cols = list(op.id_cols)
        _require_columns(df, id_cols, "pivot_wider")
    else:
        id_cols = [c for c in df.columns if c not in (names_from, values_from)]
    if isinstance(op.values_fn, str) and not is_known(op.values_fn):
        raise UnsupportedOperationError(f"Unknown aggregate function: {op.values_fn!r}")

    if id_cols:
        groups = _group_rows(df, id_cols)
    else:
        groups = {(): list(range(len(df)))} if len(df) else {}
    row_keys = list(groups)
    row_of = {}
    for row, positions in enumerate(groups.values()):
        for position in positions:
            row_of[position] = row

    labels: Dict[str, None] = {}
    cells: Dict[tuple, List[int]] = {}
    missing_name = literal_na = False
    for position, name in enumerate(df[names_from].tolist()):
        if _is_missing(name):
            label, missing_name = "NA", True
        else:
            label = str(name)
            literal_na = literal_na or label == "NA"
        labels.setdefault(label, None)
        cells.setdefault((row_of[position], label), []).append(position)

    if missing_name and literal_na:
        raise SchemaError(
            "pivot_wider: a missing name and the value 'NA' would both become column 'NA'",
            column="NA",
        )

    for label in labels:
        if label in id_cols:
            raise SchemaError(
                f"pivot_wider: name {label!r} collides with id column", column=label
            )

    if op.values_fn is None:
        for (row, label), positions in cells.items():
            if len(positions) > 1:
                key = tuple(None if v is _MISSING else v for v in row_keys[row])
                logger.warning(
                    "ambiguous_pivot_cell", key=key, name=label, count=len(positions)
                )
                raise AmbiguousPivotError(
                    f"pivot_wider: {len(positions)} rows share key {key} and name {label!r}; "
                    "supply values_fn to combine them or aggregate first",
                    key=key,
                    name=label,
                    count=len(positions),
                )

    first_rows = [positions[0] for positions in groups.values()]
    out = pd.DataFrame(index=pd.RangeIndex(len(row_keys)))
    for k in id_cols:
        out[k] = df[k].iloc[first_rows].reset_index(drop=True)

    source = df[values_from]
    fill = pd.NA if op.values_fill is None else op.values_fill
    for label in labels:
        results = []
        for row in range(len(row_keys)):
            positions = cells.get((row, label))
            if positions is None:
                results.append(fill)
            elif op.values_fn is None:
                results.append(source.iloc[positions[0]])
            elif isinstance(op.values_fn, str):
                results.append(
                    reduce_values(op.values_fn, source.iloc[positions], size=len(positions))
                )
            else:
                results.append(to_scalar(op.values_fn(source.iloc[positions].reset_index(drop=True))))
        if isinstance(op.values_fn, str):
            out[label] = result_array(op.values_fn, results, source.dtype)
        elif op.values_fn is None:
            out[label] = _array_like(results, source.dtype)
        else:
            out[label] = _array_like(results)
    return out
