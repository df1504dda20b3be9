"""
Table algebra module.

This module defines the intermediate representation (IR) for table operations.
The algebra provides a composable, serializable representation of transformations
that can be explained, serialized, and executed eagerly with pandas.

Key components:
- LogicalPlan: Container for the operation tree
- Operation classes: Source, Select, Filter, Mutate, Summarize, Sort, Limit,
                     PivotLonger, PivotWider
- Expression AST: Column, Literal, BinaryOp, UnaryOp, FunctionCall, MapValues,
                  AggregateCall
- aggregates: constructors for AggregateCall nodes (mean, sum, n, ...)
"""

from . import aggregates
from .logical_plan import LogicalPlan
from .operations import (
    Operation,
    Source,
    Select,
    Filter,
    Mutate,
    Summarize,
    Sort,
    Limit,
    PivotLonger,
    PivotWider,
    SortDirection,
    LimitEnd,
)
from .expressions import (
    Expression,
    Column,
    Literal,
    BinaryOp,
    UnaryOp,
    FunctionCall,
    MapValues,
    AggregateCall,
    col,
    lit,
)
from .eager import execute, evaluate_expression

__all__ = [
    "aggregates",
    "LogicalPlan",
    "Operation",
    "Source",
    "Select",
    "Filter",
    "Mutate",
    "Summarize",
    "Sort",
    "Limit",
    "PivotLonger",
    "PivotWider",
    "SortDirection",
    "LimitEnd",
    "Expression",
    "Column",
    "Literal",
    "BinaryOp",
    "UnaryOp",
    "FunctionCall",
    "MapValues",
    "AggregateCall",
    "col",
    "lit",
    "execute",
    "evaluate_expression",
]
