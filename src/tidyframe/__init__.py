"""
tidyframe - composable, immutable table verbs with logical plan tracking.

This package provides an immutable Table whose verbs (filter, mutate, summarize,
pivot_longer, pivot_wider, ...) execute eagerly with pandas while recording a
logical plan that can be explained, serialized and re-executed.

Usage:
    >>> import tidyframe as tf
    >>> from tidyframe import agg, col
    >>> penguins = tf.load_penguins()
    >>> summary = (
    ...     penguins
    ...     .filter(col("year") == 2007)
    ...     .mutate(body_mass_kg=col("body_mass_g") / 1000)
    ...     .group_by("species")
    ...     .summarize(mean_mass=agg.mean("body_mass_kg", na_rm=True), n=agg.n())
    ... )
    >>> print(summary.explain())

Key components:
- Table: immutable table with eager verbs and plan tracking
- LogicalPlan: Intermediate representation of table operations
- agg: aggregate constructors for summarize and pivot_wider
"""

import pandas as _pd

from .core import Table, GroupedTable, desc
from .algebra import LogicalPlan, col, lit, execute
from .algebra import aggregates as agg
from .datasets import load_penguins
from .exceptions import *

# Version
__version__ = "0.1.0"

__all__ = [
    'Table',
    'GroupedTable',
    'LogicalPlan',
    'agg',
    'col',
    'lit',
    'desc',
    'execute',
    'read_csv',
    'load_penguins',
    'NA',
    'TidyframeError',
    'SchemaError',
    'AmbiguousPivotError',
    'UnsupportedOperationError',
    'PlanValidationError',
]


def read_csv(filepath_or_buffer, **kwargs):
    """Read a CSV file into a Table.

    This is a wrapper around pandas.read_csv that returns a Table whose plan
    starts at a Source node named after the file path.

    Args:
        filepath_or_buffer: File path or file-like object
        **kwargs: Additional arguments passed to pandas.read_csv

    Returns:
        Table with data from CSV
    """
    df = _pd.read_csv(filepath_or_buffer, **kwargs)
    source_id = str(filepath_or_buffer) if not hasattr(filepath_or_buffer, 'read') else "<csv_file>"
    return Table(df, source_id=source_id)


# The missing-value marker used in every column
NA = _pd.NA
