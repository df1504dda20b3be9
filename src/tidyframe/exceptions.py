"""
Exception classes for tidyframe.

These exceptions are used throughout the tidyframe package to signal error conditions
during expression evaluation, operator execution, and plan (de)serialization. Missing
values are never an error: they propagate through arithmetic and comparisons instead.
"""


class TidyframeError(Exception):
    """Base class for every error raised by tidyframe."""
    pass


class SchemaError(TidyframeError):
    """Raised when an operation references a column the table does not have.

    Also raised when an operation would produce a table that violates the schema
    invariants, for example two output columns with the same name.

    Attributes:
        column: The offending column name (or None when not tied to one column)
    """

    def __init__(self, message: str, column=None):
        super().__init__(message)
        self.column = column


class AmbiguousPivotError(TidyframeError):
    """Raised when a long-to-wide pivot finds more than one value for a cell.

    Two or more input rows share the same key columns and the same name, so the
    output cell has no single value. Supply ``values_fn`` to collapse duplicates or
    aggregate the input first.

    Attributes:
        key: The key tuple identifying the output row
        name: The output column name
        count: Number of input rows mapped to the cell
    """

    def __init__(self, message: str, key=None, name=None, count: int = 0):
        super().__init__(message)
        self.key = key
        self.name = name
        self.count = count


class UnsupportedOperationError(TidyframeError):
    """Raised when an expression or operation cannot be handled.

    Examples:
        - Unknown aggregate or scalar function names
        - Serializing an expression that wraps an arbitrary Python callable
    """
    pass


class PlanValidationError(TidyframeError):
    """Raised when a logical plan cannot be executed or deserialized.

    Examples:
        - A Source node with no data and no bound table in ``sources``
        - A serialized plan with an unknown operation type or version
    """
    pass
