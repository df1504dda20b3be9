"""
Logical plan representation for table operations.

The LogicalPlan class wraps the root operation of a table algebra tree and provides
methods for introspection, serialization, execution, and debugging. It tracks the
complete computation graph from source to final result.
"""

from typing import Any, Dict, Mapping, Optional

import pandas as pd

from ..exceptions import PlanValidationError
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


def describe(op: Operation) -> str:
    """Format an operation as a one-line string with its key parameters."""
    op_type = op.__class__.__name__

    if isinstance(op, Source):
        if op.schema:
            return f"{op_type}(source_id='{op.source_id}', schema={op.schema})"
        return f"{op_type}(source_id='{op.source_id}')"

    if isinstance(op, Select):
        return f"{op_type}(columns={op.columns})"

    if isinstance(op, Filter):
        return f"{op_type}(predicate='{op.predicate}')"

    if isinstance(op, Mutate):
        parts = ", ".join(f"{name}={expr}" for name, expr in op.assignments)
        return f"{op_type}({parts})"

    if isinstance(op, Summarize):
        aggs = ", ".join(f"{name}={agg}" for name, agg in op.aggregations)
        return f"{op_type}(keys={op.keys}, {aggs})"

    if isinstance(op, Sort):
        return f"{op_type}(keys={op.keys})"

    if isinstance(op, Limit):
        return f"{op_type}(count={op.count}, end='{op.end}')"

    if isinstance(op, PivotLonger):
        return (
            f"{op_type}(cols={op.cols}, names_to='{op.names_to}', "
            f"values_to='{op.values_to}')"
        )

    if isinstance(op, PivotWider):
        desc = f"{op_type}(names_from='{op.names_from}', values_from='{op.values_from}'"
        if op.id_cols is not None:
            desc += f", id_cols={op.id_cols}"
        if op.values_fn is not None:
            fn = op.values_fn if isinstance(op.values_fn, str) else getattr(
                op.values_fn, "__name__", "<callable>"
            )
            desc += f", values_fn='{fn}'"
        return desc + ")"

    return f"{op_type}()"


class LogicalPlan:
    """Logical plan for table operations.

    A LogicalPlan wraps the root operation of a table algebra tree. The tree is built
    by composing operations, with each operation referencing its input operations. The
    plan can be serialized to JSON, explained for debugging, and re-executed.

    Attributes:
        root: The root operation of the plan (final result)

    Example:
        >>> source = Source(source_id="penguins", schema=["species", "body_mass_g"])
        >>> filtered = Filter(predicate=col("body_mass_g") > 4000, inputs=[source])
        >>> plan = LogicalPlan(Select(columns=["species"], inputs=[filtered]))
        >>> print(plan.explain())
    """

    def __init__(self, root: Operation):
        if not isinstance(root, Operation):
            raise TypeError(f"Plan root must be an Operation, got {type(root)}")
        self._root = root

    @property
    def root(self) -> Operation:
        """Get the root operation of the plan."""
        return self._root

    def sources(self) -> Dict[str, Source]:
        """Return every Source node in the plan keyed by ``source_id``."""
        found: Dict[str, Source] = {}
        stack = [self._root]
        while stack:
            op = stack.pop()
            if isinstance(op, Source):
                found.setdefault(op.source_id, op)
            stack.extend(op.inputs)
        return found

    def execute(self, sources: Optional[Mapping[str, Any]] = None) -> pd.DataFrame:
        """Evaluate the plan eagerly.

        Args:
            sources: Tables bound to Source nodes by ``source_id`` for nodes
                that carry no data (e.g. after deserialization)
        """
        from .eager import execute

        return execute(self._root, sources)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the plan to a dictionary.

        Returns the root operation's dict directly so ``plan.to_dict()["type"]``
        gives the root operation type.
        """
        return self._root.to_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogicalPlan':
        """Deserialize a plan from a dictionary.

        Accepts either a wrapped ``{"root": ...}`` dict or the root operation
        dict directly (must have a ``"type"`` key).
        """
        if 'root' in data:
            root = Operation.from_dict(data['root'])
        elif 'type' in data:
            root = Operation.from_dict(data)
        else:
            raise PlanValidationError("Plan dict must have 'root' or 'type' key")
        return cls(root)

    def explain(self) -> str:
        """Generate a human-readable explanation of the plan.

        Operations are listed from the leaves (sources) to the root (final result),
        one per line, in the order they are applied.
        """
        lines = ["Logical Plan:", "=" * 60]
        self._explain_operation(self._root, lines)
        return "\n".join(lines)

    def _explain_operation(self, op: Operation, lines: list) -> None:
        for input_op in op.inputs:
            self._explain_operation(input_op, lines)
        lines.append(describe(op))

    def copy(self) -> 'LogicalPlan':
        """Create a shallow copy of the plan."""
        return LogicalPlan(self._root)

    def __repr__(self) -> str:
        return f"LogicalPlan(root={self._root.__class__.__name__})"

    def __str__(self) -> str:
        return self.explain()
