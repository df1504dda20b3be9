"""
Plan visualization utilities.

Provides text-based tree rendering for logical plans. The root (final result) is
printed first and each input hangs below its consumer with box-drawing connectors.
"""

from typing import List, Optional, Set

from ..algebra.logical_plan import LogicalPlan, describe
from ..algebra.operations import Operation


def visualize(plan: LogicalPlan) -> str:
    """Generate a text-based tree visualization of the plan.

    Args:
        plan: The logical plan to visualize

    Returns:
        A string containing the tree-shaped visualization

    Example:
        >>> print(visualize(penguins.filter(col("year") == 2007).plan))
        Filter(predicate='(year == 2007)')
        └── Source(source_id='penguins', schema=[...])
    """
    if not isinstance(plan, LogicalPlan):
        raise TypeError(f"Expected LogicalPlan, got {type(plan)}")

    lines: List[str] = []
    _visualize_operation(plan.root, lines, prefix=None, is_last=True, visited=set())
    return "\n".join(lines)


def _visualize_operation(
    op: Operation,
    lines: List[str],
    prefix: Optional[str],
    is_last: bool,
    visited: Set[int],
) -> None:
    connector = "└── " if is_last else "├── "

    # Shared subtrees are printed once
    if id(op) in visited:
        lines.append((prefix or "") + connector + "[already shown]")
        return
    visited.add(id(op))

    if prefix is None:
        lines.append(describe(op))
        child_prefix = ""
    else:
        lines.append(prefix + connector + describe(op))
        child_prefix = prefix + ("    " if is_last else "│   ")

    for i, input_op in enumerate(op.inputs):
        _visualize_operation(
            input_op, lines, child_prefix, i == len(op.inputs) - 1, visited
        )
