"""
Plan serialization utilities.

A serialized plan is a versioned envelope::

    {
        "version": "1.0",
        "sources": {"penguins": ["species", "island", ...]},
        "root": {...operation tree...}
    }

Source data is never written. The ``sources`` listing records the schema each
Source node expects so a reader can see which tables a plan needs without
walking the tree. Tables can be bound when loading (``from_json(text, sources=...)``),
in which case their columns are checked against the recorded schema right away,
or later with ``plan.execute(sources=...)``.
"""

import json
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ..algebra.logical_plan import LogicalPlan
from ..algebra.operations import Operation, Source
from ..exceptions import PlanValidationError


# Current serialization format version
SERIALIZATION_VERSION = "1.0"


def _source_nodes(root: Operation) -> Iterator[Source]:
    stack = [root]
    while stack:
        op = stack.pop()
        if isinstance(op, Source):
            yield op
        stack.extend(op.inputs)


def _source_schemas(root: Operation) -> Dict[str, List[str]]:
    """Collect ``{source_id: schema}``; every Source must carry a schema."""
    schemas: Dict[str, List[str]] = {}
    for source in _source_nodes(root):
        if not isinstance(source.schema, list):
            raise PlanValidationError(
                f"Source {source.source_id!r} has no schema; "
                "a serialized plan must record the columns of every source"
            )
        known = schemas.setdefault(source.source_id, list(source.schema))
        if known != list(source.schema):
            raise PlanValidationError(
                f"Source {source.source_id!r} appears with different schemas: "
                f"{known} and {source.schema}"
            )
    return schemas


def _bind_sources(root: Operation, schemas: Dict[str, List[str]], sources: Mapping[str, Any]) -> None:
    from ..algebra.eager import as_frame

    unknown = [source_id for source_id in sources if source_id not in schemas]
    if unknown:
        raise PlanValidationError(
            f"Cannot bind unknown sources {unknown}; plan sources are {sorted(schemas)}"
        )

    frames = {}
    for source_id, table in sources.items():
        frame = as_frame(table)
        if list(frame.columns) != schemas[source_id]:
            raise PlanValidationError(
                f"Source {source_id!r} expected columns {schemas[source_id]}, "
                f"got {list(frame.columns)}"
            )
        frames[source_id] = frame

    for source in _source_nodes(root):
        if source.source_id in frames:
            source.data = frames[source.source_id].copy()


def serialize(plan: LogicalPlan) -> Dict[str, Any]:
    """Serialize a logical plan to a JSON-serializable dictionary.

    Args:
        plan: The logical plan to serialize

    Returns:
        ``{"version": ..., "sources": {source_id: schema}, "root": {...}}``

    Raises:
        TypeError: If plan is not a LogicalPlan instance
        PlanValidationError: If a Source node has no schema
        UnsupportedOperationError: If the plan holds a Python callable
            (``Expression.map`` or a callable ``values_fn``)

    Example:
        >>> plan = penguins.filter(col("year") == 2007).plan
        >>> serialize(plan)["sources"]["penguins"][:2]
        ['species', 'island']
    """
    if not isinstance(plan, LogicalPlan):
        raise TypeError(f"Expected LogicalPlan, got {type(plan)}")

    return {
        "version": SERIALIZATION_VERSION,
        "sources": _source_schemas(plan.root),
        "root": plan.root.to_dict(),
    }


def deserialize(data: Dict[str, Any], sources: Optional[Mapping[str, Any]] = None) -> LogicalPlan:
    """Rebuild a logical plan from a dictionary.

    Args:
        data: Envelope produced by ``serialize``
        sources: Optional tables to bind by ``source_id``; their columns must
            match the recorded schema exactly

    Raises:
        TypeError: If data is not a dictionary
        PlanValidationError: If fields are missing, the version is unsupported,
            an operation cannot be rebuilt, a Source has no schema, the
            ``sources`` listing disagrees with the tree, or a bound table does
            not match its schema
    """
    if not isinstance(data, dict):
        raise TypeError(f"Expected dict, got {type(data)}")

    if "version" not in data:
        raise PlanValidationError("Serialized plan must have 'version' field")
    if "root" not in data:
        raise PlanValidationError("Serialized plan must have 'root' field")

    version = data["version"]
    if version != SERIALIZATION_VERSION:
        raise PlanValidationError(
            f"Unsupported serialization version: {version}. "
            f"Expected {SERIALIZATION_VERSION}"
        )

    try:
        root = Operation.from_dict(data["root"])
    except (KeyError, ValueError) as e:
        raise PlanValidationError(f"Failed to deserialize root operation: {e!r}") from e

    schemas = _source_schemas(root)
    listed = data.get("sources")
    if listed is not None and listed != schemas:
        raise PlanValidationError(
            f"Envelope lists sources {listed} but the plan tree holds {schemas}"
        )

    if sources:
        _bind_sources(root, schemas, sources)

    return LogicalPlan(root)


def to_json(plan: LogicalPlan, **kwargs) -> str:
    """Serialize a logical plan to a JSON string.

    Args:
        plan: The logical plan to serialize
        **kwargs: Additional arguments to pass to json.dumps (e.g., indent=2)
    """
    return json.dumps(serialize(plan), **kwargs)


def from_json(json_str: str, sources: Optional[Mapping[str, Any]] = None) -> LogicalPlan:
    """Rebuild a logical plan from a JSON string, optionally binding ``sources``.

    Raises:
        TypeError: If json_str is not a string
        PlanValidationError: If the JSON or the plan structure is invalid
    """
    if not isinstance(json_str, str):
        raise TypeError(f"Expected str, got {type(json_str)}")

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise PlanValidationError(f"Invalid JSON: {e}") from e

    return deserialize(data, sources=sources)
