"""
Unit tests for the utils module.

These tests verify:
Visualization:
1. visualize(plan) for a single-node plan returns a string containing the node type
2. visualize(plan) for a multi-step plan returns a tree with the root first
3. The output is deterministic (same plan → same string)

Serialization:
1. serialize(plan) returns a JSON-serializable dict with a version key
2. deserialize(serialize(plan)) produces a structurally equal plan
3. Source data is dropped on serialization and rebound at execution or load time
4. Every Source records its schema in the envelope; bound tables are checked against it
5. Malformed input raises PlanValidationError with a clear message
6. Plans holding Python callables refuse to serialize
"""

import json

import pytest
from pandas.testing import assert_frame_equal

import tidyframe as tf
from tidyframe import agg, col
from tidyframe.algebra import (
    Filter,
    LogicalPlan,
    Mutate,
    PivotLonger,
    PivotWider,
    Select,
    Sort,
    Source,
    Summarize,
)
from tidyframe.exceptions import PlanValidationError, UnsupportedOperationError
from tidyframe.utils import (
    SERIALIZATION_VERSION,
    deserialize,
    from_json,
    serialize,
    to_json,
    visualize,
)


def _source(columns=("species", "island", "body_mass_g")):
    return Source(source_id="penguins", schema=list(columns))


class TestVisualization:
    """Plan visualization."""

    def test_single_node_plan_contains_node_type(self):
        result = visualize(LogicalPlan(_source()))

        assert isinstance(result, str)
        assert "Source" in result
        assert "penguins" in result

    def test_multi_step_plan_shows_tree_structure(self):
        """The root is printed first and each input hangs below it."""
        filtered = Filter(predicate=col("body_mass_g") > 4000, inputs=[_source()])
        selected = Select(columns=["species"], inputs=[filtered])

        result = visualize(LogicalPlan(selected))
        lines = result.splitlines()

        assert lines[0] == "Select(columns=['species'])"
        assert lines[1] == "└── Filter(predicate='(body_mass_g > 4000)')"
        assert lines[2].startswith("    └── Source(source_id='penguins'")

    def test_output_is_deterministic(self):
        plan = LogicalPlan(Filter(predicate=col("island") == "Dream", inputs=[_source()]))
        assert visualize(plan) == visualize(plan)

    def test_describes_every_operation(self, penguins):
        table = (
            penguins
            .filter(col("year") == 2007)
            .mutate(kg=col("body_mass_g") / 1000)
            .group_by("species", "island")
            .summarize(kg=agg.mean("kg", na_rm=True))
            .pivot_wider(names_from="island", values_from="kg", values_fn="max")
            .pivot_longer(["Torgersen"], names_to="island", values_to="kg")
            .arrange("species")
            .head(3)
        )
        result = visualize(table.plan)

        for name in ("Limit", "Sort", "PivotLonger", "PivotWider", "Summarize",
                     "Mutate", "Filter", "Source"):
            assert name in result
        assert "values_fn='max'" in result
        assert "mean(kg, na_rm=True)" in result

    def test_visualize_invalid_input(self):
        with pytest.raises(TypeError, match="Expected LogicalPlan"):
            visualize("not a plan")


class TestSerialization:
    """Plan serialization."""

    def test_serialize_returns_json_serializable_dict(self):
        plan = LogicalPlan(Filter(predicate=col("body_mass_g") > 4000, inputs=[_source()]))
        result = serialize(plan)

        assert isinstance(result, dict)
        assert result["version"] == SERIALIZATION_VERSION
        assert result["root"]["type"] == "filter"
        json.dumps(result)

    def test_round_trip_preserves_structure(self):
        op = Filter(predicate=(col("body_mass_g") > 4000) & ~col("sex").is_na(),
                    inputs=[_source(["species", "body_mass_g", "sex"])])
        op = Mutate(assignments=[("kg", col("body_mass_g") / 1000)], inputs=[op])
        op = Summarize(keys=["species"], aggregations=[("kg", agg.median("kg"))], inputs=[op])
        op = Sort(keys=[("kg", "desc")], inputs=[op])
        plan = LogicalPlan(op)

        restored = deserialize(serialize(plan))

        assert restored.to_dict() == plan.to_dict()
        assert isinstance(restored.root, Sort)
        assert restored.root.keys == [("kg", "desc")]
        summarize = restored.root.inputs[0]
        assert summarize.aggregations[0][0] == "kg"
        assert str(summarize.aggregations[0][1]) == "median(kg)"

    def test_pivots_round_trip(self):
        longer = PivotLonger(cols=["x", "y"], names_to="k", values_to="v", inputs=[_source(["id", "x", "y"])])
        wider = PivotWider(names_from="k", values_from="v", id_cols=["id"], values_fn="sum",
                           values_fill=0, inputs=[longer])
        restored = deserialize(serialize(LogicalPlan(wider)))

        assert restored.root.values_fn == "sum"
        assert restored.root.values_fill == 0
        assert restored.root.inputs[0].cols == ["x", "y"]

    def test_source_data_is_not_serialized(self, penguins):
        data = serialize(penguins.filter(col("year") == 2007).plan)
        source = data["root"]["input"]

        assert source == {
            "type": "source",
            "source_id": "penguins",
            "schema": penguins.columns,
            "inputs": [],
        }

    def test_restored_plan_executes_with_bound_sources(self, penguins):
        table = penguins.filter(col("body_mass_g") > 4000).count("species")
        restored = from_json(to_json(table.plan))

        with pytest.raises(PlanValidationError, match="has no data"):
            restored.execute()

        result = restored.execute(sources={"penguins": penguins})
        assert_frame_equal(result, table.to_pandas())

    def test_restored_plan_applies_to_new_data(self, masses):
        plan = from_json(to_json(masses.group_by("species").summarize(m=agg.mean("mass")).plan))
        other = tf.Table({"species": ["C", "C"], "mass": [1, 3]})

        result = plan.execute(sources={"<table>": other})
        assert result.to_dict("list") == {"species": ["C"], "m": [2.0]}

    def test_schema_mismatch_on_execute(self, masses):
        plan = from_json(to_json(masses.filter(col("mass") > 1).plan))
        with pytest.raises(PlanValidationError, match="expected columns"):
            plan.execute(sources={"<table>": {"weight": [1]}})

    def test_envelope_lists_source_schemas(self, penguins, masses):
        data = serialize(penguins.filter(col("year") == 2007).plan)
        assert data["sources"] == {"penguins": penguins.columns}

        assert serialize(masses.plan)["sources"] == {"<table>": ["species", "mass"]}

    def test_bind_sources_when_loading(self, masses):
        table = masses.group_by("species").summarize(m=agg.mean("mass", na_rm=True))
        restored = from_json(to_json(table.plan), sources={"<table>": masses})

        assert restored.root.inputs[0].data is not None
        assert_frame_equal(restored.execute(), table.to_pandas())

    def test_bound_table_checked_against_schema_when_loading(self, masses):
        text = to_json(masses.filter(col("mass") > 1).plan)
        with pytest.raises(PlanValidationError, match="expected columns"):
            from_json(text, sources={"<table>": {"mass": [1], "species": ["A"]}})

    def test_binding_unknown_source_raises_error(self, masses):
        text = to_json(masses.plan)
        with pytest.raises(PlanValidationError, match="unknown sources"):
            from_json(text, sources={"penguins": masses})

    def test_source_without_schema_raises_error(self):
        with pytest.raises(PlanValidationError, match="has no schema"):
            serialize(LogicalPlan(Source(source_id="penguins")))

        bad_data = {
            "version": SERIALIZATION_VERSION,
            "root": {"type": "source", "source_id": "penguins", "schema": None, "inputs": []},
        }
        with pytest.raises(PlanValidationError, match="has no schema"):
            deserialize(bad_data)

    def test_envelope_sources_must_match_tree(self):
        data = serialize(LogicalPlan(_source()))
        data["sources"] = {"penguins": ["species"]}
        with pytest.raises(PlanValidationError, match="Envelope lists sources"):
            deserialize(data)

    def test_callable_values_fn_not_serializable(self, long_format):
        table = long_format.pivot_wider(names_from="metric", values_fn=lambda s: s.sum())
        with pytest.raises(UnsupportedOperationError, match="callable values_fn"):
            serialize(table.plan)

    def test_map_not_serializable(self, masses):
        table = masses.mutate(species=col("species").map(str.lower))
        with pytest.raises(UnsupportedOperationError):
            to_json(table.plan)

    def test_deserialize_unknown_operation_type_raises_error(self):
        bad_data = {
            "version": SERIALIZATION_VERSION,
            "root": {"type": "join", "inputs": []},
        }
        with pytest.raises(PlanValidationError, match="Unknown operation type"):
            deserialize(bad_data)

    def test_deserialize_unknown_expression_type_raises_error(self):
        bad_data = {
            "version": SERIALIZATION_VERSION,
            "root": {
                "type": "filter",
                "predicate": {"type": "window_call"},
                "input": _source().to_dict(),
            },
        }
        with pytest.raises(UnsupportedOperationError, match="Unknown expression type"):
            deserialize(bad_data)

    def test_deserialize_missing_version_raises_error(self):
        with pytest.raises(PlanValidationError, match="must have 'version' field"):
            deserialize({"root": _source().to_dict()})

    def test_deserialize_missing_root_raises_error(self):
        with pytest.raises(PlanValidationError, match="must have 'root' field"):
            deserialize({"version": SERIALIZATION_VERSION})

    def test_deserialize_invalid_version_raises_error(self):
        with pytest.raises(PlanValidationError, match="Unsupported serialization version"):
            deserialize({"version": "99.0", "root": _source().to_dict()})

    def test_deserialize_missing_operation_field_raises_error(self):
        bad_data = {
            "version": SERIALIZATION_VERSION,
            "root": {"type": "filter", "input": _source().to_dict()},
        }
        with pytest.raises(PlanValidationError, match="Failed to deserialize"):
            deserialize(bad_data)

    def test_deserialize_invalid_operation_raises_error(self):
        bad_data = {
            "version": SERIALIZATION_VERSION,
            "root": {"type": "limit", "count": -1, "end": "head", "input": _source().to_dict()},
        }
        with pytest.raises(PlanValidationError, match="non-negative"):
            deserialize(bad_data)

    def test_deserialize_non_dict_raises_error(self):
        with pytest.raises(TypeError, match="Expected dict"):
            deserialize("not a dict")

    def test_serialize_non_plan_raises_error(self):
        with pytest.raises(TypeError, match="Expected LogicalPlan"):
            serialize({"type": "source"})

    def test_to_json_with_indent(self):
        result = to_json(LogicalPlan(_source()), indent=2)
        assert "\n" in result
        assert json.loads(result)["root"]["source_id"] == "penguins"

    def test_from_json_invalid_json_raises_error(self):
        with pytest.raises(PlanValidationError, match="Invalid JSON"):
            from_json("{not json")

    def test_from_json_non_string_raises_error(self):
        with pytest.raises(TypeError, match="Expected str"):
            from_json(123)
