"""End-to-end test over the bundled example estate.

Exercises the complete flow:
  file -> loader -> engine (graph, attribute and dependency indexes)
  -> every analysis -> serializer -> deserializer

Uses tmp_path for all file operations.  No external services are required.
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from pipeviz_engine.engine.estate import EstateEngine
from pipeviz_engine.models.analysis import (
    AirflowPlan,
    BackfillPlan,
    BlastRadiusReport,
    Direction,
    EstateStats,
    GraphExport,
    WeightedPathReport,
)
from pipeviz_engine.planner.result_serializer import deserialize_result, serialize_result


def test_full_flow(example_path: Path, settings) -> None:
    engine = EstateEngine.from_file(example_path, settings)
    assert engine.warnings == []

    # Lineage on both sides of the estate.
    upstream = engine.lineage_of("executive_summary", Direction.UPSTREAM)
    names = [e.name for e in upstream]
    assert names[0] == "weekly-rollup"
    assert "raw_users" in names and "raw_orders" in names

    # Impact, planning and projection.
    blast = engine.blast_radius("raw_users")
    assert isinstance(blast, BlastRadiusReport)
    plan = engine.plan_backfill(["user-enrichment"])
    assert isinstance(plan, BackfillPlan)
    airflow = engine.project_to_scheduler(plan)
    assert isinstance(airflow, AirflowPlan)

    critical = engine.critical_path()
    assert isinstance(critical, WeightedPathReport)
    assert [s.name for s in critical.path] == ["user-enrichment", "analytics-aggregation", "weekly-rollup"]

    stats = engine.stats()
    export = engine.export_graph()

    # Every result survives a serialize/deserialize cycle unchanged.
    for result, model in (
        (blast, BlastRadiusReport),
        (plan, BackfillPlan),
        (airflow, AirflowPlan),
        (critical, WeightedPathReport),
        (stats, EstateStats),
        (export, GraphExport),
    ):
        assert deserialize_result(serialize_result(result), model) == result


def test_yaml_and_json_documents_are_equivalent(example_data, tmp_path: Path, settings) -> None:
    json_path = tmp_path / "estate.json"
    yaml_path = tmp_path / "estate.yaml"
    json_path.write_text(json.dumps(example_data), encoding="utf-8")
    yaml_path.write_text(yaml.safe_dump(example_data), encoding="utf-8")

    a = EstateEngine.from_file(json_path, settings)
    b = EstateEngine.from_file(yaml_path, settings)
    assert a.fingerprint == b.fingerprint
    assert serialize_result(a.stats()) == serialize_result(b.stats())


def test_queries_are_idempotent(example_path: Path, settings) -> None:
    engine = EstateEngine.from_file(example_path, settings)
    first = [serialize_result(engine.blast_radius(n)) for n in engine.graph.nodes]
    engine.invalidate()
    second = [serialize_result(engine.blast_radius(n)) for n in engine.graph.nodes]
    assert first == second
