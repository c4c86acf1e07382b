"""Dependency graph, backfill waves, scheduler projection and weighted paths."""

from pipeviz_engine.planner.backfill_planner import find_true_sources, plan_backfill
from pipeviz_engine.planner.critical_path import costliest_path, critical_path, find_weighted_path
from pipeviz_engine.planner.dependency_graph import build_dependency_graph, get_reachable
from pipeviz_engine.planner.result_serializer import (
    deserialize_result,
    serialize_result,
    to_jsonable,
    validate_result_schema,
)
from pipeviz_engine.planner.scheduler_projection import extract_airflow_dag, project_to_airflow

__all__ = [
    "build_dependency_graph",
    "costliest_path",
    "critical_path",
    "deserialize_result",
    "extract_airflow_dag",
    "find_true_sources",
    "find_weighted_path",
    "get_reachable",
    "plan_backfill",
    "project_to_airflow",
    "serialize_result",
    "to_jsonable",
    "validate_result_schema",
]
