"""Unit tests for pipeviz_engine.simulation.blast_radius."""

from __future__ import annotations

from typing import Any

from pipeviz_engine.graph.graph_builder import build_graph_model
from pipeviz_engine.models.analysis import AnalysisError, BlastRadiusReport, NodeKind
from pipeviz_engine.models.estate import EstateConfig
from pipeviz_engine.simulation.blast_radius import analyze_blast_radius


def _pipeline(
    name: str,
    inputs: list[str] | None = None,
    outputs: list[str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    return {"name": name, "input_sources": inputs or [], "output_sources": outputs or [], **extra}


def _graph(*pipelines: dict[str, Any]):
    return build_graph_model(EstateConfig.model_validate({"pipelines": list(pipelines)}))


def _chain():
    """raw_users -> user-enrichment -> enriched_users -> analytics-aggregation -> daily_metrics."""
    return _graph(
        _pipeline("user-enrichment", ["raw_users"], ["enriched_users"], schedule="hourly", cluster="users"),
        _pipeline("analytics-aggregation", ["enriched_users"], ["daily_metrics"]),
    )


# ---------------------------------------------------------------------------
# Single node
# ---------------------------------------------------------------------------


class TestSingleNode:
    def test_chain(self):
        report = analyze_blast_radius(_chain(), "raw_users")
        assert isinstance(report, BlastRadiusReport)
        assert report.source_type is NodeKind.DATASOURCE
        assert report.total_affected == 4
        assert report.max_depth == 4
        assert [(n.name, n.depth) for n in report.downstream] == [
            ("user-enrichment", 1),
            ("enriched_users", 2),
            ("analytics-aggregation", 3),
            ("daily_metrics", 4),
        ]

    def test_pipeline_metadata_only_on_pipelines(self):
        report = analyze_blast_radius(_chain(), "raw_users")
        first = report.downstream[0]
        assert first.type is NodeKind.PIPELINE
        assert first.schedule == "hourly"
        assert first.cluster == "users"
        assert report.downstream[1].schedule is None

    def test_by_depth_buckets(self):
        report = analyze_blast_radius(_chain(), "raw_users")
        assert sorted(report.by_depth) == [1, 2, 3, 4]
        assert [n.name for n in report.by_depth[3]] == ["analytics-aggregation"]

    def test_edges(self):
        report = analyze_blast_radius(_chain(), "raw_users")
        assert [(e.source, e.target) for e in report.edges] == [
            ("raw_users", "user-enrichment"),
            ("user-enrichment", "enriched_users"),
            ("enriched_users", "analytics-aggregation"),
            ("analytics-aggregation", "daily_metrics"),
        ]

    def test_leaf_returns_none(self):
        assert analyze_blast_radius(_chain(), "daily_metrics") is None

    def test_unknown_node(self):
        result = analyze_blast_radius(_chain(), "nope")
        assert isinstance(result, AnalysisError)
        assert result.error == "unknown_node"
        assert result.offending == ("nope",)

    def test_max_depth(self):
        report = analyze_blast_radius(_chain(), "raw_users", max_depth=2)
        assert [n.name for n in report.downstream] == ["user-enrichment", "enriched_users"]

    def test_cycle_terminates(self):
        graph = _graph(_pipeline("a", ["x"], ["y"]), _pipeline("b", ["y"], ["x"]))
        report = analyze_blast_radius(graph, "a")
        assert {n.name for n in report.downstream} == {"y", "b", "x"}
        assert "a" not in {n.name for n in report.downstream}


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


class TestGroupBlast:
    def test_example_group(self, example_config):
        report = analyze_blast_radius(build_graph_model(example_config), "data-exports")
        assert report.source_type is NodeKind.GROUP
        assert report.group_members == ("export-to-salesforce", "export-to-hubspot", "export-to-amplitude")
        assert report.group_size == 3
        assert [n.name for n in report.downstream] == ["amplitude_events", "hubspot_contacts", "salesforce_users"]
        assert {e.source for e in report.edges} == {"data-exports"}

    def test_edges_into_members_suppressed(self):
        graph = _graph(
            _pipeline("a", outputs=["x"], group="g"),
            _pipeline("b", inputs=["x"], group="g"),
        )
        report = analyze_blast_radius(graph, "g")
        assert [n.name for n in report.downstream] == ["x"]
        assert [(e.source, e.target) for e in report.edges] == [("g", "x")]

    def test_group_checked_before_nodes(self):
        graph = _graph(_pipeline("a", outputs=["x"], group="a"))
        report = analyze_blast_radius(graph, "a")
        assert report.source_type is NodeKind.GROUP
