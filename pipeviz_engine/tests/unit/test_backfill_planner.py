"""Unit tests for pipeviz_engine.planner.dependency_graph and backfill_planner."""

from __future__ import annotations

from typing import Any

from pipeviz_engine.models.analysis import AnalysisError, AnalysisNotice, BackfillPlan
from pipeviz_engine.models.estate import EstateConfig
from pipeviz_engine.planner.backfill_planner import (
    NO_DOWNSTREAM_MESSAGE,
    find_true_sources,
    plan_backfill,
)
from pipeviz_engine.planner.dependency_graph import (
    EXPLICIT,
    INFERRED,
    build_dependency_graph,
    get_reachable,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pipeline(
    name: str,
    inputs: list[str] | None = None,
    outputs: list[str] | None = None,
    upstream: list[str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "name": name,
        "input_sources": inputs or [],
        "output_sources": outputs or [],
        "upstream_pipelines": upstream or [],
        **extra,
    }


def _config(*pipelines: dict[str, Any]) -> EstateConfig:
    return EstateConfig.model_validate({"pipelines": list(pipelines)})


def _abc() -> EstateConfig:
    """A writes x which B reads; C declares A upstream."""
    return _config(
        _pipeline("A", outputs=["x"]),
        _pipeline("B", inputs=["x"]),
        _pipeline("C", upstream=["A"]),
    )


def _wave_names(plan: BackfillPlan) -> list[list[str]]:
    return [[p.name for p in wave.pipelines] for wave in plan.waves]


# ---------------------------------------------------------------------------
# Dependency graph
# ---------------------------------------------------------------------------


class TestDependencyGraph:
    def test_explicit_and_inferred(self):
        graph = build_dependency_graph(_abc())
        assert graph.edges["A", "B"]["kind"] == INFERRED
        assert graph.edges["A", "C"]["kind"] == EXPLICIT

    def test_explicit_wins_over_inferred(self):
        config = _config(_pipeline("a", outputs=["x"]), _pipeline("b", inputs=["x"], upstream=["a"]))
        assert build_dependency_graph(config).edges["a", "b"]["kind"] == EXPLICIT

    def test_every_producer_links_to_every_consumer(self):
        config = _config(
            _pipeline("p1", outputs=["shared"]),
            _pipeline("p2", outputs=["shared"]),
            _pipeline("c", inputs=["shared"]),
        )
        graph = build_dependency_graph(config)
        assert sorted(graph.edges()) == [("p1", "c"), ("p2", "c")]

    def test_no_self_edges(self):
        config = _config(_pipeline("p", inputs=["t"], outputs=["t"], upstream=["p"]))
        assert build_dependency_graph(config).number_of_edges() == 0

    def test_unknown_upstream_ignored(self):
        graph = build_dependency_graph(_config(_pipeline("p", upstream=["ghost"])))
        assert list(graph.nodes) == ["p"]

    def test_nodes_carry_pipeline(self):
        graph = build_dependency_graph(_abc())
        assert graph.nodes["A"]["pipeline"].name == "A"

    def test_get_reachable(self):
        graph = build_dependency_graph(_abc())
        assert get_reachable(graph, "A") == {"B", "C"}
        assert get_reachable(graph, "B") == set()
        assert get_reachable(graph, "missing") == set()

    def test_reachable_includes_start_on_cycle(self):
        config = _config(_pipeline("a", upstream=["b"]), _pipeline("b", upstream=["a"]))
        assert get_reachable(build_dependency_graph(config), "a") == {"a", "b"}


# ---------------------------------------------------------------------------
# True sources
# ---------------------------------------------------------------------------


class TestTrueSources:
    def test_downstream_selection_dropped(self):
        graph = build_dependency_graph(_abc())
        assert find_true_sources(graph, ["B", "A"]) == ["A"]

    def test_independent_selections_kept(self):
        graph = build_dependency_graph(_abc())
        assert find_true_sources(graph, ["B", "C"]) == ["B", "C"]


# ---------------------------------------------------------------------------
# plan_backfill
# ---------------------------------------------------------------------------


class TestPlanBackfill:
    def test_abc_waves(self):
        plan = plan_backfill(_abc(), ["A"])
        assert isinstance(plan, BackfillPlan)
        assert _wave_names(plan) == [["A"], ["B", "C"]]
        assert plan.max_parallelism == 2
        assert plan.total_waves == 2
        assert plan.total_downstream_pipelines == 2
        assert plan.true_sources == ("A",)
        assert [(e.source, e.target) for e in plan.edges] == [("A", "B"), ("A", "C")]

    def test_wave_correctness(self, example_config):
        plan = plan_backfill(example_config, ["user-enrichment"])
        wave_of = {p.name: w.wave for w in plan.waves for p in w.pipelines}
        for edge in plan.edges:
            assert wave_of[edge.source] < wave_of[edge.target]

    def test_example_plan(self, example_config):
        plan = plan_backfill(example_config, ["user-enrichment"])
        assert _wave_names(plan) == [
            ["user-enrichment"],
            ["analytics-aggregation"],
            ["export-to-amplitude", "export-to-hubspot", "export-to-salesforce", "weekly-rollup"],
        ]
        assert plan.total_downstream_pipelines == 5
        assert plan.max_parallelism == 4
        assert plan.unscheduled == ()

    def test_redundant_selection_folded(self, example_config):
        plan = plan_backfill(example_config, ["analytics-aggregation", "user-enrichment"])
        assert plan.nodes == ("analytics-aggregation", "user-enrichment")
        assert plan.true_sources == ("user-enrichment",)
        assert plan.waves[1].pipelines[0].name == "analytics-aggregation"

    def test_selection_deduplicated(self):
        plan = plan_backfill(_abc(), ["A", "A"])
        assert plan.nodes == ("A",)

    def test_wave_metadata(self):
        config = _config(
            _pipeline("A", outputs=["x"], schedule="daily", owner="team@x", cluster="c"),
            _pipeline("B", inputs=["x"]),
        )
        plan = plan_backfill(config, ["A"])
        first = plan.waves[0].pipelines[0]
        assert (first.schedule, first.owner, first.cluster) == ("daily", "team@x", "c")

    def test_nothing_downstream(self):
        result = plan_backfill(_abc(), ["B"])
        assert isinstance(result, AnalysisNotice)
        assert result.message == NO_DOWNSTREAM_MESSAGE
        assert result.nodes == ("B",)

    def test_empty_selection(self):
        result = plan_backfill(_abc(), [])
        assert isinstance(result, AnalysisError)
        assert result.error == "empty_selection"

    def test_invalid_selection(self, example_config):
        result = plan_backfill(example_config, ["raw_users", "user-enrichment", "ghost"])
        assert isinstance(result, AnalysisError)
        assert result.error == "invalid_selection"
        assert result.offending == ("raw_users", "ghost")
        assert "raw_users, ghost" in result.message

    def test_cycle_members_unscheduled(self, caplog):
        config = _config(
            _pipeline("X"),
            _pipeline("A", upstream=["X", "B"]),
            _pipeline("B", upstream=["A"]),
        )
        with caplog.at_level("WARNING", logger="pipeviz_engine.planner.backfill_planner"):
            plan = plan_backfill(config, ["X"])
        assert _wave_names(plan) == [["X"]]
        assert plan.unscheduled == ("A", "B")
        assert "dependency cycle" in caplog.text

    def test_selection_entirely_on_cycle(self):
        config = _config(_pipeline("A", upstream=["B"]), _pipeline("B", upstream=["A"]))
        plan = plan_backfill(config, ["A", "B"])
        assert plan.true_sources == ()
        assert plan.waves == ()
        assert plan.unscheduled == ("A", "B")
        assert plan.total_waves == 0
        assert plan.max_parallelism == 0

    def test_planned_pipelines(self):
        plan = plan_backfill(_abc(), ["A"])
        assert plan.planned_pipelines == ["A", "B", "C"]
