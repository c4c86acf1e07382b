"""Unit tests for pipeviz_engine.graph.graph_builder."""

from __future__ import annotations

from typing import Any

from pipeviz_engine.graph.graph_builder import build_graph_model
from pipeviz_engine.models.analysis import NodeKind
from pipeviz_engine.models.estate import AUTO_CREATED_TAG, EstateConfig

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


def _config(pipelines: list[dict[str, Any]], **sections: Any) -> EstateConfig:
    return EstateConfig.model_validate({"pipelines": pipelines, **sections})


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class TestNodes:
    def test_declaration_order(self):
        config = _config(
            [_pipeline("p1", inputs=["x"], outputs=["y"]), _pipeline("p2", inputs=["y"], outputs=["z"])],
            datasources=[{"name": "y"}],
        )
        graph = build_graph_model(config)
        assert list(graph.nodes) == ["p1", "p2", "y", "x", "z"]

    def test_implicit_sources_tagged(self):
        graph = build_graph_model(_config([_pipeline("p", inputs=["raw"])]))
        node = graph.nodes["raw"]
        assert node.implicit is True
        assert node.kind is NodeKind.DATASOURCE
        assert node.tags == (AUTO_CREATED_TAG,)
        assert graph.implicit_sources == ["raw"]

    def test_implicit_source_created_once(self):
        config = _config([_pipeline("a", outputs=["shared"]), _pipeline("b", inputs=["shared"])])
        graph = build_graph_model(config)
        assert graph.datasources == ["shared"]

    def test_kind_of(self):
        graph = build_graph_model(_config([_pipeline("p", inputs=["x"])]))
        assert graph.kind_of("p") is NodeKind.PIPELINE
        assert graph.kind_of("x") is NodeKind.DATASOURCE
        assert graph.kind_of("missing") is None

    def test_groups_are_not_nodes(self):
        config = _config([_pipeline("a", group="g"), _pipeline("b", group="g")])
        graph = build_graph_model(config)
        assert "g" not in graph
        assert graph.is_group("g")
        assert graph.groups == {"g": ("a", "b")}
        assert graph.collapse("a") == "g"
        assert graph.collapse("other") == "other"


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


class TestEdges:
    def test_data_flow_edges(self):
        graph = build_graph_model(_config([_pipeline("p", inputs=["in"], outputs=["out"])]))
        assert graph.edges() == [("in", "p"), ("p", "out")]

    def test_upstream_edges(self):
        config = _config([_pipeline("a"), _pipeline("b", upstream=["a"])])
        graph = build_graph_model(config)
        assert graph.downstream["a"] == frozenset({"b"})
        assert graph.upstream["b"] == frozenset({"a"})

    def test_indexes_mirror_each_other(self, example_config):
        graph = build_graph_model(example_config)
        for src, targets in graph.downstream.items():
            for dst in targets:
                assert src in graph.upstream[dst]
        for dst, sources in graph.upstream.items():
            for src in sources:
                assert dst in graph.downstream[src]

    def test_unknown_upstream_is_warning_not_edge(self):
        graph = build_graph_model(_config([_pipeline("b", upstream=["ghost"])]))
        assert "ghost" not in graph
        assert graph.edges() == []
        assert graph.warnings == ("Pipeline 'b' references unknown upstream 'ghost'.",)

    def test_upstream_to_datasource_is_an_edge(self):
        config = _config([_pipeline("a", upstream=["table"])], datasources=[{"name": "table"}])
        graph = build_graph_model(config)
        assert graph.edges() == [("table", "a")]
        assert graph.warnings == ()

    def test_to_networkx(self, example_config):
        graph = build_graph_model(example_config)
        nx_graph = graph.to_networkx()
        assert nx_graph.number_of_nodes() == len(graph.nodes)
        assert sorted(nx_graph.edges()) == graph.edges()
        assert nx_graph.nodes["processed_orders"]["implicit"] is True


# ---------------------------------------------------------------------------
# Cluster warnings
# ---------------------------------------------------------------------------


class TestClusterWarnings:
    def test_no_clusters_declared_no_warnings(self):
        graph = build_graph_model(_config([_pipeline("p", cluster="anywhere")]))
        assert graph.warnings == ()

    def test_unknown_cluster(self):
        config = _config([_pipeline("p", cluster="nowhere")], clusters=[{"name": "c"}])
        graph = build_graph_model(config)
        assert graph.warnings == ("Pipeline 'p' references unknown cluster 'nowhere'.",)

    def test_unknown_parent(self):
        config = _config([], clusters=[{"name": "c", "parent": "missing"}])
        graph = build_graph_model(config)
        assert graph.warnings == ("Cluster 'c' references unknown parent 'missing'.",)

    def test_example_is_clean(self, example_config):
        assert build_graph_model(example_config).warnings == ()

    def test_warnings_logged(self, caplog):
        with caplog.at_level("WARNING", logger="pipeviz_engine.graph.graph_builder"):
            build_graph_model(_config([_pipeline("b", upstream=["ghost"])]))
        assert "unknown upstream 'ghost'" in caplog.text


# ---------------------------------------------------------------------------
# Example estate
# ---------------------------------------------------------------------------


class TestExampleGraph:
    def test_counts(self, example_config):
        graph = build_graph_model(example_config)
        assert len(graph.pipelines) == 7
        assert len(graph.datasources) == 13
        assert graph.implicit_sources == ["processed_orders", "order_audit"]

    def test_deterministic(self, example_config):
        assert build_graph_model(example_config) == build_graph_model(example_config)
