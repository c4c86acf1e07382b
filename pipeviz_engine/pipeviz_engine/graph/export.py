"""Structured, renderer-agnostic export of the estate graph.

The export carries facts only: node records, typed edges, clusters and
counts.  It contains no timestamps, so exporting the same snapshot twice
yields identical documents.
"""

from __future__ import annotations

from typing import Any

from pipeviz_engine.models.analysis import (
    ExportCluster,
    ExportEdge,
    ExportNode,
    GraphExport,
    NodeKind,
)
from pipeviz_engine.models.estate import DataSource, EstateConfig, Pipeline

DATA_FLOW = "data_flow"
PIPELINE_DEPENDENCY = "pipeline_dependency"


def _pipeline_attributes(p: Pipeline) -> dict[str, Any]:
    attrs: dict[str, Any] = {
        "description": p.description,
        "schedule": p.schedule,
        "cluster": p.cluster,
        "group": p.group,
        "owner": p.owner,
        "duration": p.duration,
        "cost": p.cost,
        "tags": list(p.tags),
        "links": dict(p.links),
        "metadata": dict(p.metadata),
    }
    return {k: v for k, v in attrs.items() if v not in (None, [], {})}


def _datasource_attributes(ds: DataSource) -> dict[str, Any]:
    attrs: dict[str, Any] = {
        "description": ds.description,
        "source_type": ds.type,
        "cluster": ds.cluster,
        "owner": ds.owner,
        "tags": list(ds.tags),
        "links": dict(ds.links),
        "metadata": dict(ds.metadata),
    }
    return {k: v for k, v in attrs.items() if v not in (None, [], {})}


def export_graph(config: EstateConfig) -> GraphExport:
    """Export every node, edge and cluster of *config*."""
    nodes: list[ExportNode] = []
    edges: list[ExportEdge] = []
    node_ids: set[str] = set()
    pipeline_names = set(config.pipeline_names)

    for p in config.pipelines:
        nodes.append(ExportNode(id=p.name, type=NodeKind.PIPELINE, attributes=_pipeline_attributes(p)))
        node_ids.add(p.name)
        for source in p.input_sources:
            edges.append(ExportEdge(source=source, target=p.name, type=DATA_FLOW))
        for source in p.output_sources:
            edges.append(ExportEdge(source=p.name, target=source, type=DATA_FLOW))

    for ds in config.datasources:
        nodes.append(ExportNode(id=ds.name, type=NodeKind.DATASOURCE, attributes=_datasource_attributes(ds)))
        node_ids.add(ds.name)

    for p in config.pipelines:
        for source in (*p.input_sources, *p.output_sources):
            if source not in node_ids:
                nodes.append(ExportNode(id=source, type=NodeKind.DATASOURCE, implicit=True))
                node_ids.add(source)

    # Dependency edges only for references that name a node.
    for p in config.pipelines:
        for dep in p.upstream_pipelines:
            if dep in pipeline_names or dep in node_ids:
                edges.append(ExportEdge(source=dep, target=p.name, type=PIPELINE_DEPENDENCY))

    clusters = tuple(ExportCluster(id=c.name, description=c.description, parent=c.parent) for c in config.clusters)

    return GraphExport(
        nodes=tuple(nodes),
        edges=tuple(edges),
        clusters=clusters,
        meta={
            "node_count": len(nodes),
            "edge_count": len(edges),
            "pipeline_count": len(config.pipelines),
            "datasource_count": sum(1 for n in nodes if n.type is NodeKind.DATASOURCE),
            "cluster_count": len(clusters),
        },
    )
