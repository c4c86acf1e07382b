"""Graph model, lineage closures, cycle detection and attribute lineage."""

from pipeviz_engine.graph.attribute_lineage import (
    AttributeGraph,
    AttributeNode,
    attribute_id,
    attribute_lineage,
    build_attribute_graph,
    datasource_lineage,
)
from pipeviz_engine.graph.cycles import build_collapse, detect_cycles
from pipeviz_engine.graph.export import export_graph
from pipeviz_engine.graph.graph_builder import GraphModel, GraphNode, build_graph_model
from pipeviz_engine.graph.lineage import compute_closure, lineage_names, merge_lineage
from pipeviz_engine.graph.stats import compute_stats

__all__ = [
    # Graph model
    "GraphModel",
    "GraphNode",
    "build_graph_model",
    # Lineage
    "compute_closure",
    "lineage_names",
    "merge_lineage",
    # Cycles
    "build_collapse",
    "detect_cycles",
    # Attribute lineage
    "AttributeGraph",
    "AttributeNode",
    "attribute_id",
    "attribute_lineage",
    "build_attribute_graph",
    "datasource_lineage",
    # Summaries
    "compute_stats",
    "export_graph",
]
