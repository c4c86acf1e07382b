"""Node and edge indexes derived from an estate snapshot.

The graph model merges declared pipelines, declared data sources and
*implicit* data sources (names a pipeline reads or writes that were never
declared) into one node set, and indexes the edges between them in both
directions:

* ``source -> pipeline`` for every input,
* ``pipeline -> source`` for every output,
* ``upstream -> pipeline`` for every upstream reference that names a node.

References to unknown nodes do not become edges; they are collected in
:attr:`GraphModel.warnings`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import networkx as nx

from pipeviz_engine.models.analysis import NodeKind
from pipeviz_engine.models.estate import AUTO_CREATED_TAG, EstateConfig
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphNode:
    """One node of the estate graph."""

    name: str
    kind: NodeKind
    implicit: bool = False
    tags: tuple[str, ...] = ()
    cluster: str | None = None
    group: str | None = None
    schedule: str | None = None
    owner: str | None = None


@dataclass(frozen=True)
class GraphModel:
    """Immutable adjacency indexes for one snapshot.

    Attributes
    ----------
    nodes:
        ``name -> GraphNode`` in declaration order (pipelines, declared
        data sources, then implicit data sources in first-reference order).
    downstream:
        ``name -> successors`` over every edge kind.
    upstream:
        ``name -> predecessors``; the exact mirror of ``downstream``.
    groups:
        ``group -> member pipeline names`` in declaration order.
    warnings:
        Non-fatal problems found while building the indexes.
    """

    nodes: dict[str, GraphNode]
    downstream: dict[str, frozenset[str]]
    upstream: dict[str, frozenset[str]]
    groups: dict[str, tuple[str, ...]] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def kind_of(self, name: str) -> NodeKind | None:
        node = self.nodes.get(name)
        return node.kind if node is not None else None

    def is_group(self, name: str) -> bool:
        return name in self.groups

    def collapse(self, name: str) -> str:
        """Project a pipeline onto its group name; other names pass through."""
        node = self.nodes.get(name)
        if node is not None and node.group:
            return node.group
        return name

    @property
    def pipelines(self) -> list[str]:
        return [n.name for n in self.nodes.values() if n.kind is NodeKind.PIPELINE]

    @property
    def datasources(self) -> list[str]:
        return [n.name for n in self.nodes.values() if n.kind is NodeKind.DATASOURCE]

    @property
    def implicit_sources(self) -> list[str]:
        return [n.name for n in self.nodes.values() if n.implicit]

    def edges(self) -> list[tuple[str, str]]:
        """Every edge, sorted by ``(source, target)``."""
        return sorted((src, dst) for src, targets in self.downstream.items() for dst in targets)

    def to_networkx(self) -> nx.DiGraph:
        """Return a :class:`networkx.DiGraph` view carrying node attributes."""
        graph = nx.DiGraph()
        for node in self.nodes.values():
            graph.add_node(
                node.name,
                kind=node.kind.value,
                implicit=node.implicit,
                cluster=node.cluster,
                group=node.group,
            )
        graph.add_edges_from(self.edges())
        return graph


@profile_operation("graph.build")
def build_graph_model(config: EstateConfig) -> GraphModel:
    """Build the node set and both adjacency indexes for *config*.

    Pure: the same snapshot always yields an equal model.
    """
    nodes: dict[str, GraphNode] = {}
    warnings: list[str] = []

    for p in config.pipelines:
        nodes[p.name] = GraphNode(
            name=p.name,
            kind=NodeKind.PIPELINE,
            tags=tuple(p.tags),
            cluster=p.cluster,
            group=p.group,
            schedule=p.schedule,
            owner=p.owner,
        )
    for ds in config.datasources:
        nodes[ds.name] = GraphNode(
            name=ds.name,
            kind=NodeKind.DATASOURCE,
            tags=tuple(ds.tags),
            cluster=ds.cluster,
            owner=ds.owner,
        )

    # Synthesise each undeclared data source once, on first reference.
    for p in config.pipelines:
        for source in [*p.input_sources, *p.output_sources]:
            if source not in nodes:
                nodes[source] = GraphNode(
                    name=source,
                    kind=NodeKind.DATASOURCE,
                    implicit=True,
                    tags=(AUTO_CREATED_TAG,),
                )

    downstream: dict[str, set[str]] = {name: set() for name in nodes}
    upstream: dict[str, set[str]] = {name: set() for name in nodes}

    def _link(src: str, dst: str) -> None:
        downstream[src].add(dst)
        upstream[dst].add(src)

    for p in config.pipelines:
        for source in p.input_sources:
            _link(source, p.name)
        for source in p.output_sources:
            _link(p.name, source)
        for dep in p.upstream_pipelines:
            if dep in nodes:
                _link(dep, p.name)
            else:
                warnings.append(f"Pipeline '{p.name}' references unknown upstream '{dep}'.")

    declared_clusters = {c.name for c in config.clusters}
    if declared_clusters:
        for c in config.clusters:
            if c.parent and c.parent not in declared_clusters:
                warnings.append(f"Cluster '{c.name}' references unknown parent '{c.parent}'.")
        for node in nodes.values():
            if node.cluster and node.cluster not in declared_clusters:
                warnings.append(f"{node.kind.value.capitalize()} '{node.name}' references unknown cluster '{node.cluster}'.")

    for message in warnings:
        logger.warning(message)

    model = GraphModel(
        nodes=nodes,
        downstream={name: frozenset(targets) for name, targets in downstream.items()},
        upstream={name: frozenset(sources) for name, sources in upstream.items()},
        groups={group: tuple(members) for group, members in config.groups.items()},
        warnings=tuple(warnings),
    )
    logger.debug(
        "Built graph model: %d nodes (%d implicit), %d edges",
        len(nodes),
        len(model.implicit_sources),
        sum(len(t) for t in model.downstream.values()),
    )
    return model
