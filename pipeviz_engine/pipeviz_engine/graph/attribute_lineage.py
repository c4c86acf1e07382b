"""Column-level lineage within and across data sources.

Each data source's ``attributes`` tree is flattened into attribute nodes
identified by ``datasource::path::to::name``.  An attribute's ``from``
references resolve against those identifiers; each resolved reference adds
an upstream edge on the referencing attribute and the mirrored downstream
edge on the referenced one.

The data-source rollup projects every attribute edge onto the owning data
sources, dropping edges internal to one data source, so callers can ask
which sources feed or consume another without attribute-level detail.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pipeviz_engine.graph.lineage import compute_closure
from pipeviz_engine.models.analysis import (
    AnalysisError,
    AttributeLineage,
    DatasourceLineage,
)
from pipeviz_engine.models.estate import ATTRIBUTE_PATH_SEPARATOR, Attribute, EstateConfig
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


def attribute_id(datasource: str, *path: str) -> str:
    """Join a data source name and attribute path into an attribute id."""
    return ATTRIBUTE_PATH_SEPARATOR.join((datasource, *path))


@dataclass(frozen=True)
class AttributeNode:
    id: str
    name: str
    datasource: str
    structural: bool = False
    parent: str | None = None


@dataclass(frozen=True)
class UnresolvedReference:
    """A ``from`` entry that names no known attribute."""

    attribute: str
    reference: str


@dataclass(frozen=True)
class AttributeGraph:
    """Attribute and data-source level adjacency for one snapshot."""

    attributes: dict[str, AttributeNode]
    upstream: dict[str, tuple[str, ...]]
    downstream: dict[str, tuple[str, ...]]
    datasource_upstream: dict[str, frozenset[str]]
    datasource_downstream: dict[str, frozenset[str]]
    unresolved: tuple[UnresolvedReference, ...] = ()

    def __contains__(self, attr_id: object) -> bool:
        return attr_id in self.attributes

    def edges(self) -> list[tuple[str, str]]:
        """Every ``(source, target)`` attribute edge in discovery order."""
        return [(src, dst) for src, targets in self.downstream.items() for dst in targets]


def _walk(
    attrs: Iterable[Attribute],
    datasource: str,
    prefix: tuple[str, ...] = (),
    parent: str | None = None,
) -> Iterable[tuple[AttributeNode, Attribute]]:
    for attr in attrs:
        path = (*prefix, attr.name)
        node = AttributeNode(
            id=attribute_id(datasource, *path),
            name=attr.name,
            datasource=datasource,
            structural=attr.is_structural,
            parent=parent,
        )
        yield node, attr
        if attr.attributes:
            yield from _walk(attr.attributes, datasource, path, node.id)


@profile_operation("graph.attribute_graph")
def build_attribute_graph(config: EstateConfig) -> AttributeGraph:
    """Flatten every attribute tree and resolve ``from`` references."""
    nodes: dict[str, AttributeNode] = {}
    declared_from: list[tuple[str, list[str]]] = []

    for ds in config.datasources:
        for node, attr in _walk(ds.attributes, ds.name):
            nodes[node.id] = node
            if attr.sources:
                declared_from.append((node.id, attr.sources))

    upstream: dict[str, list[str]] = {attr_id: [] for attr_id in nodes}
    downstream: dict[str, list[str]] = {attr_id: [] for attr_id in nodes}
    unresolved: list[UnresolvedReference] = []

    for target, references in declared_from:
        for ref in references:
            if ref not in nodes:
                unresolved.append(UnresolvedReference(attribute=target, reference=ref))
                continue
            if ref not in upstream[target]:
                upstream[target].append(ref)
            if target not in downstream[ref]:
                downstream[ref].append(target)

    for item in unresolved:
        logger.warning("Attribute '%s' references unknown attribute '%s'", item.attribute, item.reference)

    ds_upstream: dict[str, set[str]] = {ds.name: set() for ds in config.datasources}
    ds_downstream: dict[str, set[str]] = {ds.name: set() for ds in config.datasources}
    for source, targets in downstream.items():
        source_ds = nodes[source].datasource
        for target in targets:
            target_ds = nodes[target].datasource
            if source_ds == target_ds:
                continue
            ds_downstream[source_ds].add(target_ds)
            ds_upstream[target_ds].add(source_ds)

    logger.debug(
        "Built attribute graph: %d attributes, %d edges, %d unresolved",
        len(nodes),
        sum(len(t) for t in downstream.values()),
        len(unresolved),
    )
    return AttributeGraph(
        attributes=nodes,
        upstream={k: tuple(v) for k, v in upstream.items()},
        downstream={k: tuple(v) for k, v in downstream.items()},
        datasource_upstream={k: frozenset(v) for k, v in ds_upstream.items()},
        datasource_downstream={k: frozenset(v) for k, v in ds_downstream.items()},
        unresolved=tuple(unresolved),
    )


def attribute_lineage(
    graph: AttributeGraph,
    attr_id: str,
    max_depth: int | None = None,
) -> AttributeLineage | AnalysisError:
    """Full upstream and downstream closure of one attribute."""
    node = graph.attributes.get(attr_id)
    if node is None:
        return AnalysisError.unknown(attr_id, "attribute")
    return AttributeLineage(
        attribute=attr_id,
        datasource=node.datasource,
        structural=node.structural,
        upstream=tuple(compute_closure(graph.upstream, attr_id, max_depth)),
        downstream=tuple(compute_closure(graph.downstream, attr_id, max_depth)),
    )


def datasource_lineage(graph: AttributeGraph, name: str) -> DatasourceLineage | AnalysisError:
    """Which declared data sources feed, and are fed by, *name* via attributes."""
    if name not in graph.datasource_upstream:
        return AnalysisError.unknown(name, "datasource")
    return DatasourceLineage(
        datasource=name,
        upstream=tuple(compute_closure(graph.datasource_upstream, name)),
        downstream=tuple(compute_closure(graph.datasource_downstream, name)),
    )
