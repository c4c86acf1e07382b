"""Downstream impact ("blast radius") of a node or a whole group.

The traversal runs breadth-first over the full downstream adjacency of the
graph model (data flow and declared dependencies alike), so every affected
node is reported at its minimum hop count.  A group is blasted as one
virtual source: all members start at depth 0, edges between two members
are suppressed, and traversal edges leaving a member are attributed to the
group name.

All analysis is read-only.  Traversals are deterministic (sorted at every
step).
"""

from __future__ import annotations

import logging
from collections import deque

from pipeviz_engine.graph.graph_builder import GraphModel
from pipeviz_engine.models.analysis import (
    AffectedNode,
    AnalysisError,
    BlastRadiusReport,
    Edge,
    NodeKind,
)
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


@profile_operation("simulation.blast_radius")
def analyze_blast_radius(
    graph: GraphModel,
    node: str,
    max_depth: int | None = None,
) -> BlastRadiusReport | AnalysisError | None:
    """Compute everything that could be affected if *node* changes.

    Parameters
    ----------
    graph:
        The snapshot's graph model.
    node:
        A pipeline, data source or group name.  A name is treated as a
        group when any pipeline declares it as its ``group``.
    max_depth:
        Optional cap on hops from the source.

    Returns
    -------
    BlastRadiusReport | AnalysisError | None
        ``None`` when nothing is downstream of *node*; an
        :class:`AnalysisError` when *node* names nothing in the graph.
    """
    is_group = graph.is_group(node)
    if is_group:
        members = graph.groups[node]
        source_type = NodeKind.GROUP
    elif node in graph:
        members = (node,)
        source_type = graph.nodes[node].kind
    else:
        return AnalysisError.unknown(node)

    member_set = set(members)
    depths: dict[str, int] = {}
    edges: dict[tuple[str, str], None] = {}
    queue: deque[tuple[str, int]] = deque((m, 0) for m in members)

    while queue:
        current, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for neighbour in sorted(graph.downstream.get(current, ())):
            if neighbour in member_set:
                continue
            source = node if is_group and current in member_set else current
            edges.setdefault((source, neighbour), None)
            if neighbour not in depths:
                depths[neighbour] = depth + 1
                queue.append((neighbour, depth + 1))

    if not depths:
        logger.debug("No downstream impact for '%s'", node)
        return None

    affected: list[AffectedNode] = []
    for name, depth in sorted(depths.items(), key=lambda item: (item[1], item[0])):
        info = graph.nodes[name]
        is_pipeline = info.kind is NodeKind.PIPELINE
        affected.append(
            AffectedNode(
                name=name,
                type=info.kind,
                depth=depth,
                schedule=info.schedule if is_pipeline else None,
                cluster=info.cluster if is_pipeline else None,
            )
        )

    by_depth: dict[int, list[AffectedNode]] = {}
    for entry in affected:
        by_depth.setdefault(entry.depth, []).append(entry)

    report = BlastRadiusReport(
        source=node,
        source_type=source_type,
        total_affected=len(affected),
        max_depth=max(depths.values()),
        downstream=tuple(affected),
        by_depth={depth: tuple(entries) for depth, entries in by_depth.items()},
        edges=tuple(Edge(source=s, target=t) for s, t in edges),
        group_members=tuple(members) if is_group else None,
        group_size=len(members) if is_group else None,
    )
    logger.debug(
        "Blast radius for '%s': %d affected, max depth %d",
        node,
        report.total_affected,
        report.max_depth,
    )
    return report
