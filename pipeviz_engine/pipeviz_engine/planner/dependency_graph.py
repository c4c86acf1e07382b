"""Pipeline-only dependency graph used by the planners.

Directed edges point **from** a pipeline **to** the pipeline that must run
after it.  Edges are derived from two sources:

1. ``upstream_pipelines`` -- explicit dependencies declared on a pipeline.
2. Producer/consumer overlap -- pipeline *P* writes a data source that
   pipeline *C* reads, so *C* depends on *P*.  Every producer of a source
   links to every consumer of it.

Self-edges are skipped and duplicate edges collapse into one.
"""

from __future__ import annotations

import logging
from collections import deque

import networkx as nx

from pipeviz_engine.models.estate import EstateConfig
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

EXPLICIT = "explicit"
INFERRED = "inferred"


@profile_operation("planner.dependency_graph")
def build_dependency_graph(config: EstateConfig) -> nx.DiGraph:
    """Build the combined explicit + inferred dependency graph.

    Every pipeline is a node (in declaration order) carrying its
    :class:`~pipeviz_engine.models.estate.Pipeline` under key
    ``"pipeline"``.  Each edge carries ``kind`` = ``"explicit"`` or
    ``"inferred"``; an edge that is both is recorded as explicit.
    """
    graph = nx.DiGraph()
    for p in config.pipelines:
        graph.add_node(p.name, pipeline=p)

    for p in config.pipelines:
        for dep in p.upstream_pipelines:
            if dep in graph and dep != p.name:
                graph.add_edge(dep, p.name, kind=EXPLICIT)

    producers: dict[str, list[str]] = {}
    for p in config.pipelines:
        for source in p.output_sources:
            producers.setdefault(source, []).append(p.name)

    for p in config.pipelines:
        for source in p.input_sources:
            for producer in producers.get(source, ()):
                if producer != p.name and not graph.has_edge(producer, p.name):
                    graph.add_edge(producer, p.name, kind=INFERRED)

    logger.debug(
        "Dependency graph: %d pipelines, %d edges",
        graph.number_of_nodes(),
        graph.number_of_edges(),
    )
    return graph


def get_reachable(graph: nx.DiGraph, start: str) -> set[str]:
    """Return all pipelines transitively downstream of *start*.

    *start* is included only if it lies on a cycle back to itself.
    """
    if start not in graph:
        return set()

    visited: set[str] = set()
    queue: deque[str] = deque(graph.successors(start))

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        queue.extend(graph.successors(current))

    return visited
