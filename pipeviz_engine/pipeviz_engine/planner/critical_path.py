"""Critical (longest-duration) and costliest paths through the pipeline DAG.

A forward pass in topological order assigns each pipeline the largest
cumulative weight of any path ending at it, remembering the predecessor
that produced it.  The pipeline holding the global maximum ends the path;
walking predecessor pointers back recovers the whole path.  Both totals
(duration and cost) are reported for whichever path is chosen.
"""

from __future__ import annotations

import logging
from collections import deque

import networkx as nx

from pipeviz_engine.models.analysis import Coverage, PathMetric, PathStep, WeightedPathReport
from pipeviz_engine.models.estate import EstateConfig, Pipeline
from pipeviz_engine.planner.dependency_graph import build_dependency_graph
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


def _weight(p: Pipeline, metric: PathMetric) -> float:
    value = p.duration if metric is PathMetric.DURATION else p.cost
    return value or 0.0


def _kahn_order(graph: nx.DiGraph) -> list[str]:
    """Topological order, stable on declaration order; cyclic nodes are omitted."""
    in_degree = dict(graph.in_degree())
    queue: deque[str] = deque(n for n in graph.nodes if in_degree[n] == 0)
    order: list[str] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for successor in graph.successors(node):
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)
    return order


@profile_operation("planner.weighted_path")
def find_weighted_path(
    config: EstateConfig,
    metric: PathMetric | str,
    graph: nx.DiGraph | None = None,
) -> WeightedPathReport | None:
    """Longest path under *metric*, or ``None`` if no pipeline carries it."""
    metric = PathMetric(metric)
    pipelines = config.pipelines
    carrying = [p for p in pipelines if (p.duration if metric is PathMetric.DURATION else p.cost) is not None]
    if not carrying:
        logger.debug("No pipeline declares %s; %s path not applicable", metric.value, metric.value)
        return None

    if graph is None:
        graph = build_dependency_graph(config)

    order = _kahn_order(graph)
    if len(order) != graph.number_of_nodes():
        logger.warning(
            "Dependency graph has cycles; %d pipeline(s) excluded from %s path",
            graph.number_of_nodes() - len(order),
            metric.value,
        )
    if not order:
        return None

    by_name = {p.name: p for p in pipelines}
    value = {name: _weight(by_name[name], metric) for name in order}
    predecessor: dict[str, str | None] = {name: None for name in order}

    for u in order:
        for v in graph.successors(u):
            if v not in value:
                continue
            candidate = value[u] + _weight(by_name[v], metric)
            if candidate > value[v]:
                value[v] = candidate
                predecessor[v] = u

    end = order[0]
    for name in order:
        if value[name] > value[end]:
            end = name

    chain: list[str] = []
    current: str | None = end
    while current is not None:
        chain.append(current)
        current = predecessor[current]
    chain.reverse()

    steps: list[PathStep] = []
    offset = 0.0
    for name in chain:
        p = by_name[name]
        weight = _weight(p, metric)
        steps.append(
            PathStep(
                name=name,
                duration=p.duration or 0.0,
                cost=p.cost or 0.0,
                start=offset,
                finish=offset + weight,
            )
        )
        offset += weight

    covered = {p.name for p in carrying}
    report = WeightedPathReport(
        metric=metric,
        total_duration=sum(s.duration for s in steps),
        total_cost=sum(s.cost for s in steps),
        path=tuple(steps),
        coverage=Coverage(
            covered=len(carrying),
            total=len(pipelines),
            missing=tuple(p.name for p in pipelines if p.name not in covered),
        ),
    )
    logger.debug("%s path: %s", metric.value, " -> ".join(chain))
    return report


def critical_path(config: EstateConfig, graph: nx.DiGraph | None = None) -> WeightedPathReport | None:
    """Longest path by ``duration``."""
    return find_weighted_path(config, PathMetric.DURATION, graph)


def costliest_path(config: EstateConfig, graph: nx.DiGraph | None = None) -> WeightedPathReport | None:
    """Highest-cost path by ``cost``."""
    return find_weighted_path(config, PathMetric.COST, graph)
