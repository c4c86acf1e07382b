"""Wave-by-wave backfill planning for a selection of pipelines.

Given the pipelines a user wants to re-run, the planner works out every
pipeline downstream of them and groups the whole set into *waves*: wave 0
holds the selection's true sources, and each later wave holds the pipelines
whose dependencies all lie in earlier waves.  Members of one wave can run in
parallel.

The algorithm:

1. Compute each selected pipeline's downstream reachability in the
   combined dependency graph.
2. Keep as *true sources* the selected pipelines not reachable from any
   other selected pipeline.
3. Breadth-first from the true sources to collect every downstream
   pipeline; selected pipelines that are not true sources are folded in.
4. Restrict the graph to true sources plus downstream pipelines.
5. Kahn's algorithm by generation, with wave 0 fixed to the true sources.

Pipelines caught on a dependency cycle never reach in-degree zero; they are
reported in :attr:`BackfillPlan.unscheduled` instead of a wave.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

import networkx as nx

from pipeviz_engine.models.analysis import (
    AnalysisError,
    AnalysisNotice,
    BackfillPlan,
    BackfillWave,
    Edge,
    WavePipeline,
)
from pipeviz_engine.models.estate import EstateConfig, Pipeline
from pipeviz_engine.planner.dependency_graph import build_dependency_graph, get_reachable
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

NO_DOWNSTREAM_MESSAGE = "No downstream pipelines to backfill."


def _wave_pipeline(p: Pipeline) -> WavePipeline:
    return WavePipeline(name=p.name, schedule=p.schedule, owner=p.owner, cluster=p.cluster)


def _dedupe(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(names))


def find_true_sources(graph: nx.DiGraph, selected: list[str]) -> list[str]:
    """Selected pipelines not downstream of any *other* selected pipeline."""
    reachable = {name: get_reachable(graph, name) for name in selected}
    return [
        name
        for name in selected
        if not any(other != name and name in reachable[other] for other in selected)
    ]


def _discover_downstream(graph: nx.DiGraph, true_sources: list[str]) -> list[str]:
    visited: set[str] = set(true_sources)
    discovered: list[str] = []
    queue: deque[str] = deque(true_sources)
    while queue:
        current = queue.popleft()
        for child in sorted(graph.successors(current)):
            if child not in visited:
                visited.add(child)
                discovered.append(child)
                queue.append(child)
    return discovered


def _generations(
    graph: nx.DiGraph,
    true_sources: list[str],
    members: set[str],
) -> tuple[list[list[str]], list[str]]:
    """Kahn generations over *members* with wave 0 fixed to *true_sources*.

    Edges into a true source are ignored.  Returns the waves and the
    members left unplaced.
    """
    sources = set(true_sources)
    in_degree = {
        node: sum(1 for pred in graph.predecessors(node) if pred in members)
        for node in members
        if node not in sources
    }

    waves: list[list[str]] = []
    current = sorted(sources)
    placed: set[str] = set()
    while current:
        waves.append(current)
        placed.update(current)
        following: list[str] = []
        for node in current:
            for child in graph.successors(node):
                if child not in in_degree:
                    continue
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    following.append(child)
        current = sorted(following)

    unscheduled = sorted(members - placed)
    return waves, unscheduled


@profile_operation("planner.backfill")
def plan_backfill(
    config: EstateConfig,
    selected: Iterable[str],
    graph: nx.DiGraph | None = None,
) -> BackfillPlan | AnalysisNotice | AnalysisError:
    """Plan the re-run of *selected* pipelines and everything downstream.

    Parameters
    ----------
    config:
        The snapshot.
    selected:
        Pipeline names.  Data sources and unknown names are rejected.
    graph:
        A prebuilt :func:`build_dependency_graph` result, to avoid
        rebuilding it per call.

    Returns
    -------
    BackfillPlan | AnalysisNotice | AnalysisError
        The plan; a notice when there is nothing downstream to re-run;
        or an error naming the offending selections.
    """
    nodes = _dedupe(selected)
    if not nodes:
        return AnalysisError(
            error="empty_selection",
            message="Select at least one pipeline to plan a backfill.",
        )

    pipeline_names = set(config.pipeline_names)
    invalid = [n for n in nodes if n not in pipeline_names]
    if invalid:
        return AnalysisError(
            error="invalid_selection",
            message=f"Backfill planning is only available for pipelines. Invalid: {', '.join(invalid)}",
            offending=tuple(invalid),
        )

    if graph is None:
        graph = build_dependency_graph(config)

    true_sources = find_true_sources(graph, nodes)
    downstream = _discover_downstream(graph, true_sources)
    for name in nodes:
        if name not in true_sources and name not in downstream:
            downstream.append(name)

    if not downstream and len(true_sources) == len(nodes):
        return AnalysisNotice(message=NO_DOWNSTREAM_MESSAGE, nodes=tuple(nodes))

    members = set(true_sources) | set(downstream)
    waves, unscheduled = _generations(graph, true_sources, members)
    if unscheduled:
        logger.warning(
            "Backfill for %s: %d pipeline(s) sit on a dependency cycle and were not scheduled: %s",
            ", ".join(nodes),
            len(unscheduled),
            ", ".join(unscheduled),
        )

    sources = set(true_sources)
    edges = tuple(
        Edge(source=u, target=v)
        for u, v in sorted(graph.subgraph(members).edges())
        if v not in sources
    )

    plan_waves = tuple(
        BackfillWave(
            wave=idx,
            parallel_count=len(wave),
            pipelines=tuple(_wave_pipeline(graph.nodes[name]["pipeline"]) for name in wave),
        )
        for idx, wave in enumerate(waves)
    )

    plan = BackfillPlan(
        nodes=tuple(nodes),
        true_sources=tuple(true_sources),
        total_downstream_pipelines=len(downstream),
        total_waves=len(plan_waves),
        max_parallelism=max((w.parallel_count for w in plan_waves), default=0),
        waves=plan_waves,
        edges=edges,
        unscheduled=tuple(unscheduled),
    )
    logger.info(
        "Backfill plan for %s: %d downstream pipelines in %d waves",
        ", ".join(nodes),
        plan.total_downstream_pipelines,
        plan.total_waves,
    )
    return plan
