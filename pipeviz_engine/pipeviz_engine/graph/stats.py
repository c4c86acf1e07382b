"""Summary statistics for an estate snapshot."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable

from pipeviz_engine.graph.cycles import build_collapse, detect_cycles
from pipeviz_engine.models.analysis import Coverage, EstateStats, Hub, NodeKind
from pipeviz_engine.models.estate import EstateConfig, Pipeline
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

MAX_HUBS = 8
UNCLUSTERED = "unclustered"
UNKNOWN_TYPE = "unknown"


def _coverage(pipelines: list[Pipeline], has: Callable[[Pipeline], bool]) -> Coverage:
    missing = tuple(p.name for p in pipelines if not has(p))
    return Coverage(covered=len(pipelines) - len(missing), total=len(pipelines), missing=missing)


def _hubs(config: EstateConfig, collapse_groups: bool) -> tuple[Hub, ...]:
    collapse = build_collapse(config, collapse_groups)
    pipeline_names = set(config.pipeline_names)
    groups = set(config.groups) if collapse_groups else set()
    upstream: Counter[str] = Counter()
    downstream: Counter[str] = Counter()

    for p in config.pipelines:
        node = collapse(p.name)
        for source in p.input_sources:
            downstream[source] += 1
            upstream[node] += 1
        for source in p.output_sources:
            downstream[node] += 1
            upstream[source] += 1
        for dep in p.upstream_pipelines:
            if dep not in pipeline_names:
                continue
            downstream[collapse(dep)] += 1
            upstream[node] += 1

    def _kind(name: str) -> NodeKind:
        if name in groups:
            return NodeKind.GROUP
        if name in pipeline_names:
            return NodeKind.PIPELINE
        return NodeKind.DATASOURCE

    hubs = [
        Hub(
            name=name,
            type=_kind(name),
            upstream=upstream[name],
            downstream=downstream[name],
            total=upstream[name] + downstream[name],
        )
        for name in set(upstream) | set(downstream)
    ]
    hubs.sort(key=lambda h: (-h.total, h.name))
    return tuple(hubs[:MAX_HUBS])


@profile_operation("graph.stats")
def compute_stats(config: EstateConfig, collapse_groups: bool = True) -> EstateStats:
    """Counts, cycles, hubs, orphans, coverage and distributions."""
    pipelines = config.pipelines
    referenced = {s for p in pipelines for s in (*p.input_sources, *p.output_sources)}
    declared = {ds.name for ds in config.datasources}

    cluster_counts = Counter(p.cluster or UNCLUSTERED for p in pipelines)
    type_counts = Counter(ds.type or UNKNOWN_TYPE for ds in config.datasources)

    stats = EstateStats(
        counts={
            "pipelines": len(pipelines),
            "datasources": len(config.datasources),
            "implicit_datasources": len(referenced - declared),
            "clusters": len([c for c in cluster_counts if c != UNCLUSTERED]),
            "groups": len(config.groups),
        },
        cycles=tuple(tuple(c) for c in detect_cycles(config, collapse_groups)),
        hubs=_hubs(config, collapse_groups),
        orphaned=tuple(ds.name for ds in config.datasources if ds.name not in referenced),
        coverage={
            "schedules": _coverage(pipelines, lambda p: bool(p.schedule)),
            "airflow": _coverage(pipelines, lambda p: bool(p.airflow_url)),
            "duration": _coverage(pipelines, lambda p: p.duration is not None),
            "cost": _coverage(pipelines, lambda p: p.cost is not None),
        },
        distributions={
            "clusters": dict(sorted(cluster_counts.items())),
            "types": dict(sorted(type_counts.items())),
        },
    )
    logger.debug("Computed stats: %s", stats.counts)
    return stats
