"""Query façade over one loaded estate snapshot.

:class:`EstateEngine` owns a validated, immutable
:class:`~pipeviz_engine.models.estate.EstateConfig`, the indexes derived
from it, and a :class:`~pipeviz_engine.engine.cache.SnapshotCache` of
results.  Every query is read-only; repeated queries on an unchanged
snapshot return identical results, served from the cache after the first
call.

Reloading swaps the snapshot only after the new document has been fully
validated, then flushes the cache.  A failed reload leaves the previous
snapshot and its cached results in place.

Typical usage::

    engine = EstateEngine.from_file(Path("pipeviz.json"))
    report = engine.blast_radius("raw_users")
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import networkx as nx

from pipeviz_engine.config import Settings, load_settings
from pipeviz_engine.engine.cache import SnapshotCache
from pipeviz_engine.graph.attribute_lineage import (
    AttributeGraph,
    attribute_lineage as compute_attribute_lineage,
    build_attribute_graph,
    datasource_lineage as compute_datasource_lineage,
)
from pipeviz_engine.graph.cycles import detect_cycles
from pipeviz_engine.graph.export import export_graph
from pipeviz_engine.graph.graph_builder import GraphModel, build_graph_model
from pipeviz_engine.graph.lineage import compute_closure, merge_lineage
from pipeviz_engine.graph.stats import compute_stats
from pipeviz_engine.loader.config_loader import load_config, load_config_file, parse_config_text
from pipeviz_engine.models.analysis import (
    AirflowPlan,
    AnalysisError,
    AnalysisNotice,
    AttributeLineage,
    BackfillPlan,
    BlastRadiusReport,
    DatasourceLineage,
    Direction,
    EstateStats,
    GraphExport,
    LineageEntry,
    NodeKind,
    NodeLineage,
    PathMetric,
    WeightedPathReport,
)
from pipeviz_engine.models.estate import EstateConfig
from pipeviz_engine.planner.backfill_planner import plan_backfill
from pipeviz_engine.planner.critical_path import find_weighted_path
from pipeviz_engine.planner.dependency_graph import build_dependency_graph
from pipeviz_engine.planner.scheduler_projection import project_to_airflow
from pipeviz_engine.simulation.blast_radius import analyze_blast_radius

logger = logging.getLogger(__name__)


def snapshot_fingerprint(config: EstateConfig) -> str:
    """SHA-256 of the snapshot's canonical JSON form."""
    canonical = json.dumps(config.model_dump(mode="json", by_alias=True), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


class EstateEngine:
    """All structural queries over one estate snapshot.

    Parameters
    ----------
    config:
        A validated snapshot (see :mod:`pipeviz_engine.loader`).
    settings:
        Engine settings; loaded from the environment when omitted.
    source_path:
        The file the snapshot was read from, if any.  Enables
        :meth:`reload` without arguments.
    """

    def __init__(
        self,
        config: EstateConfig,
        settings: Settings | None = None,
        *,
        source_path: Path | None = None,
    ) -> None:
        self._settings = settings or load_settings()
        self._cache = SnapshotCache(
            max_entries=self._settings.cache_max_entries,
            enabled=self._settings.cache_enabled,
        )
        self._source_path = source_path
        self._install(config)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_file(cls, path: Path, settings: Settings | None = None) -> EstateEngine:
        return cls(load_config_file(path), settings, source_path=path)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], settings: Settings | None = None) -> EstateEngine:
        return cls(load_config(data), settings)

    @classmethod
    def from_json(cls, text: str, settings: Settings | None = None) -> EstateEngine:
        return cls(parse_config_text(text), settings)

    def _install(self, config: EstateConfig) -> None:
        graph = build_graph_model(config)
        dependencies = build_dependency_graph(config)
        attributes = build_attribute_graph(config)

        self._config = config
        self._fingerprint = snapshot_fingerprint(config)
        self._graph = graph
        self._dependencies = dependencies
        self._attributes = attributes
        self._cache.invalidate_all()
        logger.info(
            "Installed snapshot %s: %d pipelines, %d datasources, %d warnings",
            self._fingerprint[:12],
            len(config.pipelines),
            len(config.datasources),
            len(graph.warnings),
            extra={"snapshot": self._fingerprint},
        )

    def reload(self, source: EstateConfig | Mapping[str, Any] | Path | None = None) -> None:
        """Replace the snapshot and drop every cached result.

        *source* may be a snapshot, a raw document, or a path.  With no
        argument the file the engine was created from is read again.

        Raises
        ------
        ConfigValidationError, ConfigLoadError
            If the new document is invalid.  The current snapshot stays
            installed.
        """
        if source is None:
            if self._source_path is None:
                raise ValueError("Engine was not loaded from a file; pass a config to reload().")
            source = self._source_path

        if isinstance(source, EstateConfig):
            config = source
        elif isinstance(source, Path):
            config = load_config_file(source)
            self._source_path = source
        else:
            config = load_config(source)

        self._install(config)

    def invalidate(self) -> int:
        """Drop every cached result.  Returns count removed."""
        return self._cache.invalidate_all()

    # ------------------------------------------------------------------
    # Snapshot accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> EstateConfig:
        return self._config

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    @property
    def graph(self) -> GraphModel:
        return self._graph

    @property
    def dependency_graph(self) -> nx.DiGraph:
        return self._dependencies

    @property
    def attribute_graph(self) -> AttributeGraph:
        return self._attributes

    @property
    def warnings(self) -> list[str]:
        messages = list(self._graph.warnings)
        messages.extend(
            f"Attribute '{u.attribute}' references unknown attribute '{u.reference}'."
            for u in self._attributes.unresolved
        )
        return messages

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    def _cached(self, operation: str, params: dict[str, Any], compute: Any) -> Any:
        key = SnapshotCache.make_key(self._fingerprint, operation, params)
        return self._cache.get_or_compute(key, compute)

    def _depth(self, max_depth: int | None) -> int | None:
        return max_depth if max_depth is not None else self._settings.max_lineage_depth

    # ------------------------------------------------------------------
    # Lineage
    # ------------------------------------------------------------------

    def lineage_of(
        self,
        node: str,
        direction: Direction | str = Direction.DOWNSTREAM,
        max_depth: int | None = None,
    ) -> list[LineageEntry] | AnalysisError:
        """Transitive closure of *node* (or of a group) in one direction."""
        try:
            direction = Direction(direction)
        except ValueError:
            return AnalysisError.invalid(direction, "direction")
        depth = self._depth(max_depth)
        if node not in self._graph and not self._graph.is_group(node):
            return AnalysisError.unknown(node)

        def _compute() -> tuple[LineageEntry, ...]:
            if node not in self._graph:
                return tuple(self._group_closure(node, direction, depth))
            adjacency = self._graph.upstream if direction is Direction.UPSTREAM else self._graph.downstream
            return tuple(compute_closure(adjacency, node, depth))

        entries = self._cached("lineage", {"node": node, "direction": direction.value, "depth": depth}, _compute)
        return list(entries)

    def _group_closure(self, group: str, direction: Direction, depth: int | None) -> list[LineageEntry]:
        members = self._graph.groups[group]
        adjacency = self._graph.upstream if direction is Direction.UPSTREAM else self._graph.downstream
        return merge_lineage(
            *(compute_closure(adjacency, member, depth) for member in members),
            exclude=members,
        )

    def group_lineage(
        self,
        group: str,
        direction: Direction | str = Direction.DOWNSTREAM,
        max_depth: int | None = None,
    ) -> list[LineageEntry] | AnalysisError:
        """Merged closure of every member of *group*, members excluded."""
        if not self._graph.is_group(group):
            return AnalysisError.unknown(group, "group")
        try:
            direction = Direction(direction)
        except ValueError:
            return AnalysisError.invalid(direction, "direction")
        depth = self._depth(max_depth)
        entries = self._cached(
            "group_lineage",
            {"group": group, "direction": direction.value, "depth": depth},
            lambda: tuple(self._group_closure(group, direction, depth)),
        )
        return list(entries)

    def node_lineage(self, node: str, max_depth: int | None = None) -> NodeLineage | AnalysisError:
        """Both closures of *node* at once."""
        upstream = self.lineage_of(node, Direction.UPSTREAM, max_depth)
        downstream = self.lineage_of(node, Direction.DOWNSTREAM, max_depth)
        if isinstance(upstream, AnalysisError):
            return upstream
        if isinstance(downstream, AnalysisError):
            return downstream

        if node in self._graph:
            kind = self._graph.nodes[node].kind
        else:
            kind = NodeKind.GROUP
        return NodeLineage(node=node, kind=kind, upstream=tuple(upstream), downstream=tuple(downstream))

    def precompute_lineage(self) -> int:
        """Warm the cache with both closures of every node.  Returns node count."""
        for name in self._graph.nodes:
            self.lineage_of(name, Direction.UPSTREAM)
            self.lineage_of(name, Direction.DOWNSTREAM)
        logger.debug("Precomputed lineage for %d nodes", len(self._graph.nodes))
        return len(self._graph.nodes)

    # ------------------------------------------------------------------
    # Structural analyses
    # ------------------------------------------------------------------

    def detect_cycles(self, collapse_groups: bool | None = None) -> list[list[str]]:
        collapse = self._settings.collapse_groups if collapse_groups is None else collapse_groups
        cycles = self._cached(
            "cycles",
            {"collapse_groups": collapse},
            lambda: tuple(tuple(c) for c in detect_cycles(self._config, collapse)),
        )
        return [list(c) for c in cycles]

    def blast_radius(self, node: str) -> BlastRadiusReport | AnalysisError | None:
        return self._cached("blast_radius", {"node": node}, lambda: analyze_blast_radius(self._graph, node))

    def plan_backfill(self, selected: Iterable[str]) -> BackfillPlan | AnalysisNotice | AnalysisError:
        nodes = list(selected)
        return self._cached(
            "backfill",
            {"nodes": nodes},
            lambda: plan_backfill(self._config, nodes, self._dependencies),
        )

    def project_to_scheduler(
        self,
        plan: BackfillPlan | Iterable[str],
    ) -> AirflowPlan | AnalysisNotice | AnalysisError:
        """Airflow DAG view of a backfill plan (or of a selection, planned first)."""
        if not isinstance(plan, BackfillPlan):
            planned = self.plan_backfill(plan)
            if not isinstance(planned, BackfillPlan):
                return planned
            plan = planned
        return self._cached(
            "airflow",
            {"plan": plan.model_dump(mode="json")},
            lambda: project_to_airflow(self._config, plan),
        )

    def weighted_path(self, metric: PathMetric | str) -> WeightedPathReport | AnalysisError | None:
        try:
            metric = PathMetric(metric)
        except ValueError:
            return AnalysisError.invalid(metric, "metric")
        return self._cached(
            "weighted_path",
            {"metric": metric.value},
            lambda: find_weighted_path(self._config, metric, self._dependencies),
        )

    def critical_path(self) -> WeightedPathReport | None:
        return self.weighted_path(PathMetric.DURATION)

    def costliest_path(self) -> WeightedPathReport | None:
        return self.weighted_path(PathMetric.COST)

    # ------------------------------------------------------------------
    # Attribute lineage
    # ------------------------------------------------------------------

    def attribute_lineage(self, attr_id: str, max_depth: int | None = None) -> AttributeLineage | AnalysisError:
        depth = self._depth(max_depth)
        return self._cached(
            "attribute_lineage",
            {"attribute": attr_id, "depth": depth},
            lambda: compute_attribute_lineage(self._attributes, attr_id, depth),
        )

    def datasource_lineage(self, name: str) -> DatasourceLineage | AnalysisError:
        return self._cached(
            "datasource_lineage",
            {"datasource": name},
            lambda: compute_datasource_lineage(self._attributes, name),
        )

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def stats(self) -> EstateStats:
        return self._cached(
            "stats",
            {"collapse_groups": self._settings.collapse_groups},
            lambda: compute_stats(self._config, self._settings.collapse_groups),
        )

    def export_graph(self) -> GraphExport:
        return self._cached("export", {}, lambda: export_graph(self._config))
