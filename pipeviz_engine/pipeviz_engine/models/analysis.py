"""Result records returned by the engine's query operations.

Every record is frozen: cached results are shared between callers and must
never be mutated after they are produced.

Three kinds of outcome are kept distinct:

* an analysis record (``BlastRadiusReport``, ``BackfillPlan`` ...),
* a *degenerate-but-valid* outcome -- ``None`` or an :class:`AnalysisNotice`,
* an *input error* -- :class:`AnalysisError` naming the offending identifiers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_RESULT_CONFIG = ConfigDict(frozen=True)


class Direction(str, Enum):
    """Lineage traversal direction."""

    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"


class NodeKind(str, Enum):
    PIPELINE = "pipeline"
    DATASOURCE = "datasource"
    GROUP = "group"


class PathMetric(str, Enum):
    """Weight used by the weighted path analyzer."""

    DURATION = "duration"
    COST = "cost"


# ---------------------------------------------------------------------------
# Outcome envelopes
# ---------------------------------------------------------------------------


class AnalysisError(BaseModel):
    """An input error: the request named something the snapshot cannot answer for."""

    model_config = _RESULT_CONFIG

    error: str = Field(..., description="Machine-readable error code, e.g. 'unknown_node'.")
    message: str = Field(..., description="Human-readable explanation.")
    offending: tuple[str, ...] = Field(default=(), description="Identifiers that caused the error.")

    @classmethod
    def unknown(cls, name: str, what: str = "node") -> AnalysisError:
        return cls(error=f"unknown_{what}", message=f"Unknown {what}: {name}", offending=(name,))

    @classmethod
    def invalid(cls, value: str, what: str) -> AnalysisError:
        return cls(error=f"invalid_{what}", message=f"Invalid {what}: {value}", offending=(str(value),))


class AnalysisNotice(BaseModel):
    """A successful analysis that found nothing to report."""

    model_config = _RESULT_CONFIG

    message: str
    nodes: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Lineage
# ---------------------------------------------------------------------------


class LineageEntry(BaseModel):
    """One member of a lineage closure with its minimum hop count."""

    model_config = _RESULT_CONFIG

    name: str
    depth: int = Field(..., ge=1)


class NodeLineage(BaseModel):
    model_config = _RESULT_CONFIG

    node: str
    kind: NodeKind
    upstream: tuple[LineageEntry, ...] = ()
    downstream: tuple[LineageEntry, ...] = ()


class AttributeLineage(BaseModel):
    """Full upstream/downstream closure of one attribute."""

    model_config = _RESULT_CONFIG

    attribute: str
    datasource: str
    structural: bool = False
    upstream: tuple[LineageEntry, ...] = ()
    downstream: tuple[LineageEntry, ...] = ()


class DatasourceLineage(BaseModel):
    """Data-source level rollup of attribute lineage."""

    model_config = _RESULT_CONFIG

    datasource: str
    upstream: tuple[LineageEntry, ...] = ()
    downstream: tuple[LineageEntry, ...] = ()


# ---------------------------------------------------------------------------
# Blast radius
# ---------------------------------------------------------------------------


class Edge(BaseModel):
    model_config = _RESULT_CONFIG

    source: str
    target: str


class AffectedNode(BaseModel):
    """A node reached by a blast radius traversal."""

    model_config = _RESULT_CONFIG

    name: str
    type: NodeKind
    depth: int = Field(..., ge=1)
    schedule: str | None = None
    cluster: str | None = None


class BlastRadiusReport(BaseModel):
    """Downstream impact of changing a node or a whole group."""

    model_config = _RESULT_CONFIG

    source: str
    source_type: NodeKind
    total_affected: int
    max_depth: int
    downstream: tuple[AffectedNode, ...]
    by_depth: dict[int, tuple[AffectedNode, ...]]
    edges: tuple[Edge, ...]
    group_members: tuple[str, ...] | None = None
    group_size: int | None = None


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------


class WavePipeline(BaseModel):
    model_config = _RESULT_CONFIG

    name: str
    schedule: str | None = None
    owner: str | None = None
    cluster: str | None = None


class BackfillWave(BaseModel):
    """A topological generation: every member can run in parallel."""

    model_config = _RESULT_CONFIG

    wave: int = Field(..., ge=0)
    parallel_count: int
    pipelines: tuple[WavePipeline, ...]


class BackfillPlan(BaseModel):
    """Wave-by-wave re-run order for a selection of pipelines and everything downstream."""

    model_config = _RESULT_CONFIG

    nodes: tuple[str, ...] = Field(..., description="The pipelines the caller selected.")
    true_sources: tuple[str, ...]
    total_downstream_pipelines: int
    total_waves: int
    max_parallelism: int
    waves: tuple[BackfillWave, ...]
    edges: tuple[Edge, ...]
    unscheduled: tuple[str, ...] = Field(
        default=(),
        description="Pipelines that could not be placed in a wave because they sit on a cycle.",
    )

    @property
    def planned_pipelines(self) -> list[str]:
        return [p.name for wave in self.waves for p in wave.pipelines]


class AirflowDag(BaseModel):
    model_config = _RESULT_CONFIG

    dag: str
    airflow_url: str
    pipelines: tuple[str, ...]


class AirflowWave(BaseModel):
    model_config = _RESULT_CONFIG

    wave: int
    parallel_count: int
    dags: tuple[AirflowDag, ...]


class DagEdge(BaseModel):
    model_config = _RESULT_CONFIG

    source_dag: str
    target_dag: str


class AirflowPlan(BaseModel):
    """A backfill plan re-expressed at Airflow DAG granularity."""

    model_config = _RESULT_CONFIG

    nodes: tuple[str, ...]
    total_dags: int
    total_waves: int
    waves: tuple[AirflowWave, ...]
    edges: tuple[DagEdge, ...]


# ---------------------------------------------------------------------------
# Weighted paths
# ---------------------------------------------------------------------------


class PathStep(BaseModel):
    """One pipeline on a weighted path, with offsets in the metric's unit."""

    model_config = _RESULT_CONFIG

    name: str
    duration: float
    cost: float
    start: float
    finish: float


class Coverage(BaseModel):
    model_config = _RESULT_CONFIG

    covered: int
    total: int
    missing: tuple[str, ...] = ()


class WeightedPathReport(BaseModel):
    """The longest path through the pipeline dependency graph under one metric."""

    model_config = _RESULT_CONFIG

    metric: PathMetric
    total_duration: float
    total_cost: float
    path: tuple[PathStep, ...]
    coverage: Coverage


# ---------------------------------------------------------------------------
# Statistics and export
# ---------------------------------------------------------------------------


class Hub(BaseModel):
    model_config = _RESULT_CONFIG

    name: str
    type: NodeKind
    upstream: int
    downstream: int
    total: int


class EstateStats(BaseModel):
    model_config = _RESULT_CONFIG

    counts: dict[str, int]
    cycles: tuple[tuple[str, ...], ...]
    hubs: tuple[Hub, ...]
    orphaned: tuple[str, ...]
    coverage: dict[str, Coverage]
    distributions: dict[str, dict[str, int]]


class ExportNode(BaseModel):
    model_config = _RESULT_CONFIG

    id: str
    type: NodeKind
    implicit: bool = False
    attributes: dict[str, Any] = Field(default_factory=dict)


class ExportEdge(BaseModel):
    model_config = _RESULT_CONFIG

    source: str
    target: str
    type: str


class ExportCluster(BaseModel):
    model_config = _RESULT_CONFIG

    id: str
    description: str | None = None
    parent: str | None = None


class GraphExport(BaseModel):
    model_config = _RESULT_CONFIG

    nodes: tuple[ExportNode, ...]
    edges: tuple[ExportEdge, ...]
    clusters: tuple[ExportCluster, ...]
    meta: dict[str, int]
