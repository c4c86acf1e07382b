"""Domain models for the pipeviz engine."""

from pipeviz_engine.models.analysis import (
    AffectedNode,
    AirflowDag,
    AirflowPlan,
    AirflowWave,
    AnalysisError,
    AnalysisNotice,
    AttributeLineage,
    BackfillPlan,
    BackfillWave,
    BlastRadiusReport,
    Coverage,
    DagEdge,
    DatasourceLineage,
    Direction,
    Edge,
    EstateStats,
    GraphExport,
    Hub,
    LineageEntry,
    NodeKind,
    NodeLineage,
    PathMetric,
    PathStep,
    WavePipeline,
    WeightedPathReport,
)
from pipeviz_engine.models.estate import (
    Attribute,
    Cluster,
    DataSource,
    EstateConfig,
    Pipeline,
)

__all__ = [
    "AffectedNode",
    "AirflowDag",
    "AirflowPlan",
    "AirflowWave",
    "AnalysisError",
    "AnalysisNotice",
    "Attribute",
    "AttributeLineage",
    "BackfillPlan",
    "BackfillWave",
    "BlastRadiusReport",
    "Cluster",
    "Coverage",
    "DagEdge",
    "DataSource",
    "DatasourceLineage",
    "Direction",
    "Edge",
    "EstateConfig",
    "EstateStats",
    "GraphExport",
    "Hub",
    "LineageEntry",
    "NodeKind",
    "NodeLineage",
    "PathMetric",
    "PathStep",
    "Pipeline",
    "WavePipeline",
    "WeightedPathReport",
]
