"""Schema for the declarative data-estate document.

The document is the engine's wire format: a JSON (or YAML) object with a
required ``pipelines`` array and optional ``datasources``, ``clusters`` and
``version``.  Unknown fields are ignored everywhere so that newer documents
still load on older engines.

All models are frozen -- a loaded snapshot is never mutated.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DOCUMENT_CONFIG = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

AUTO_CREATED_TAG = "auto-created"
ATTRIBUTE_PATH_SEPARATOR = "::"


class Attribute(BaseModel):
    """A column (or nested struct field) of a data source.

    ``from`` may be a single ``datasource::path::to::field`` reference or a
    list of them; it is normalised to a list.  An attribute with nested
    ``attributes`` is a structural node.
    """

    model_config = _DOCUMENT_CONFIG

    name: str = Field(..., min_length=1, description="Attribute name, unique among its siblings.")
    sources: list[str] = Field(
        default_factory=list,
        alias="from",
        description="Upstream attribute references this attribute is derived from.",
    )
    attributes: list[Attribute] = Field(
        default_factory=list,
        description="Nested child attributes.",
    )

    @field_validator("sources", mode="before")
    @classmethod
    def normalise_sources(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @property
    def is_structural(self) -> bool:
        return bool(self.attributes)


Attribute.model_rebuild()


class Pipeline(BaseModel):
    """A unit of work that reads input sources and writes output sources."""

    model_config = _DOCUMENT_CONFIG

    # -- Identity --
    name: str = Field(..., min_length=1, description="Unique pipeline name.")
    description: str | None = None

    # -- Wiring --
    input_sources: list[str] = Field(default_factory=list)
    output_sources: list[str] = Field(default_factory=list)
    upstream_pipelines: list[str] = Field(
        default_factory=list,
        description="Pipelines that must complete before this one.",
    )

    # -- Optional metadata --
    schedule: str | None = None
    owner: str | None = None
    tags: list[str] = Field(default_factory=list)
    cluster: str | None = Field(default=None, description="Name of the owning cluster.")
    group: str | None = Field(
        default=None,
        description="Collapsing key shared by sibling pipelines; not itself a graph node.",
    )
    links: dict[str, str] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    # -- Path-analysis weights --
    duration: float | None = Field(default=None, ge=0)
    cost: float | None = Field(default=None, ge=0)

    @field_validator("input_sources", "output_sources", "upstream_pipelines", "tags", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def airflow_url(self) -> str | None:
        return self.links.get("airflow") or None


class DataSource(BaseModel):
    """A table, bucket, topic, API or any other place data lives."""

    model_config = _DOCUMENT_CONFIG

    name: str = Field(..., min_length=1, description="Unique data source name.")
    description: str | None = None
    type: str | None = None
    owner: str | None = None
    tags: list[str] = Field(default_factory=list)
    cluster: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    links: dict[str, str] = Field(default_factory=dict)
    attributes: list[Attribute] = Field(default_factory=list)

    @field_validator("tags", "attributes", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class Cluster(BaseModel):
    """A logical grouping of pipelines and data sources; clusters nest via ``parent``."""

    model_config = _DOCUMENT_CONFIG

    name: str = Field(..., min_length=1)
    description: str | None = None
    parent: str | None = None


class EstateConfig(BaseModel):
    """The complete estate document -- one immutable snapshot."""

    model_config = _DOCUMENT_CONFIG

    pipelines: list[Pipeline]
    datasources: list[DataSource] = Field(default_factory=list)
    clusters: list[Cluster] = Field(default_factory=list)
    version: str | None = None

    @field_validator("datasources", "clusters", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("version", mode="before")
    @classmethod
    def version_as_string(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    def pipeline(self, name: str) -> Pipeline | None:
        for p in self.pipelines:
            if p.name == name:
                return p
        return None

    def datasource(self, name: str) -> DataSource | None:
        for ds in self.datasources:
            if ds.name == name:
                return ds
        return None

    @property
    def pipeline_names(self) -> list[str]:
        return [p.name for p in self.pipelines]

    @property
    def groups(self) -> dict[str, list[str]]:
        """Mapping of group name to member pipeline names, in declaration order."""
        groups: dict[str, list[str]] = {}
        for p in self.pipelines:
            if p.group:
                groups.setdefault(p.group, []).append(p.name)
        return groups
