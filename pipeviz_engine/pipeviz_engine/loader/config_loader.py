"""Load and validate estate documents.

Typical usage::

    config = load_config_file(Path("pipeviz.json"))

Loading is all-or-nothing: every structural problem found in a document is
collected and raised together as a :class:`ConfigValidationError`, and no
partial :class:`EstateConfig` is ever returned.  Problems that do not prevent
analysis (dangling references) are not errors; they surface as warnings on
the graph model instead.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from pipeviz_engine.models.estate import ATTRIBUTE_PATH_SEPARATOR, Attribute, EstateConfig

logger = logging.getLogger(__name__)

_YAML_SUFFIXES: frozenset[str] = frozenset({".yaml", ".yml"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigLoadError(Exception):
    """Raised when a document cannot be read or parsed at all."""


class ConfigValidationError(ValueError):
    """Raised when a document is structurally invalid.

    Attributes
    ----------
    errors:
        Every problem found, one human-readable message each.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid estate configuration: " + "; ".join(errors))


# ---------------------------------------------------------------------------
# Structural checks (run before schema validation)
# ---------------------------------------------------------------------------


def _check_shape(data: Any) -> list[str]:
    if not isinstance(data, Mapping):
        return [f"Document must be a JSON object, got {type(data).__name__}."]

    errors: list[str] = []
    pipelines = data.get("pipelines")
    if pipelines is None:
        errors.append("Missing required 'pipelines' array.")
    elif not isinstance(pipelines, list):
        errors.append(f"'pipelines' must be an array, got {type(pipelines).__name__}.")
    else:
        for idx, pipeline in enumerate(pipelines):
            if not isinstance(pipeline, Mapping) or not pipeline.get("name"):
                errors.append(f"pipelines[{idx}] is missing required 'name'.")

    for section in ("datasources", "clusters"):
        entries = data.get(section)
        if entries is None:
            continue
        if not isinstance(entries, list):
            errors.append(f"'{section}' must be an array, got {type(entries).__name__}.")
            continue
        for idx, entry in enumerate(entries):
            if not isinstance(entry, Mapping) or not entry.get("name"):
                errors.append(f"{section}[{idx}] is missing required 'name'.")

    return errors


def _format_validation_error(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" if err.get("loc") else err["msg"]
        for err in exc.errors()
    ]


# ---------------------------------------------------------------------------
# Semantic checks (run on the parsed model)
# ---------------------------------------------------------------------------


def _duplicates(names: list[str]) -> list[str]:
    return sorted(name for name, count in Counter(names).items() if count > 1)


def _cluster_parent_cycles(config: EstateConfig) -> list[list[str]]:
    """Return each distinct cycle in the cluster ``parent`` chains."""
    parent_of = {c.name: c.parent for c in config.clusters if c.parent}
    cycles: list[list[str]] = []
    seen_members: set[str] = set()

    for start in parent_of:
        if start in seen_members:
            continue
        chain: list[str] = []
        position: dict[str, int] = {}
        current: str | None = start
        while current is not None and current not in position and current not in seen_members:
            position[current] = len(chain)
            chain.append(current)
            current = parent_of.get(current)
        if current is not None and current in position:
            cycle = chain[position[current]:]
            cycles.append(cycle + [current])
        seen_members.update(chain)

    return cycles


def _attribute_paths(attrs: list[Attribute], prefix: str) -> list[str]:
    paths: list[str] = []
    for attr in attrs:
        path = f"{prefix}{ATTRIBUTE_PATH_SEPARATOR}{attr.name}"
        paths.append(path)
        paths.extend(_attribute_paths(attr.attributes, path))
    return paths


def _check_semantics(config: EstateConfig) -> list[str]:
    errors: list[str] = []

    for label, names in (
        ("pipeline", config.pipeline_names),
        ("datasource", [ds.name for ds in config.datasources]),
        ("cluster", [c.name for c in config.clusters]),
    ):
        for dup in _duplicates(names):
            errors.append(f"Duplicate {label} name '{dup}'.")

    # A bare name in an edge must identify exactly one node.
    collisions = sorted(set(config.pipeline_names) & {ds.name for ds in config.datasources})
    for name in collisions:
        errors.append(f"Name '{name}' is declared as both a pipeline and a datasource.")

    # Sibling attributes must be distinct for attribute ids to be unique.
    for ds in config.datasources:
        for dup in _duplicates(_attribute_paths(ds.attributes, ds.name)):
            errors.append(f"Duplicate attribute '{dup}'.")

    for cycle in _cluster_parent_cycles(config):
        errors.append("Cluster parent cycle: " + " -> ".join(cycle) + ".")

    return errors


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_config(data: Any) -> list[str]:
    """Validate a raw document without raising.

    Returns
    -------
    list[str]
        Human-readable error messages.  An empty list means the document
        loads cleanly.
    """
    errors = _check_shape(data)
    if errors:
        return errors

    try:
        config = EstateConfig.model_validate(data)
    except ValidationError as exc:
        return _format_validation_error(exc)

    return _check_semantics(config)


def load_config(data: Mapping[str, Any]) -> EstateConfig:
    """Validate a raw document and return the immutable snapshot.

    Raises
    ------
    ConfigValidationError
        With every problem found, if the document is invalid.
    """
    errors = _check_shape(data)
    if errors:
        raise ConfigValidationError(errors)

    try:
        config = EstateConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigValidationError(_format_validation_error(exc)) from None

    errors = _check_semantics(config)
    if errors:
        raise ConfigValidationError(errors)

    logger.debug(
        "Loaded estate config: %d pipelines, %d datasources, %d clusters",
        len(config.pipelines),
        len(config.datasources),
        len(config.clusters),
    )
    return config


def parse_config_text(text: str, *, fmt: str = "json") -> EstateConfig:
    """Parse a JSON (or YAML) document string and validate it."""
    try:
        data = yaml.safe_load(text) if fmt == "yaml" else json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigLoadError(f"Could not parse {fmt.upper()} document: {exc}") from exc
    return load_config(data)


def load_config_file(path: Path) -> EstateConfig:
    """Read, parse and validate an estate document from disk.

    Files ending in ``.yaml`` / ``.yml`` are parsed as YAML, everything else
    as JSON.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"Failed to read config file '{path}': {exc}") from exc

    fmt = "yaml" if path.suffix.lower() in _YAML_SUFFIXES else "json"
    config = parse_config_text(text, fmt=fmt)
    logger.info("Loaded %s", path)
    return config
