"""Unit tests for pipeviz_engine.loader.config_loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from pipeviz_engine.loader.config_loader import (
    ConfigLoadError,
    ConfigValidationError,
    load_config,
    load_config_file,
    parse_config_text,
    validate_config,
)

# ---------------------------------------------------------------------------
# Shape checks
# ---------------------------------------------------------------------------


class TestShape:
    def test_non_object_document(self):
        assert validate_config([1, 2]) == ["Document must be a JSON object, got list."]

    def test_missing_pipelines(self):
        assert validate_config({"datasources": []}) == ["Missing required 'pipelines' array."]

    def test_pipelines_not_an_array(self):
        errors = validate_config({"pipelines": {"name": "a"}})
        assert errors == ["'pipelines' must be an array, got dict."]

    def test_pipeline_without_name(self):
        errors = validate_config({"pipelines": [{"name": "a"}, {"input_sources": ["x"]}]})
        assert errors == ["pipelines[1] is missing required 'name'."]

    def test_empty_name_is_missing(self):
        errors = validate_config({"pipelines": [{"name": ""}]})
        assert errors == ["pipelines[0] is missing required 'name'."]

    def test_datasource_and_cluster_without_name(self):
        errors = validate_config(
            {
                "pipelines": [],
                "datasources": [{"type": "s3"}],
                "clusters": [{"description": "x"}],
            }
        )
        assert errors == [
            "datasources[0] is missing required 'name'.",
            "clusters[0] is missing required 'name'.",
        ]

    def test_all_errors_reported_together(self):
        errors = validate_config({"pipelines": [{}, {}], "datasources": "nope"})
        assert len(errors) == 3


# ---------------------------------------------------------------------------
# Schema and semantic checks
# ---------------------------------------------------------------------------


class TestSemantics:
    def test_minimal_document_is_valid(self):
        assert validate_config({"pipelines": []}) == []

    def test_schema_error_has_location(self):
        errors = validate_config({"pipelines": [{"name": "a", "input_sources": "raw"}]})
        assert len(errors) == 1
        assert errors[0].startswith("pipelines.0.input_sources")

    def test_negative_duration_rejected(self):
        errors = validate_config({"pipelines": [{"name": "a", "duration": -1}]})
        assert errors and errors[0].startswith("pipelines.0.duration")

    def test_duplicate_pipeline(self):
        errors = validate_config({"pipelines": [{"name": "a"}, {"name": "a"}]})
        assert errors == ["Duplicate pipeline name 'a'."]

    def test_duplicate_datasource_and_cluster(self):
        errors = validate_config(
            {
                "pipelines": [],
                "datasources": [{"name": "d"}, {"name": "d"}],
                "clusters": [{"name": "c"}, {"name": "c"}],
            }
        )
        assert errors == ["Duplicate datasource name 'd'.", "Duplicate cluster name 'c'."]

    def test_duplicate_sibling_attributes(self):
        errors = validate_config(
            {
                "pipelines": [],
                "datasources": [
                    {
                        "name": "d",
                        "attributes": [
                            {"name": "id"},
                            {"name": "id"},
                            {"name": "addr", "attributes": [{"name": "city"}, {"name": "city"}]},
                        ],
                    }
                ],
            }
        )
        assert errors == ["Duplicate attribute 'd::addr::city'.", "Duplicate attribute 'd::id'."]

    def test_same_attribute_name_under_different_parents(self):
        data = {
            "pipelines": [],
            "datasources": [
                {
                    "name": "d",
                    "attributes": [
                        {"name": "home", "attributes": [{"name": "city"}]},
                        {"name": "work", "attributes": [{"name": "city"}]},
                    ],
                }
            ],
        }
        assert validate_config(data) == []

    def test_pipeline_datasource_collision(self):
        errors = validate_config({"pipelines": [{"name": "x"}], "datasources": [{"name": "x"}]})
        assert errors == ["Name 'x' is declared as both a pipeline and a datasource."]

    def test_cluster_parent_cycle(self):
        errors = validate_config(
            {
                "pipelines": [],
                "clusters": [{"name": "a", "parent": "b"}, {"name": "b", "parent": "a"}],
            }
        )
        assert errors == ["Cluster parent cycle: a -> b -> a."]

    def test_unknown_references_are_not_errors(self):
        data = {
            "pipelines": [{"name": "a", "upstream_pipelines": ["ghost"], "cluster": "nowhere"}],
            "clusters": [{"name": "c", "parent": "missing"}],
        }
        assert validate_config(data) == []

    def test_unknown_fields_ignored(self):
        config = load_config({"pipelines": [{"name": "a", "colour": "blue"}], "extra": True})
        assert config.pipeline_names == ["a"]

    def test_null_lists_become_empty(self):
        config = load_config({"pipelines": [{"name": "a", "input_sources": None}], "datasources": None})
        assert config.pipelines[0].input_sources == []
        assert config.datasources == []


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_raises_with_all_errors(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config({"pipelines": [{"name": "a"}, {"name": "a"}], "datasources": [{"name": "a"}]})
        assert exc_info.value.errors == [
            "Duplicate pipeline name 'a'.",
            "Name 'a' is declared as both a pipeline and a datasource.",
        ]
        assert str(exc_info.value).startswith("Invalid estate configuration: ")

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            load_config({})

    def test_from_alias_normalised(self):
        config = load_config(
            {
                "pipelines": [],
                "datasources": [
                    {"name": "a", "attributes": [{"name": "id"}]},
                    {"name": "b", "attributes": [{"name": "id", "from": "a::id"}]},
                ],
            }
        )
        assert config.datasources[1].attributes[0].sources == ["a::id"]

    def test_numeric_version_coerced(self):
        config = load_config({"pipelines": [], "version": 2})
        assert config.version == "2"

    def test_snapshot_is_frozen(self, example_config):
        with pytest.raises(Exception):
            example_config.version = "9"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Text and file parsing
# ---------------------------------------------------------------------------


class TestParsing:
    def test_parse_json(self):
        config = parse_config_text('{"pipelines": [{"name": "a"}]}')
        assert config.pipeline_names == ["a"]

    def test_parse_yaml(self):
        config = parse_config_text("pipelines:\n  - name: a\n    input_sources: [x]\n", fmt="yaml")
        assert config.pipelines[0].input_sources == ["x"]

    def test_malformed_json(self):
        with pytest.raises(ConfigLoadError, match="Could not parse JSON"):
            parse_config_text("{not json")

    def test_malformed_yaml(self):
        with pytest.raises(ConfigLoadError, match="Could not parse YAML"):
            parse_config_text("pipelines: [a, b", fmt="yaml")

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigLoadError, match="Failed to read config file"):
            load_config_file(tmp_path / "absent.json")

    def test_undecodable_file(self, tmp_path: Path):
        path = tmp_path / "estate.json"
        path.write_bytes(b'{"pipelines": [{"name": "\xff\xfe"}]}')
        with pytest.raises(ConfigLoadError, match="Failed to read config file"):
            load_config_file(path)

    def test_yaml_suffix(self, tmp_path: Path):
        path = tmp_path / "estate.yml"
        path.write_text("pipelines:\n  - name: a\n", encoding="utf-8")
        assert load_config_file(path).pipeline_names == ["a"]

    def test_example_file_loads(self, example_path: Path):
        config = load_config_file(example_path)
        assert len(config.pipelines) == 7
        assert len(config.datasources) == 11
        assert len(config.clusters) == 4
        assert config.groups == {
            "data-exports": ["export-to-salesforce", "export-to-hubspot", "export-to-amplitude"],
        }
