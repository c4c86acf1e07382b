"""Shared fixtures for CLI tests."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

EXAMPLE_ESTATE = Path(__file__).resolve().parents[2] / "pipeviz_engine" / "tests" / "fixtures" / "example_estate.json"


@pytest.fixture
def estate_file(tmp_path: Path) -> Path:
    """A copy of the example estate in a scratch directory."""
    target = tmp_path / "pipeviz.json"
    shutil.copyfile(EXAMPLE_ESTATE, target)
    return target


@pytest.fixture
def write_estate(tmp_path: Path):
    """Factory writing an arbitrary document to ``tmp_path/estate.json``."""

    def _write(document: object) -> Path:
        target = tmp_path / "estate.json"
        target.write_text(json.dumps(document), encoding="utf-8")
        return target

    return _write


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for name in ("PIPEVIZ_CONFIG", "PIPEVIZ_MAX_LINEAGE_DEPTH", "PIPEVIZ_COLLAPSE_GROUPS", "PIPEVIZ_CACHE_ENABLED"):
        monkeypatch.delenv(name, raising=False)
