"""Shared fixtures for pipeviz engine tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from pipeviz_engine.config import Settings, load_settings
from pipeviz_engine.loader.config_loader import load_config
from pipeviz_engine.models.estate import EstateConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def example_path() -> Path:
    return FIXTURES_DIR / "example_estate.json"


@pytest.fixture
def example_data(example_path: Path) -> dict[str, Any]:
    return json.loads(example_path.read_text(encoding="utf-8"))


@pytest.fixture
def example_config(example_data: dict[str, Any]) -> EstateConfig:
    return load_config(example_data)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any .env file in the working directory."""
    return load_settings(_env_file=None)
