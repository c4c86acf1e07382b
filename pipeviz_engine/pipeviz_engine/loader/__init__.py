"""Estate document loading and validation."""

from pipeviz_engine.loader.config_loader import (
    ConfigLoadError,
    ConfigValidationError,
    load_config,
    load_config_file,
    parse_config_text,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "load_config",
    "load_config_file",
    "parse_config_text",
    "validate_config",
]
