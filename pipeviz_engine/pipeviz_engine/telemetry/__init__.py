"""Logging setup and operation profiling."""

from pipeviz_engine.telemetry.json_formatter import JSONFormatter
from pipeviz_engine.telemetry.logging_config import configure_logging
from pipeviz_engine.telemetry.profiling import (
    OperationTiming,
    TimingCollector,
    get_collector,
    profile_operation,
)

__all__ = [
    "JSONFormatter",
    "OperationTiming",
    "TimingCollector",
    "configure_logging",
    "get_collector",
    "profile_operation",
]
