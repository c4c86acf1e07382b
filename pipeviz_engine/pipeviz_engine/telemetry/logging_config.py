"""Root logger setup shared by the CLI and embedding applications."""

from __future__ import annotations

import logging

from pipeviz_engine.config import Settings
from pipeviz_engine.telemetry.json_formatter import JSONFormatter

_TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def configure_logging(settings: Settings) -> None:
    """Install a single stream handler on the root logger.

    Uses :class:`JSONFormatter` when ``settings.structured_logging`` is set,
    otherwise a plain text format.  ``debug`` forces DEBUG level.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if settings.structured_logging:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    root_logger.addHandler(handler)

    root_logger.setLevel(logging.DEBUG if settings.debug else settings.log_level)
