"""JSON log formatter for log aggregation.

Emits each log record as a single-line JSON object so that downstream
aggregators can index engine warnings (unresolved references, cyclic
plans) without regex parsing.

Activate by setting ``PIPEVIZ_STRUCTURED_LOGGING=true``.

Output schema per line::

    {
        "timestamp": "2025-05-15T12:34:56.789012+00:00",
        "level": "WARNING",
        "logger": "pipeviz_engine.graph.graph_builder",
        "message": "Pipeline 'b' references unknown upstream 'a'",
        "snapshot": "3f1c...",        // present when passed via extra=
        "exc_info": "Traceback ..."   // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        snapshot = getattr(record, "snapshot", None)
        if snapshot:
            payload["snapshot"] = snapshot

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)
