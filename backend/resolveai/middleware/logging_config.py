"""
Logging setup.

Plain text by default; with LOG_JSON=true every line is a JSON object that
also carries the request id of the request being served.
"""

import json
import logging
from datetime import datetime, timezone

from resolveai.middleware.request_context import get_request_id

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = record.duration_ms
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(log_level: str = "INFO", json_lines: bool = False) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    if not json_lines:
        logging.basicConfig(level=level, format=TEXT_FORMAT)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
