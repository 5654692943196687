"""Log output for the CLI and the worker.

Pipeline modules log through ``logging.getLogger(__name__)``; this module
only decides where records under the ``pricey`` logger go and how they
look. Job-level fields (job id, attempts, timings) travel on the record
as ``extra_data`` and become top-level keys in JSON output.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_QUIET_LOGGERS = ("httpx", "apscheduler")


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, dict):
            entry.update(extra)
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """Install a single stream handler on the ``pricey`` logger.

    Calling it again replaces the previous handler.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))

    logger = logging.getLogger("pricey")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
