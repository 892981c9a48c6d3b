"""Worker logging: one stdout handler, text or JSON.

Records logged while processing an answer carry ``result_id`` (passed through
``extra``); both formats show it.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from brand_analytics.core.config import settings

NO_RESULT = "-"

_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(result_id)s | %(message)s"


class ResultIdFilter(logging.Filter):
    """Default ``result_id`` on records logged outside an answer."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "result_id"):
            record.result_id = NO_RESULT
        return True


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_data["exception"] = self.formatException(record.exc_info)
        result_id = getattr(record, "result_id", NO_RESULT)
        if result_id != NO_RESULT:
            log_data["result_id"] = str(result_id)
        return json.dumps(log_data, ensure_ascii=False)


def setup_logging() -> None:
    """Configure logging for the worker process."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(ResultIdFilter())

    if settings.log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root.addHandler(handler)

    # Suppress noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING if not settings.app_debug else level)
    logging.getLogger("celery").setLevel(level)
