"""Structured Logging — one log line per event, JSON in production.

Invariants:
    - Every JSON line carries timestamp, level, logger and message
    - Bus/database context (action, address, query, error_code) is copied from
      `extra=` when present and omitted otherwise, never written as null
    - Exactly one "wiki" handler on the root logger, however often setup runs

Design Decisions:
    - stdlib logging + a small Formatter: the rest of the code only ever calls
      logging.getLogger(__name__)
    - SQLAlchemy's statement echo stays at WARNING unless the wiki runs at DEBUG
"""

import json
import logging
from datetime import datetime, timezone

HANDLER_NAME = "wiki"

CONTEXT_FIELDS = ("action", "address", "query", "error_code", "path", "status_code")


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the wiki handler on the root logger, replacing a previous one."""
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"),
    )
    root.addHandler(handler)

    numeric = logging.getLevelName(level.upper())
    root.setLevel(numeric if isinstance(numeric, int) else logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if root.level <= logging.DEBUG else logging.WARNING,
    )
