"""Structured JSON logging for tessera.

Each record becomes one JSON line in .tessera/tessera.log (rotated at 5MB,
3 backups) with ``ts``, ``level`` and ``msg``. Store and planner calls pass
``extra={"op": ..., "capability_id": ..., "template_id": ...}``; those keys,
plus ``duration_ms`` and ``error`` when present, are copied into the line
so a registry change can be traced to the capability and template it hit.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOG_FILENAME = "tessera.log"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3
_EXTRA_FIELDS = ("op", "capability_id", "template_id", "duration_ms", "error")


class _JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying the registry extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def setup_logging(tessera_dir: Path) -> logging.Logger:
    """Attach the JSON file handler for *tessera_dir* to the ``tessera`` logger.

    Safe to call once per CLI invocation or server start: a handler already
    pointing at the same file is reused, and one pointing at another
    project's log is closed and replaced. Returns the ``tessera`` logger.
    """
    logger = logging.getLogger("tessera")
    log_path = tessera_dir / _LOG_FILENAME
    target_filename = os.path.abspath(str(log_path))

    with _setup_lock:
        for h in logger.handlers[:]:
            if not isinstance(h, RotatingFileHandler):
                continue
            if h.baseFilename == target_filename:
                return logger
            # Different path: drop the stale handler so records are not split.
            logger.removeHandler(h)
            h.close()

        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
        )
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
