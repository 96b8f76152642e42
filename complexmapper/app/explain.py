from __future__ import annotations

"""Minimal tracing helpers (Explain Mode) and logging setup.

Enable with the CLI flag and emit terse, readable lines at milestones:
session saved, package built, verification result, staging discarded.
"""

import json
import logging
import sys
from typing import Any, Dict

_ENABLED = False
_RUN_CONTEXT = "lib"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(run_context)s]: %(message)s"


def enable(flag: bool = True) -> None:
    global _ENABLED
    _ENABLED = bool(flag)


def enabled() -> bool:
    return _ENABLED


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    data = payload or {}
    try:
        # keep it short; one line JSON
        text = json.dumps(data, separators=(",", ":"), sort_keys=True, default=str)
    except (TypeError, ValueError):
        text = "{}"
    print(f"[EXPLAIN] {event} :: {text}", file=sys.stderr)


class RunContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.run_context = _RUN_CONTEXT
        return True


def configure_logging(level: str | int = "WARNING", context: str = "cli") -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Args:
        level: Logging level name or number.
        context: Execution context shown in every line ("cli", "test", ...).
    """
    global _RUN_CONTEXT
    _RUN_CONTEXT = context
    root = logging.getLogger("complexmapper")
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RunContextFilter())
    root.addHandler(handler)
    root.setLevel(level if isinstance(level, int) else str(level).upper())
    return root
