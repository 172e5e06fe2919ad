"""Loguru setup: stderr for lightningd's log, optional rotating file."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_SINK_IDS: dict[str, int] = {}

STDERR_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <7} [{thread.name}] {message}"


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Route logs to stderr; stdout carries the plugin protocol."""
    logger.remove()
    _SINK_IDS.clear()
    _SINK_IDS["stderr"] = logger.add(sys.stderr, level=level.upper(), format=STDERR_FORMAT, backtrace=False)
    if log_file is not None:
        ensure_rotating_log_file(log_file, level=level)


def ensure_rotating_log_file(path: Path, level: str = "INFO") -> Path:
    """Ensure a rotating log sink at the given path."""
    log_path = Path(path).expanduser()
    key = str(log_path)
    if key in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    sink_id = logger.add(
        key,
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[key] = sink_id
    return log_path
