"""Logging configuration for applications embedding OpenFolio.

Library modules only create module-level loggers. Call ``setup()`` once
at application start to get ISO-8601 timestamps on every line, and
optionally mirror the output to a file next to the user's projects.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def setup(*, verbose: bool = False, log_file: str | Path | None = None) -> None:
    """Configure the root logger with timestamped output.

    Args:
        verbose: If True, set level to DEBUG (shows skipped section
            writes and hydration); otherwise INFO.
        log_file: Optional file that receives the same records.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
