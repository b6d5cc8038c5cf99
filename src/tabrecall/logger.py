"""Logging configuration for tabrecall.

Logs go to a single rotating file. Enrichment runs on worker threads, so
each record carries the thread name to tell interleaved workflows apart.
"""

import datetime
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

MAX_LOG_FILE_BYTES = 5 * 1024 * 1024  # 5 MiB per rotated file.
LOG_BACKUP_COUNT = 3
LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
# HTTP stack used for provider calls; its DEBUG output dumps every request.
HTTP_LIBRARIES = ("urllib3", "requests", "charset_normalizer")
_ROLLED_LOG_PATHS: set[Path] = set()


def _archive_previous_run(log_path: Path) -> None:
    """Move the last run's log aside under a timestamp prefix, once per process."""
    resolved_path = log_path.resolve()
    if resolved_path in _ROLLED_LOG_PATHS:
        return
    _ROLLED_LOG_PATHS.add(resolved_path)
    if not log_path.exists() or log_path.stat().st_size == 0:
        return
    timestamp = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    archived_path = log_path.parent / f"{timestamp}_{log_path.name}"
    suffix = 1
    while archived_path.exists():
        archived_path = log_path.parent / f"{timestamp}_{suffix}_{log_path.name}"
        suffix += 1
    log_path.rename(archived_path)


def setup_logging(
    level_name: str = "INFO", log_file: Optional[Union[str, Path]] = None
) -> Optional[Path]:
    """Send root logging to ``log_file`` and return the resolved path.

    Without a log file nothing is configured. The HTTP libraries are held at
    WARNING even when tabrecall itself logs at DEBUG.
    """
    if not log_file:
        return None
    level = getattr(logging, level_name.upper(), logging.INFO)
    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _archive_previous_run(log_path)

    root = logging.getLogger()
    root.setLevel(level)
    for existing_handler in list(root.handlers):
        root.removeHandler(existing_handler)
        existing_handler.close()

    handler = RotatingFileHandler(
        log_path,
        mode="a",
        maxBytes=MAX_LOG_FILE_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    for lib in HTTP_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)
    return log_path
