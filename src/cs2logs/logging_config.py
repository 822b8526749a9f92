"""Logging setup for ``cs2-logs`` runs.

The console shows progress (games found, rewinds, skipped games); the
per-run file under ``{data_dir}/logs/`` keeps DEBUG output with logger
names, so a rejected line or a rewind can be traced back afterwards.
"""

import logging.config
from datetime import datetime
from pathlib import Path


def setup_logging(data_dir: str | Path = "data", verbose: bool = False) -> Path:
    """Configure the root logger for one ingest run.

    Replaces any handlers already installed, so repeated calls (tests,
    several runs in one process) do not duplicate output.

    Returns:
        Path of the run's log file, ``ingest-YYYYmmdd-HHMMSS.log``.
    """
    log_dir = Path(data_dir) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"ingest-{datetime.now():%Y%m%d-%H%M%S}.log"

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": "%(asctime)s %(levelname)-5s %(message)s", "datefmt": "%H:%M:%S"},
            "file": {"format": "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": "DEBUG" if verbose else "INFO",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "file",
                "filename": str(log_file),
                "encoding": "utf-8",
                "level": "DEBUG",
            },
        },
        "root": {"level": "DEBUG", "handlers": ["console", "file"]},
    })
    return log_file
