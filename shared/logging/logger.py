import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_LOGGERS = {}


def _resolve_level() -> int:
    raw = os.getenv("CAMPFIRE_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(raw)
    if isinstance(level, int):
        return level
    return logging.INFO


def get_logger(
    name: str,
    *,
    runtime: str = "campfire",
) -> logging.Logger:
    """
    Create or retrieve a named logger.

    Parameters:
    - name: logger namespace (e.g. campfire.stream, campfire.cli)
    - runtime: log file prefix when file logging is enabled

    Console output always goes to stderr so stdout stays reserved for
    message output. Set CAMPFIRE_LOG_DIR to also write one log file per run.
    """
    cache_key = f"{runtime}:{name}"
    if cache_key in _LOGGERS:
        return _LOGGERS[cache_key]

    logger = logging.getLogger(cache_key)
    logger.setLevel(_resolve_level())

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # ------------------------------
    # Console handler
    # ------------------------------
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    # ------------------------------
    # File handler (one per run, opt-in)
    # ------------------------------
    log_dir = os.getenv("CAMPFIRE_LOG_DIR", "").strip()
    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        logfile = path / f"{runtime}-{timestamp}.log"

        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _LOGGERS[cache_key] = logger

    return logger
