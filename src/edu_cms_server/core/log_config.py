"""
Logging Configuration

Applies a single dictConfig to the standard-library logging tree at startup.

Handlers
--------
- console : every record at the configured level
- errors  : ERROR and above, written to ``<LOG_DIR>/error.log`` when a log
            directory is configured
"""

from __future__ import annotations

import logging.config
from pathlib import Path
from typing import Any, Dict, Optional


LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def build_logging_config(level: str = "INFO", log_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the dictConfig mapping for the application loggers.

    Parameters
    ----------
    level : str
        Root level for the ``edu`` logger hierarchy.
    log_dir : Optional[str]
        Directory for ``error.log``. Console-only when None.

    Returns
    -------
    Dict[str, Any]
        A mapping accepted by ``logging.config.dictConfig``.
    """
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level.upper(),
        },
    }

    if log_dir:
        handlers["errors"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "level": "ERROR",
            "filename": str(Path(log_dir) / "error.log"),
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "edu": {
                "handlers": list(handlers),
                "level": level.upper(),
                "propagate": False,
            },
        },
    }


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure application logging. Creates ``log_dir`` if needed.
    """
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(level, log_dir))
