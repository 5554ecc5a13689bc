"""Centralized logging configuration."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from .config import AppConfig


def configure_logging(config: AppConfig) -> None:
    """Send records to ``<logs_dir>/<file_name>`` and to stderr.

    stdout is left to the progress narration and the result line, so a
    ``-simple`` run prints nothing but the download figure there.
    """

    settings = config.logging
    log_dir = config.paths.logs_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / settings.file_name

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.level.upper(), logging.INFO))

    file_handler = RotatingFileHandler(
        log_path, maxBytes=settings.max_bytes, backupCount=settings.backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    if config.quiet:
        console_handler.setLevel(logging.WARNING)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # urllib3 logs every pooled connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.DEBUG if settings.http_debug else logging.WARNING)
    logging.getLogger(__name__).debug("Logging to %s at %s", log_path, settings.level.upper())
