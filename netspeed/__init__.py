"""Application bootstrap helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config
from .logging_setup import configure_logging
from .measurements.manager import MeasurementManager


class ApplicationContext:
    """Holds the shared pieces of one run."""

    def __init__(self, config: AppConfig):
        self.config = config
        configure_logging(config)
        self.measurements = MeasurementManager(config)


def bootstrap(
    config_path: Optional[str] = None,
    quiet: Optional[bool] = None,
    server_id: Optional[str] = None,
    log_level: Optional[str] = None,
) -> ApplicationContext:
    """Load configuration, apply command line overrides and wire dependencies."""

    config_file = Path(config_path).resolve() if config_path else None
    config = load_config(str(config_file)) if config_file else load_config()
    config = config.with_overrides(quiet=quiet, server_id=server_id, log_level=log_level)
    return ApplicationContext(config)
