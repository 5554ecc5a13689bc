"""Configuration loading helpers for the bandwidth estimator."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar
import yaml


DEFAULT_DOWNLOAD_SIZES = [350, 500, 750, 1000, 1500, 2000, 2500, 3000, 3500, 4000]


@dataclass
class PathsConfig:
    logs_dir: Path


@dataclass
class SpeedtestConfig:
    config_url: str = "http://www.speedtest.net/speedtest-config.php"
    servers_url: str = "http://www.speedtest.net/speedtest-servers.php"
    closest_servers: int = 5
    latency_probes: int = 5
    latency_path: str = "/latency.txt"
    concurrent_downloads: int = 6
    duplicate_downloads: int = 4
    download_sizes: List[int] = field(default_factory=lambda: list(DEFAULT_DOWNLOAD_SIZES))
    server_id: Optional[str] = None
    timeout_seconds: Optional[float] = None
    retries: int = 0
    user_agent: str = "netspeed/0.1"

    def __post_init__(self) -> None:
        for name in ("closest_servers", "latency_probes", "concurrent_downloads", "duplicate_downloads"):
            if getattr(self, name) <= 0:
                raise ValueError(f"speedtest.{name} must be positive")
        if not self.download_sizes:
            raise ValueError("speedtest.download_sizes cannot be empty")
        if self.retries < 0:
            raise ValueError("speedtest.retries cannot be negative")
        if self.server_id is not None:
            self.server_id = str(self.server_id)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file_name: str = "netspeed.log"
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    http_debug: bool = False


@dataclass
class AppConfig:
    root_dir: Path
    paths: PathsConfig
    speedtest: SpeedtestConfig
    logging: LoggingConfig
    quiet: bool = False

    def with_overrides(
        self,
        quiet: Optional[bool] = None,
        server_id: Optional[str] = None,
        log_level: Optional[str] = None,
    ) -> "AppConfig":
        """Return a copy with command line overrides applied."""

        speedtest = self.speedtest
        if server_id:
            speedtest = replace(speedtest, server_id=str(server_id))
        logging_config = self.logging
        if log_level:
            logging_config = replace(logging_config, level=log_level)
        return replace(
            self,
            speedtest=speedtest,
            logging=logging_config,
            quiet=self.quiet if quiet is None else quiet,
        )


SectionT = TypeVar("SectionT")


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return value


def _build(cls: Type[SectionT], data: Dict[str, Any], name: str) -> SectionT:
    known = {item.name for item in fields(cls)}
    unknown = sorted(set(_section(data, name)) - known)
    if unknown:
        raise ValueError(f"Unknown {name} setting(s): {', '.join(unknown)}")
    try:
        return cls(**_section(data, name))
    except TypeError as exc:
        raise ValueError(f"Invalid {name} settings: {exc}") from exc


def _as_path(base: Path, maybe_path: Optional[str]) -> Path:
    if not maybe_path:
        raise ValueError("Path configuration entries cannot be empty")
    path = (base / maybe_path).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load application configuration from YAML file.

    An explicit path must exist. Without one, ``config.yaml`` in the working
    directory is read when present and built-in defaults are used otherwise.
    """

    if path:
        source_path = Path(path)
        if not source_path.exists():
            raise FileNotFoundError(f"Missing configuration file at {source_path}")
        root_dir = source_path.resolve().parent
    else:
        root_dir = Path.cwd()
        source_path = root_dir / "config.yaml"

    data: Dict[str, Any] = {}
    if source_path.exists():
        with source_path.open("r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Cannot parse {source_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"{source_path} must contain a mapping at the top level")

    paths_data = _section(data, "paths")
    paths = PathsConfig(
        logs_dir=_as_path(root_dir, paths_data.get("logs_dir", "logs")),
    )

    return AppConfig(
        root_dir=root_dir,
        paths=paths,
        speedtest=_build(SpeedtestConfig, data, "speedtest"),
        logging=_build(LoggingConfig, data, "logging"),
        quiet=bool(data.get("quiet", False)),
    )
