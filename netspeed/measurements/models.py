"""Shared dataclasses for measurements."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

BYTES_PER_MEGABIT = 131072


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


@dataclass(frozen=True)
class ClientLocation:
    point: GeoPoint
    ip: str
    isp: str


@dataclass(eq=False)
class MeasurementServer:
    """A speedtest.net server; compared by identity, not by value."""

    server_id: str
    name: str
    sponsor: str
    country: str
    url: str
    host: str
    point: GeoPoint
    distance_km: float = 0.0
    ping_ms: Optional[int] = None


@dataclass(frozen=True)
class FetchResult:
    body: bytes
    elapsed: float  # seconds


@dataclass(frozen=True)
class ProbeResult:
    server: MeasurementServer
    ping_ms: int
    successes: int


@dataclass
class ThroughputSample:
    total_bytes: int = 0
    total_seconds: float = 0.0
    downloads: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, nbytes: int, seconds: float) -> None:
        with self._lock:
            self.total_bytes += nbytes
            self.total_seconds += seconds
            self.downloads += 1

    def megabits_per_second(self) -> float:
        with self._lock:
            if self.total_seconds <= 0:
                raise ZeroDivisionError("no download time accumulated")
            return (self.total_bytes / self.total_seconds) / BYTES_PER_MEGABIT


@dataclass
class SpeedtestResult:
    client: ClientLocation
    server: MeasurementServer
    download_mbps: float
    bytes_received: int
    download_seconds: float
    timestamp: datetime
