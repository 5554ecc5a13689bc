"""Shared fakes for exercising the measurement engine without a network."""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

import pytest

from netspeed.config import AppConfig, LoggingConfig, PathsConfig, SpeedtestConfig
from netspeed.errors import FetchError
from netspeed.measurements.models import FetchResult, GeoPoint, MeasurementServer

KM_PER_DEGREE = 6371 * 3.141592653589793 / 180


class ScriptedFetcher:
    """Fetcher whose behavior is decided per URL by a handler.

    The handler returns a FetchResult or raises FetchError. ``delays`` maps a
    URL substring to a real sleep taken before answering, which pins the
    order in which concurrent tasks finish.
    """

    def __init__(self, handler: Callable[[str], FetchResult], delays: Optional[Dict[str, float]] = None):
        self.handler = handler
        self.delays = delays or {}
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch(self, url: str) -> FetchResult:
        with self._lock:
            self.calls.append(url)
        for marker, delay in self.delays.items():
            if marker in url:
                time.sleep(delay)
        return self.handler(url)

    def calls_matching(self, marker: str) -> List[str]:
        with self._lock:
            return [url for url in self.calls if marker in url]


def failing(url: str) -> FetchResult:
    raise FetchError(url, ConnectionError("connection refused"))


def make_server(server_id: str, lat: float = 0.0, lon: float = 0.0, host: Optional[str] = None) -> MeasurementServer:
    host = host or f"{server_id}.example.net:8080"
    return MeasurementServer(
        server_id=server_id,
        name=f"City {server_id}",
        sponsor=f"Sponsor {server_id}",
        country="Nowhere",
        url=f"http://{host}/speedtest/upload.php",
        host=host,
        point=GeoPoint(lat, lon),
    )


def server_at_km(server_id: str, km: float) -> MeasurementServer:
    """A server on the equator ``km`` kilometres east of (0, 0)."""
    return make_server(server_id, 0.0, km / KM_PER_DEGREE)



# Fake speedtest.net: a client at (0, 0) and servers 10, 50 and 200 km east.

CONFIG_URL = "http://config.example/speedtest-config.php"
SERVERS_URL = "http://config.example/speedtest-servers.php"

CONFIG_XML = b'<settings><client ip="203.0.113.7" isp="Example ISP" lat="0" lon="0"/></settings>'


def server_xml(server_id, km):
    lon = km / KM_PER_DEGREE
    return (
        f'<server url="http://{server_id}.example.net/speedtest/upload.php" lat="0" lon="{lon!r}" '
        f'name="{server_id} city" country="Nowhere" sponsor="{server_id} sponsor" id="{server_id}" '
        f'host="{server_id}.example.net"/>'
    )


SERVERS_XML = (
    "<settings><servers>"
    + server_xml("s10", 10)
    + server_xml("s50", 50)
    + server_xml("s200", 200)
    + "</servers></settings>"
).encode()

LATENCY = {"s10.example.net": 0.020, "s50.example.net": 0.005, "s200.example.net": 0.050}


def speedtest_endpoints(url):
    if url == CONFIG_URL:
        return FetchResult(body=CONFIG_XML, elapsed=0.01)
    if url == SERVERS_URL:
        return FetchResult(body=SERVERS_XML, elapsed=0.01)
    if url.endswith("/latency.txt"):
        for host, elapsed in LATENCY.items():
            if host in url:
                return FetchResult(body=b"test=test", elapsed=elapsed)
    if "/random" in url:
        return FetchResult(body=b"\0" * 1_000_000, elapsed=0.1)
    raise FetchError(url, ConnectionError("unknown endpoint"))


def make_config(tmp_path, **speedtest):
    return AppConfig(
        root_dir=tmp_path,
        paths=PathsConfig(logs_dir=tmp_path),
        speedtest=SpeedtestConfig(config_url=CONFIG_URL, servers_url=SERVERS_URL, **speedtest),
        logging=LoggingConfig(),
    )


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging so later tests see pytest's own handlers."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    urllib3_level = logging.getLogger("urllib3").level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("urllib3").setLevel(urllib3_level)
