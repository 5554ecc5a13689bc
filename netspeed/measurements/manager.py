"""Measurement orchestration for a single speedtest run."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from ..config import AppConfig
from ..errors import ServerNotFoundError
from ..progress import ProgressReporter
from .fetcher import Fetcher, HttpFetcher
from .geo import closest_servers, distance, sort_by_distance
from .latency import LatencyProber
from .models import ClientLocation, MeasurementServer, SpeedtestResult
from .sources import fetch_client_location, fetch_servers
from .throughput import ThroughputSampler

LOGGER = logging.getLogger(__name__)


class MeasurementManager:
    def __init__(
        self,
        config: AppConfig,
        fetcher: Optional[Fetcher] = None,
        reporter: Optional[ProgressReporter] = None,
    ):
        self.config = config
        self.fetcher = fetcher or HttpFetcher(
            timeout=config.speedtest.timeout_seconds,
            retries=config.speedtest.retries,
            user_agent=config.speedtest.user_agent,
        )
        self.reporter = reporter or ProgressReporter(quiet=config.quiet)

    def get_client(self) -> ClientLocation:
        self.reporter.say("Retrieving speedtest.net configuration...")
        client = fetch_client_location(self.fetcher, self.config.speedtest.config_url)
        self.reporter.say(f"Testing from {client.isp} ({client.ip})...")
        return client

    def get_servers(self) -> List[MeasurementServer]:
        self.reporter.say("Retrieving speedtest.net server list...")
        return fetch_servers(self.fetcher, self.config.speedtest.servers_url)

    def list_servers(self) -> List[MeasurementServer]:
        client = self.get_client()
        return sort_by_distance(client.point, self.get_servers())

    def _find_server(self, client: ClientLocation, servers: List[MeasurementServer], server_id: str) -> MeasurementServer:
        for server in servers:
            if server.server_id == server_id:
                server.distance_km = distance(client.point, server.point)
                LOGGER.info("Using requested server %s (%s)", server_id, server.sponsor)
                return server
        raise ServerNotFoundError(f"Server {server_id} is not in the speedtest.net server list")

    def select_server(self, client: ClientLocation, servers: List[MeasurementServer]) -> MeasurementServer:
        settings = self.config.speedtest
        if settings.server_id:
            return self._find_server(client, servers, settings.server_id)

        candidates = closest_servers(client.point, servers, settings.closest_servers)
        LOGGER.info(
            "Closest servers: %s",
            ", ".join(f"{server.sponsor} ({server.distance_km:.2f} km)" for server in candidates),
        )
        prober = LatencyProber(
            self.fetcher,
            probes=settings.latency_probes,
            path=settings.latency_path,
            reporter=self.reporter,
        )
        return prober.select(candidates).server

    def run_speedtest(self) -> SpeedtestResult:
        settings = self.config.speedtest
        client = self.get_client()
        server = self.select_server(client, self.get_servers())

        ping = "?" if server.ping_ms is None else server.ping_ms
        self.reporter.say(f"Hosted by {server.sponsor} ({server.name}) [{server.distance_km:.2f} km] {ping} ms")

        sampler = ThroughputSampler(
            self.fetcher,
            workers=settings.concurrent_downloads,
            repetitions=settings.duplicate_downloads,
            sizes=settings.download_sizes,
            reporter=self.reporter,
        )
        sample = sampler.sample(server)
        download_mbps = sampler.rate(sample, server)
        LOGGER.info("Download %.2f Mbit/s from %s (%s)", download_mbps, server.sponsor, server.name)
        return SpeedtestResult(
            client=client,
            server=server,
            download_mbps=download_mbps,
            bytes_received=sample.total_bytes,
            download_seconds=sample.total_seconds,
            timestamp=datetime.utcnow(),
        )
