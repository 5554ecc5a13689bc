"""Concurrent latency probing and best-server selection."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence
from urllib.parse import urlunsplit

from ..errors import FetchError, NoServersError
from ..progress import ProgressReporter
from .fetcher import Fetcher
from .models import MeasurementServer, ProbeResult
from .sources import split_server_url

LOGGER = logging.getLogger(__name__)


def latency_url(server_url: str, path: str = "/latency.txt") -> str:
    """Point the server's scheme and host at the latency path."""

    parts = split_server_url(server_url)
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


class LatencyProber:
    """Probe every candidate in its own thread and keep the lowest mean.

    The best result lives in one slot guarded by a lock. A result replaces
    it when it is the first to arrive or strictly faster. Results without a
    single successful probe only win when nothing better ever arrives.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        probes: int = 5,
        path: str = "/latency.txt",
        reporter: Optional[ProgressReporter] = None,
    ):
        if probes <= 0:
            raise ValueError("probes must be positive")
        self.fetcher = fetcher
        self.probes = probes
        self.path = path
        self.reporter = reporter or ProgressReporter(quiet=True)
        self._lock = threading.Lock()
        self._best: Optional[ProbeResult] = None

    def probe_server(self, server: MeasurementServer, url: str) -> ProbeResult:
        total = 0.0
        successes = 0
        for attempt in range(self.probes):
            try:
                result = self.fetcher.fetch(url)
            except FetchError as exc:
                LOGGER.warning("Latency probe %d/%d to %s failed: %s", attempt + 1, self.probes, server.host or url, exc)
                self.reporter.say(f"Failure during latency probe: {exc}")
                break
            total += result.elapsed
            successes += 1
        # failed attempts stay in the denominator
        ping_ms = int(total * 1000) // self.probes
        LOGGER.debug("%s: mean latency %d ms over %d/%d successful probes", server.host or url, ping_ms, successes, self.probes)
        return ProbeResult(server=server, ping_ms=ping_ms, successes=successes)

    def _record(self, result: ProbeResult) -> None:
        with self._lock:
            best = self._best
            if best is None:
                replace = True
            elif (result.successes > 0) != (best.successes > 0):
                replace = result.successes > 0
            else:
                replace = result.ping_ms < best.ping_ms
            if replace:
                self._best = result

    def _run(self, server: MeasurementServer, url: str) -> None:
        self._record(self.probe_server(server, url))

    def select(self, servers: Sequence[MeasurementServer]) -> ProbeResult:
        """Probe all candidates concurrently and return the winning result."""

        if not servers:
            raise NoServersError("No candidate servers to probe")

        # a malformed URL aborts the run before any probe starts
        urls = [latency_url(server.url, self.path) for server in servers]

        self.reporter.say("Selecting best server based on ping...")
        self._best = None
        threads: List[threading.Thread] = []
        for server, url in zip(servers, urls):
            thread = threading.Thread(
                target=self._run,
                args=(server, url),
                name=f"latency-{server.server_id or server.host}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        for thread in threads:
            thread.join()

        best = self._best
        if best is None:
            raise NoServersError("Latency probing produced no result")
        best.server.ping_ms = best.ping_ms
        if best.successes == 0:
            LOGGER.error(
                "Every latency probe failed; falling back to %s (%s) without a latency figure",
                best.server.sponsor,
                best.server.name,
            )
        else:
            LOGGER.info("Best server %s (%s): %d ms", best.server.sponsor, best.server.name, best.ping_ms)
        return best
