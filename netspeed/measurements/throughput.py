"""Producer/consumer download sampler."""

from __future__ import annotations

import logging
import posixpath
import queue
import threading
from typing import Iterator, List, Optional, Sequence
from urllib.parse import urlunsplit

from ..config import DEFAULT_DOWNLOAD_SIZES
from ..errors import FetchError, ThroughputError
from ..progress import ProgressReporter
from .fetcher import Fetcher
from .models import MeasurementServer, ThroughputSample
from .sources import split_server_url

LOGGER = logging.getLogger(__name__)

_DONE = object()


def download_url(server_url: str, size: int) -> str:
    """Swap the last path segment of ``server_url`` for a random image of ``size``."""

    parts = split_server_url(server_url)
    directory = posixpath.dirname(parts.path) if parts.path else ""
    path = f"{directory.rstrip('/')}/random{size}x{size}.jpg"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def download_urls(server_url: str, sizes: Sequence[int], repetitions: int) -> Iterator[str]:
    for size in sizes:
        url = download_url(server_url, size)
        for _ in range(repetitions):
            yield url


class ThroughputSampler:
    """Download a fixed URL sequence with a bounded worker pool.

    One producer thread feeds a small queue and then posts one end marker per
    worker. Each worker folds the byte count and elapsed time of every
    successful download into a shared :class:`ThroughputSample`.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        workers: int = 6,
        repetitions: int = 4,
        sizes: Optional[Sequence[int]] = None,
        reporter: Optional[ProgressReporter] = None,
    ):
        if workers <= 0:
            raise ValueError("workers must be positive")
        if repetitions <= 0:
            raise ValueError("repetitions must be positive")
        self.fetcher = fetcher
        self.workers = workers
        self.repetitions = repetitions
        self.sizes = list(sizes) if sizes is not None else list(DEFAULT_DOWNLOAD_SIZES)
        self.reporter = reporter or ProgressReporter(quiet=True)

    def _produce(self, urls: List[str], channel: "queue.Queue[object]") -> None:
        for url in urls:
            channel.put(url)
        for _ in range(self.workers):
            channel.put(_DONE)

    def _consume(self, channel: "queue.Queue[object]", sample: ThroughputSample) -> None:
        while True:
            self.reporter.tick()
            url = channel.get()
            if url is _DONE:
                break
            try:
                result = self.fetcher.fetch(url)
            except FetchError as exc:
                LOGGER.warning("Download of %s failed: %s", url, exc)
                continue
            except Exception:  # pylint: disable=broad-except
                # keep draining so the producer never blocks on a full queue
                LOGGER.exception("Unexpected error downloading %s", url)
                continue
            sample.add(len(result.body), result.elapsed)

    def sample(self, server: MeasurementServer) -> ThroughputSample:
        """Run the pipeline against ``server`` and return the raw aggregate."""

        urls = list(download_urls(server.url, self.sizes, self.repetitions))
        channel: "queue.Queue[object]" = queue.Queue(maxsize=self.workers)
        sample = ThroughputSample()

        self.reporter.begin("Testing download speed")
        threads = [threading.Thread(target=self._produce, args=(urls, channel), name="download-producer", daemon=True)]
        threads.extend(
            threading.Thread(target=self._consume, args=(channel, sample), name=f"download-{index}", daemon=True)
            for index in range(self.workers)
        )
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.reporter.end()

        LOGGER.info(
            "Downloaded %d bytes in %.3fs across %d/%d requests",
            sample.total_bytes,
            sample.total_seconds,
            sample.downloads,
            len(urls),
        )
        return sample

    @staticmethod
    def rate(sample: ThroughputSample, server: MeasurementServer) -> float:
        if sample.downloads == 0 or sample.total_seconds <= 0:
            raise ThroughputError(f"No successful downloads from {server.url}")
        return sample.megabits_per_second()

    def measure(self, server: MeasurementServer) -> float:
        """Return the estimated download rate in megabits per second."""

        return self.rate(self.sample(server), server)
