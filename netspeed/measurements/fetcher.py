"""Blocking HTTP GET with wall-clock timing."""

from __future__ import annotations

import logging
import time
from typing import Optional, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import FetchError
from .models import FetchResult

LOGGER = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Anything that can GET a URL and report body plus elapsed seconds."""

    def fetch(self, url: str) -> FetchResult:
        ...


class HttpFetcher:
    """requests-backed fetcher shared by every stage of a run.

    ``timeout=None`` leaves the call unbounded and ``retries=0`` disables
    automatic retry, so a failed GET surfaces exactly once.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        retries: int = 0,
        user_agent: str = "netspeed/0.1",
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers["User-Agent"] = user_agent
        if retries > 0:
            adapter = HTTPAdapter(
                max_retries=Retry(total=retries, backoff_factor=0.5, allowed_methods=["GET"])
            )
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def fetch(self, url: str) -> FetchResult:
        start = time.perf_counter()
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            body = response.content
        except requests.RequestException as exc:
            raise FetchError(url, exc) from exc
        elapsed = time.perf_counter() - start
        LOGGER.debug("GET %s: %d bytes in %.3fs", url, len(body), elapsed)
        return FetchResult(body=body, elapsed=elapsed)

    def close(self) -> None:
        self.session.close()
