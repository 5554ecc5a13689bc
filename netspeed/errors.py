"""Exception hierarchy for a speedtest run."""

from __future__ import annotations

from typing import Optional


class SpeedtestError(Exception):
    """Base class for errors that abort a run."""


class FetchError(SpeedtestError):
    """A single HTTP GET failed (transport error or non-2xx status)."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"GET {url} failed{detail}")


class ConfigurationFetchError(SpeedtestError):
    pass


class MalformedResponseError(SpeedtestError):
    pass


class InvalidServerURLError(SpeedtestError):
    pass


class ServerNotFoundError(SpeedtestError):
    pass


class NoServersError(SpeedtestError):
    pass


class ThroughputError(SpeedtestError):
    pass
