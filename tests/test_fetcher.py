"""Tests for the requests-backed HttpFetcher."""

from unittest import mock

import pytest
import requests

from netspeed.errors import FetchError
from netspeed.measurements.fetcher import HttpFetcher


def fake_session(response=None, error=None):
    session = mock.Mock(spec=requests.Session)
    session.headers = {}
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return session


def fake_response(content=b"", status_error=None):
    response = mock.Mock()
    response.content = content
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


class TestHttpFetcher:
    def test_returns_body_and_elapsed(self):
        session = fake_session(fake_response(b"hello"))
        result = HttpFetcher(session=session).fetch("http://a.example/latency.txt")

        assert result.body == b"hello"
        assert result.elapsed >= 0.0
        session.get.assert_called_once_with("http://a.example/latency.txt", timeout=None)

    def test_passes_timeout(self):
        session = fake_session(fake_response(b""))
        HttpFetcher(timeout=2.5, session=session).fetch("http://a.example/x")
        session.get.assert_called_once_with("http://a.example/x", timeout=2.5)

    def test_sets_user_agent(self):
        session = fake_session(fake_response(b""))
        HttpFetcher(user_agent="agent/1", session=session)
        assert session.headers["User-Agent"] == "agent/1"

    def test_transport_error_becomes_fetch_error(self):
        cause = requests.ConnectionError("refused")
        session = fake_session(error=cause)
        with pytest.raises(FetchError) as excinfo:
            HttpFetcher(session=session).fetch("http://a.example/x")
        assert excinfo.value.url == "http://a.example/x"
        assert excinfo.value.cause is cause

    def test_http_error_status_becomes_fetch_error(self):
        session = fake_session(fake_response(b"", status_error=requests.HTTPError("404 Not Found")))
        with pytest.raises(FetchError, match="404"):
            HttpFetcher(session=session).fetch("http://a.example/missing.jpg")

    def test_retries_disabled_by_default(self):
        fetcher = HttpFetcher()
        adapter = fetcher.session.get_adapter("http://a.example/")
        assert adapter.max_retries.total == 0
        fetcher.close()

    def test_retries_mounted_when_enabled(self):
        fetcher = HttpFetcher(retries=3)
        for prefix in ("http://a.example/", "https://a.example/"):
            assert fetcher.session.get_adapter(prefix).max_retries.total == 3
        fetcher.close()
