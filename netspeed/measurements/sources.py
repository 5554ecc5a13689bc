"""speedtest.net configuration and server list decoding."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List
from urllib.parse import SplitResult, urlsplit

from ..errors import ConfigurationFetchError, FetchError, InvalidServerURLError, MalformedResponseError
from .fetcher import Fetcher
from .models import ClientLocation, GeoPoint, MeasurementServer

LOGGER = logging.getLogger(__name__)


def split_server_url(server_url: str) -> SplitResult:
    """Split a server URL, rejecting anything without a scheme, host and valid port."""

    try:
        parts = urlsplit(server_url)
        port = parts.port
    except ValueError as exc:
        raise InvalidServerURLError(f"Cannot parse server URL {server_url!r}: {exc}") from exc
    if not parts.scheme or not parts.hostname:
        raise InvalidServerURLError(f"Server URL {server_url!r} has no scheme or host")
    LOGGER.debug("Server URL %s -> host %s port %s", server_url, parts.hostname, port)
    return parts


def _parse_xml(payload: bytes, what: str) -> ET.Element:
    try:
        return ET.fromstring(payload)
    except ET.ParseError as exc:
        raise MalformedResponseError(f"Undecodable {what} XML: {exc}") from exc


def _coordinate(element: ET.Element, attribute: str, what: str) -> float:
    raw = element.get(attribute)
    if raw is None:
        raise MalformedResponseError(f"{what} element is missing '{attribute}'")
    try:
        return float(raw)
    except ValueError as exc:
        raise MalformedResponseError(f"{what} has non-numeric {attribute}={raw!r}") from exc


def parse_client(payload: bytes) -> ClientLocation:
    """Decode the first ``client`` record of a speedtest-config document."""

    root = _parse_xml(payload, "configuration")
    client = root.find(".//client")
    if client is None:
        raise MalformedResponseError("Configuration contains no client record")
    for attribute in ("ip", "isp"):
        if client.get(attribute) is None:
            raise MalformedResponseError(f"client element is missing '{attribute}'")
    return ClientLocation(
        point=GeoPoint(_coordinate(client, "lat", "client"), _coordinate(client, "lon", "client")),
        ip=client.get("ip", ""),
        isp=client.get("isp", ""),
    )


def parse_servers(payload: bytes) -> List[MeasurementServer]:
    """Decode every ``server`` element across all server groups, in document order."""

    root = _parse_xml(payload, "server list")
    servers = []
    for element in root.iter("server"):
        url = element.get("url")
        if not url:
            raise MalformedResponseError("server element is missing 'url'")
        servers.append(
            MeasurementServer(
                server_id=element.get("id", ""),
                name=element.get("name", ""),
                sponsor=element.get("sponsor", ""),
                country=element.get("country", ""),
                url=url,
                host=element.get("host", ""),
                point=GeoPoint(
                    _coordinate(element, "lat", "server"),
                    _coordinate(element, "lon", "server"),
                ),
            )
        )
    return servers


def fetch_client_location(fetcher: Fetcher, url: str) -> ClientLocation:
    try:
        result = fetcher.fetch(url)
    except FetchError as exc:
        raise ConfigurationFetchError(f"Unable to retrieve configuration: {exc}") from exc
    client = parse_client(result.body)
    LOGGER.info("Client %s (%s) at %.4f,%.4f", client.ip, client.isp, client.point.lat, client.point.lon)
    return client


def fetch_servers(fetcher: Fetcher, url: str) -> List[MeasurementServer]:
    try:
        result = fetcher.fetch(url)
    except FetchError as exc:
        raise ConfigurationFetchError(f"Unable to retrieve server list: {exc}") from exc
    servers = parse_servers(result.body)
    LOGGER.info("Server list contains %d servers", len(servers))
    return servers
