"""Great-circle distance and closest-server ranking."""

from __future__ import annotations

import heapq
import math
from typing import Iterable, List, Tuple

from .models import GeoPoint, MeasurementServer

EARTH_RADIUS_KM = 6371
DEG_TO_RAD = math.pi / 180


def distance(origin: GeoPoint, destination: GeoPoint) -> float:
    """Haversine distance in kilometres."""

    dlat = (destination.lat - origin.lat) * DEG_TO_RAD
    dlon = (destination.lon - origin.lon) * DEG_TO_RAD
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(origin.lat * DEG_TO_RAD) * math.cos(destination.lat * DEG_TO_RAD) * math.sin(dlon / 2) ** 2
    )
    # clamp rounding noise so antipodal points do not feed a negative sqrt
    a = min(max(a, 0.0), 1.0)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _annotate(origin: GeoPoint, servers: Iterable[MeasurementServer]) -> List[Tuple[float, int, MeasurementServer]]:
    ranked = []
    for index, server in enumerate(servers):
        server.distance_km = distance(origin, server.point)
        ranked.append((server.distance_km, index, server))
    return ranked


def closest_servers(origin: GeoPoint, servers: Iterable[MeasurementServer], limit: int = 5) -> List[MeasurementServer]:
    """Return up to ``limit`` servers nearest to ``origin``, nearest first.

    Keeps a bounded max-heap keyed on (distance, input position), so servers
    sharing a distance are all retained while capacity allows. A candidate
    only displaces the current worst when it is strictly closer.
    """

    if limit <= 0:
        return []
    heap: List[Tuple[float, int, MeasurementServer]] = []
    for dist, index, server in _annotate(origin, servers):
        if len(heap) < limit:
            heapq.heappush(heap, (-dist, -index, server))
        elif dist < -heap[0][0]:
            heapq.heapreplace(heap, (-dist, -index, server))
    return [server for _, _, server in sorted(heap, key=lambda entry: (-entry[0], -entry[1]))]


def sort_by_distance(origin: GeoPoint, servers: Iterable[MeasurementServer]) -> List[MeasurementServer]:
    return [server for _, _, server in sorted(_annotate(origin, servers), key=lambda entry: entry[:2])]
