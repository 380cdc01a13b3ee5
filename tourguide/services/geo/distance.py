"""Great-circle distance between coordinates."""

import math

from tourguide.models.geo import Coordinate


EARTH_RADIUS_M = 6_371_000.0


def distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in metres between two WGS-84 coordinates.

    Inputs are not range-checked; |lat| > 90 gives an unspecified result.
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))
