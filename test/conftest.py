import json

import httpx
import pytest

from tourguide.exceptions import ServiceError
from tourguide.models.geo import Coordinate, Maneuver, Place, Route, RouteStep
from tourguide.services.map import OverlayMapRenderer, PlaceService, RoutingService


def mock_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by handler(request)"""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_handler(payload, status_code: int = 200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"),
                              headers={"Content-Type": "application/json"})

    return handler


class StubPlaceService(PlaceService):
    def __init__(self, places=None, *, error: Exception = None):
        self.places = places or []
        self.error = error
        self.received = []

    async def find_nearby(self, center, category, radius_meters=1500):
        self.received.append((center, category, radius_meters))
        if self.error is not None:
            raise self.error
        return list(self.places)


class StubRoutingService(RoutingService):
    def __init__(self, route=None, *, error: Exception = None):
        self.route = route
        self.error = error
        self.received = []

    async def plan(self, origin, destination, mode):
        self.received.append((origin, destination, mode))
        if self.error is not None:
            raise self.error
        return self.route


def make_place(place_id: str, name: str, lat: float, lon: float, dist: int = 100) -> Place:
    return Place(
        id=place_id,
        name=name,
        category="restaurant",
        coordinate=Coordinate(lat=lat, lon=lon),
        distance_meters=dist,
    )


def make_route(*maneuver_points, mode: str = "walking") -> Route:
    steps = [
        RouteStep(
            street_name=f"Street {i}",
            distance_meters=100.0,
            duration_seconds=60.0,
            maneuver=Maneuver(type="turn", modifier="left", location=Coordinate(lat=lat, lon=lon)),
        )
        for i, (lat, lon) in enumerate(maneuver_points)
    ]
    geometry = [Coordinate(lat=lat, lon=lon) for lat, lon in maneuver_points]
    return Route(mode=mode, steps=steps, geometry=geometry)


@pytest.fixture
def renderer():
    return OverlayMapRenderer()


@pytest.fixture
def service_error():
    return ServiceError("Overpass", "status 503", status_code=503)
