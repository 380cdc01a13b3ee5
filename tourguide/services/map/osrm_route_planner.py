import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from tourguide.config import settings
from tourguide.config.place_types import ROUTING_MODES, is_valid_mode
from tourguide.exceptions import ServiceError
from tourguide.models.geo import Coordinate, Maneuver, Route, RouteStep
from tourguide.services.map.map_service import RoutingService

logger = logging.getLogger(__name__)

SERVICE_NAME = "OSRM"


class OSRMRoutePlanner(RoutingService):
    """Turn-by-turn routing against an OSRM HTTP server"""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_s
        self._client = client

    async def plan(
        self, origin: Coordinate, destination: Coordinate, mode: str
    ) -> Route:
        """Request a full-geometry route with steps and convert the first alternative

        Only the first leg is used; multi-leg responses are truncated.
        """
        if not is_valid_mode(mode):
            raise ValueError(f"Unsupported routing mode {mode!r}, expected one of {ROUTING_MODES}")

        url = self._build_url(origin, destination, mode)
        logger.debug("OSRM request %s", url)
        data = await self._fetch(url)

        routes = data.get("routes")
        if not isinstance(routes, list) or not routes:
            raise ServiceError(SERVICE_NAME, "No route found")

        route = self._convert_route(routes[0], mode)
        logger.info(
            "Route planned (%s): %d steps, %d geometry points",
            mode,
            len(route.steps),
            len(route.geometry),
        )
        return route

    def _build_url(self, origin: Coordinate, destination: Coordinate, mode: str) -> str:
        # OSRM takes lon,lat pairs
        return (
            f"{self.base_url}/route/v1/{mode}/"
            f"{origin.lon},{origin.lat};{destination.lon},{destination.lat}"
        )

    async def _fetch(self, url: str) -> Dict[str, Any]:
        params = {"overview": "full", "geometries": "geojson", "steps": "true"}
        headers = {"Accept": "application/json", "User-Agent": settings.user_agent}
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, params=params, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        url, params=params, headers=headers, timeout=self.timeout
                    )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ServiceError(
                SERVICE_NAME,
                f"status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ServiceError(SERVICE_NAME, f"request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ServiceError(SERVICE_NAME, "invalid JSON body") from e

        if not isinstance(data, dict):
            raise ServiceError(SERVICE_NAME, "response must be a JSON object")
        return data

    def _convert_route(self, raw: Dict[str, Any], mode: str) -> Route:
        try:
            geometry = [
                _lon_lat_to_coordinate(pair)
                for pair in (raw.get("geometry") or {}).get("coordinates", [])
            ]
            legs = raw.get("legs") or []
            raw_steps = (legs[0].get("steps") or []) if legs else []
            steps = [self._convert_step(step) for step in raw_steps]
            return Route(
                mode=mode,
                steps=steps,
                geometry=geometry,
                distance_meters=raw.get("distance"),
                duration_seconds=raw.get("duration"),
            )
        except (AttributeError, IndexError, TypeError, ValueError, ValidationError) as e:
            raise ServiceError(SERVICE_NAME, f"malformed route: {e}") from e

    @staticmethod
    def _convert_step(raw: Dict[str, Any]) -> RouteStep:
        maneuver = None
        raw_maneuver = raw.get("maneuver")
        if raw_maneuver and raw_maneuver.get("location"):
            maneuver = Maneuver(
                type=raw_maneuver.get("type"),
                modifier=raw_maneuver.get("modifier"),
                location=_lon_lat_to_coordinate(raw_maneuver["location"]),
            )

        return RouteStep(
            street_name=raw.get("name") or "",
            distance_meters=raw.get("distance") or 0.0,
            duration_seconds=raw.get("duration") or 0.0,
            maneuver=maneuver,
        )


def _lon_lat_to_coordinate(pair: List[float]) -> Coordinate:
    lon, lat = pair[0], pair[1]
    return Coordinate(lat=lat, lon=lon)
