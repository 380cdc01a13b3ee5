import logging
import math
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from tourguide.config import settings
from tourguide.exceptions import ServiceError
from tourguide.models.geo import Coordinate, Place
from tourguide.services.geo import distance
from tourguide.services.map.map_service import PlaceService

logger = logging.getLogger(__name__)

SERVICE_NAME = "Overpass"


class OverpassPlaceFinder(PlaceService):
    """Nearby place search against the OpenStreetMap Overpass API"""

    def __init__(
        self,
        *,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.endpoint = endpoint or settings.overpass_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_s
        self._client = client

    async def find_nearby(
        self, center: Coordinate, category: str, radius_meters: int = 1500
    ) -> List[Place]:
        """Search amenities of a category plus tourism nodes within radius_meters of center"""
        query = self._build_query(center, category, radius_meters)
        logger.debug("Overpass query for %s around %s r=%sm", category, center, radius_meters)

        data = await self._fetch(query)

        elements = data.get("elements")
        if not isinstance(elements, list):
            raise ServiceError(SERVICE_NAME, "response has no elements list")

        places = self._convert_elements(elements, center, category)
        # Stable sort keeps service order for equal distances
        places.sort(key=lambda place: place.distance_meters)
        logger.info("Found %d %s places near %s", len(places), category, center)
        return places

    @staticmethod
    def _build_query(center: Coordinate, category: str, radius_meters: int) -> str:
        around = f"around:{radius_meters},{center.lat},{center.lon}"
        category = category.replace("\\", "\\\\").replace('"', '\\"')
        return (
            "[out:json];(\n"
            f'  node["amenity"="{category}"]({around});\n'
            f'  way["amenity"="{category}"]({around});\n'
            f'  node["tourism"]({around});\n'
            ");out center;"
        )

    async def _fetch(self, query: str) -> Dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._get(self._client, query)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._get(client, query)
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

    async def _get(self, client: httpx.AsyncClient, query: str) -> httpx.Response:
        return await client.get(
            self.endpoint,
            params={"data": query},
            headers={"Accept": "application/json", "User-Agent": settings.user_agent},
            timeout=self.timeout,
        )

    def _convert_elements(
        self, elements: List[Any], center: Coordinate, category: str
    ) -> List[Place]:
        """Convert raw Overpass elements, dropping any without a usable coordinate"""
        places = []
        for element in elements:
            if not isinstance(element, dict):
                continue

            coordinate = self._resolve_coordinate(element)
            if coordinate is None:
                continue

            tags = element.get("tags")
            if not isinstance(tags, dict):
                tags = {}
            name = tags.get("name") or "Unknown"
            resolved_category = tags.get("amenity") or tags.get("tourism") or category

            try:
                place = Place(
                    id=str(element.get("id")),
                    name=name,
                    category=resolved_category,
                    coordinate=coordinate,
                    distance_meters=round(distance(center, coordinate)),
                )
            except ValidationError as e:
                raise ServiceError(
                    SERVICE_NAME, f"malformed element {element.get('id')}: {e}"
                ) from e
            places.append(place)
        return places

    @staticmethod
    def _resolve_coordinate(element: Dict[str, Any]) -> Optional[Coordinate]:
        """Own point for nodes, reported centroid for ways; None if unusable"""
        centroid = element.get("center")
        if not isinstance(centroid, dict):
            centroid = {}
        lat = element.get("lat")
        lon = element.get("lon")
        if not _is_number(lat):
            lat = centroid.get("lat")
        if not _is_number(lon):
            lon = centroid.get("lon")

        if not (_is_number(lat) and _is_number(lon)):
            return None
        # Zero doubles as "missing" in the source data
        if lat == 0 or lon == 0:
            return None
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return None
        return Coordinate(lat=lat, lon=lon)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
