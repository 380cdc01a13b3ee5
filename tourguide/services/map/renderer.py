"""
Map rendering collaborator interface and an in-memory implementation.

The navigation core only pushes overlays to the map; it never reads geometry
back. OverlayMapRenderer keeps the overlays as data so the API can hand them
to the browser map.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from tourguide.models.geo import Coordinate
from tourguide.models.response import MapBounds, MapMarker, MapOverlays, MapView


class MapRenderer(ABC):
    """Map drawing operations used by the Tour Guide"""

    @abstractmethod
    def set_view(self, center: Coordinate, zoom: int) -> None:
        pass

    @abstractmethod
    def upsert_marker(
        self, key: str, coordinate: Coordinate, label: str, style: str = "default"
    ) -> None:
        """Move the marker if it exists, create it otherwise"""
        pass

    @abstractmethod
    def remove_marker(self, key: str) -> None:
        pass

    @abstractmethod
    def draw_polyline(self, key: str, coordinates: Sequence[Coordinate]) -> None:
        """Draw a polyline, replacing any previous one under the same key"""
        pass

    @abstractmethod
    def remove_polyline(self, key: str) -> None:
        pass

    @abstractmethod
    def fit_bounds(self, coordinates: Sequence[Coordinate], padding_px: int = 0) -> None:
        pass


class OverlayMapRenderer(MapRenderer):
    """Record the current overlays instead of drawing them"""

    def __init__(self) -> None:
        self._view: Optional[MapView] = None
        self._markers: Dict[str, MapMarker] = {}
        self._polylines: Dict[str, List[Coordinate]] = {}
        self._bounds: Optional[MapBounds] = None

    def set_view(self, center: Coordinate, zoom: int) -> None:
        self._view = MapView(center=center, zoom=zoom)

    def upsert_marker(
        self, key: str, coordinate: Coordinate, label: str, style: str = "default"
    ) -> None:
        self._markers[key] = MapMarker(coordinate=coordinate, label=label, style=style)

    def remove_marker(self, key: str) -> None:
        self._markers.pop(key, None)

    def draw_polyline(self, key: str, coordinates: Sequence[Coordinate]) -> None:
        self._polylines[key] = list(coordinates)

    def remove_polyline(self, key: str) -> None:
        self._polylines.pop(key, None)

    def fit_bounds(self, coordinates: Sequence[Coordinate], padding_px: int = 0) -> None:
        if not coordinates:
            return
        lats = [c.lat for c in coordinates]
        lons = [c.lon for c in coordinates]
        self._bounds = MapBounds(
            south_west=Coordinate(lat=min(lats), lon=min(lons)),
            north_east=Coordinate(lat=max(lats), lon=max(lons)),
            padding_px=padding_px,
        )

    def snapshot(self) -> MapOverlays:
        return MapOverlays(
            view=self._view,
            markers=dict(self._markers),
            polylines={key: list(line) for key, line in self._polylines.items()},
            bounds=self._bounds,
        )
