# Map service package
from .map_service import PlaceService, RoutingService
from .osrm_route_planner import OSRMRoutePlanner
from .overpass_place_finder import OverpassPlaceFinder
from .renderer import MapRenderer, OverlayMapRenderer

__all__ = [
    "PlaceService",
    "RoutingService",
    "OSRMRoutePlanner",
    "OverpassPlaceFinder",
    "MapRenderer",
    "OverlayMapRenderer",
]
