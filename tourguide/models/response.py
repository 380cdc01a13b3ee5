"""
Response models for the Tour Guide session API
Includes session state and the map overlays the browser should draw
"""
from typing import Dict, List, Optional
from pydantic import BaseModel

from tourguide.models.geo import Coordinate, GuidanceState, Place, Route


class MapView(BaseModel):
    center: Coordinate
    zoom: int


class MapMarker(BaseModel):
    coordinate: Coordinate
    label: str
    style: str = "default"


class MapBounds(BaseModel):
    """Viewport the map should fit, as south-west / north-east corners"""
    south_west: Coordinate
    north_east: Coordinate
    padding_px: int = 0


class MapOverlays(BaseModel):
    view: Optional[MapView] = None
    markers: Dict[str, MapMarker] = {}
    polylines: Dict[str, List[Coordinate]] = {}
    bounds: Optional[MapBounds] = None


class SessionSnapshot(BaseModel):
    """Externally visible Tour Guide session state"""
    session_id: str
    coordinate: Optional[Coordinate] = None
    location_error: Optional[str] = None
    category: str
    mode: str
    guidance_status: str
    places: List[Place] = []
    route: Optional[Route] = None
    guidance: Optional[GuidanceState] = None
    messages: List[str] = []
    overlays: MapOverlays = MapOverlays()


class CategoryOption(BaseModel):
    key: str
    label: str
