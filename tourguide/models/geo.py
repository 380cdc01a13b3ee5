"""
Domain models shared by the place finder, route planner and guidance engine
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class Coordinate(BaseModel):
    """WGS-84 position in degrees"""
    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class Place(BaseModel):
    """Nearby point of interest"""
    id: str  # Source feature id, opaque
    name: str
    category: str
    coordinate: Coordinate
    distance_meters: Optional[int] = None


class Maneuver(BaseModel):
    """Turn or instruction point; location is already in (lat, lon) order"""
    type: Optional[str] = None
    modifier: Optional[str] = None
    location: Coordinate


class RouteStep(BaseModel):
    street_name: str = ""
    distance_meters: float = 0.0
    duration_seconds: float = 0.0
    maneuver: Optional[Maneuver] = None


class Route(BaseModel):
    """Single-leg route in direction-of-travel order"""
    mode: str
    steps: List[RouteStep] = []
    geometry: List[Coordinate] = []
    distance_meters: Optional[float] = None
    duration_seconds: Optional[float] = None


class GuidanceState(BaseModel):
    """Next maneuver relative to the latest position; all None when nothing to report"""
    next_step_index: Optional[int] = None
    distance_to_maneuver_meters: Optional[int] = None
    text: Optional[str] = None
    maneuver_location: Optional[Coordinate] = None

    @property
    def is_empty(self) -> bool:
        return self.next_step_index is None
