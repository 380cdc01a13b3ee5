from abc import ABC, abstractmethod
from typing import List

from tourguide.models.geo import Coordinate, Place, Route


class PlaceService(ABC):
    """Nearby point-of-interest search interface"""

    @abstractmethod
    async def find_nearby(
        self, center: Coordinate, category: str, radius_meters: int = 1500
    ) -> List[Place]:
        """Search places of a category around center, nearest first"""
        pass


class RoutingService(ABC):
    """Turn-by-turn routing interface"""

    @abstractmethod
    async def plan(
        self, origin: Coordinate, destination: Coordinate, mode: str
    ) -> Route:
        """Get a single route with geometry and maneuver steps

        Args:
            origin: Start coordinate
            destination: End coordinate
            mode: One of "walking", "driving", "cycling"
        """
        pass
