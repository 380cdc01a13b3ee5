from .distance import EARTH_RADIUS_M, distance

__all__ = ["EARTH_RADIUS_M", "distance"]
