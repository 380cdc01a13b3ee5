from .chat import ChatMessage
from .geo import Coordinate, GuidanceState, Maneuver, Place, Route, RouteStep

__all__ = [
    "ChatMessage",
    "Coordinate",
    "GuidanceState",
    "Maneuver",
    "Place",
    "Route",
    "RouteStep",
]
