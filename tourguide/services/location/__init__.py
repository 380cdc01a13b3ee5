from .base import LocationProvider, PositionWatch
from .push_provider import PushLocationProvider
from .replay_provider import ReplayLocationProvider

__all__ = [
    "LocationProvider",
    "PositionWatch",
    "PushLocationProvider",
    "ReplayLocationProvider",
]
