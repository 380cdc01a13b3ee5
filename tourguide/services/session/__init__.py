# Session package
from .transitions import SessionState
from .tour_session import TourSession

__all__ = ["SessionState", "TourSession"]
