"""Exception hierarchy for the Tour Guide backend."""

from typing import Optional


class TourGuideError(Exception):
    """Base exception for all tourguide errors."""


class AcquisitionError(TourGuideError):
    """The platform could not provide a position (unavailable, denied, timed out)."""


class ServiceError(TourGuideError):
    """A POI or routing service returned a non-success status or an unusable body."""

    def __init__(self, service: str, detail: str, status_code: Optional[int] = None):
        self.service = service
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{service} error: {detail}")
