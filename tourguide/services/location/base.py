"""Platform location service interface and the cancellable watch handle."""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from tourguide.exceptions import AcquisitionError
from tourguide.models.geo import Coordinate

logger = logging.getLogger(__name__)

PositionCallback = Callable[[Coordinate], None]
ErrorCallback = Callable[[AcquisitionError], None]


class PositionWatch(ABC):
    """
    Handle for a continuous position subscription.

    start() and stop() are idempotent. Once stop() has returned no callback
    fires again, even for fixes the provider had already queued.
    """

    def __init__(
        self, on_position: PositionCallback, on_error: Optional[ErrorCallback] = None
    ) -> None:
        self._on_position = on_position
        self._on_error = on_error
        self._started = False
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._active = True
        self._open()

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        self._close()

    def _deliver(self, coordinate: Coordinate) -> None:
        if self._active:
            self._on_position(coordinate)

    def _fail(self, error: AcquisitionError) -> None:
        if not self._active:
            return
        if self._on_error is not None:
            self._on_error(error)
        else:
            logger.warning("Position watch error: %s", error)

    @abstractmethod
    def _open(self) -> None:
        """Begin delivering fixes"""

    @abstractmethod
    def _close(self) -> None:
        """Release the platform resource behind the watch"""


class LocationProvider(ABC):
    """One-shot and continuous position source"""

    @abstractmethod
    async def get_current_position(self, timeout: Optional[float] = None) -> Coordinate:
        """Return a single fix or raise AcquisitionError"""

    @abstractmethod
    def watch(
        self, on_position: PositionCallback, on_error: Optional[ErrorCallback] = None
    ) -> PositionWatch:
        """Create an unstarted watch; call start() on the handle to subscribe"""
