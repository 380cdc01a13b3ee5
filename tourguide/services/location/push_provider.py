"""Location provider fed by fixes pushed from the client (browser geolocation)."""

import asyncio
import logging
from typing import List, Optional

from tourguide.exceptions import AcquisitionError
from tourguide.models.geo import Coordinate

from .base import ErrorCallback, LocationProvider, PositionCallback, PositionWatch

logger = logging.getLogger(__name__)


class _PushWatch(PositionWatch):
    def __init__(
        self,
        provider: "PushLocationProvider",
        on_position: PositionCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        super().__init__(on_position, on_error)
        self._provider = provider

    def _open(self) -> None:
        self._provider._subscribe(self)

    def _close(self) -> None:
        self._provider._unsubscribe(self)


class PushLocationProvider(LocationProvider):
    """
    Fan out pushed fixes to active watches, synchronously and in push order.

    get_current_position() answers with the last pushed fix, or waits for the
    next push.
    """

    def __init__(self) -> None:
        self._last_fix: Optional[Coordinate] = None
        self._watches: List[_PushWatch] = []
        self._waiters: List[asyncio.Future] = []

    @property
    def last_fix(self) -> Optional[Coordinate]:
        return self._last_fix

    @property
    def watch_count(self) -> int:
        return len(self._watches)

    def push(self, coordinate: Coordinate) -> None:
        self._last_fix = coordinate
        for waiter in self._take_waiters():
            waiter.set_result(coordinate)
        for watch in list(self._watches):
            watch._deliver(coordinate)

    def push_error(self, message: str) -> None:
        error = AcquisitionError(message)
        for waiter in self._take_waiters():
            waiter.set_exception(error)
        for watch in list(self._watches):
            watch._fail(error)

    async def get_current_position(self, timeout: Optional[float] = None) -> Coordinate:
        if self._last_fix is not None:
            return self._last_fix

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError as e:
            raise AcquisitionError("Timed out waiting for a position") from e
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def watch(
        self, on_position: PositionCallback, on_error: Optional[ErrorCallback] = None
    ) -> PositionWatch:
        return _PushWatch(self, on_position, on_error)

    def _take_waiters(self) -> List[asyncio.Future]:
        waiters = [w for w in self._waiters if not w.done()]
        self._waiters.clear()
        return waiters

    def _subscribe(self, watch: _PushWatch) -> None:
        self._watches.append(watch)
        logger.debug("Watch opened (%d active)", len(self._watches))

    def _unsubscribe(self, watch: _PushWatch) -> None:
        if watch in self._watches:
            self._watches.remove(watch)
        logger.debug("Watch closed (%d active)", len(self._watches))
