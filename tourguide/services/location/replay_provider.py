"""Location provider that plays back a recorded GPS trace."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from tourguide.exceptions import AcquisitionError
from tourguide.models.geo import Coordinate

from .base import ErrorCallback, LocationProvider, PositionCallback, PositionWatch

logger = logging.getLogger(__name__)


class _ReplayWatch(PositionWatch):
    def __init__(
        self,
        provider: "ReplayLocationProvider",
        on_position: PositionCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        super().__init__(on_position, on_error)
        self._provider = provider
        self._task: Optional[asyncio.Task] = None

    def _open(self) -> None:
        # Needs a running event loop
        self._task = asyncio.get_running_loop().create_task(self._run())

    def _close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        trace = self._provider.trace
        for index, entry in enumerate(trace):
            await asyncio.sleep(self._provider.interval_before(index))
            if not self.active:
                return
            location = entry.get("location")
            if location:
                self._deliver(Coordinate(lat=location["lat"], lon=location["lon"]))
            else:
                self._fail(AcquisitionError(f"No fix in trace entry {index}"))
        logger.info("Trace playback finished (%d entries)", len(trace))


class ReplayLocationProvider(LocationProvider):
    """
    Plays back a trace of the form
    {"trace": [{"elapsed": seconds, "location": {"lat": .., "lon": ..} | null}, ...]}.

    Args:
        trace: List of trace entries.
        speed: Playback speed multiplier.
        max_interval_s: Upper bound on the wait between two entries.
    """

    def __init__(
        self, trace: List[Dict[str, Any]], speed: float = 1.0, max_interval_s: float = 5.0
    ) -> None:
        if speed <= 0:
            raise ValueError("speed must be positive")
        self.trace = trace
        self.speed = speed
        self.max_interval_s = max_interval_s

    @classmethod
    def from_file(cls, path: str, speed: float = 1.0) -> "ReplayLocationProvider":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        trace = data["trace"]
        logger.info("Loaded GPS trace from %s (%d entries)", path, len(trace))
        return cls(trace, speed=speed)

    def interval_before(self, index: int) -> float:
        """Seconds to wait before delivering entry index"""
        if index <= 0:
            return 0.0
        prev_elapsed = self.trace[index - 1].get("elapsed", 0)
        curr_elapsed = self.trace[index].get("elapsed", 0)
        interval = (curr_elapsed - prev_elapsed) / self.speed
        return max(0.0, min(interval, self.max_interval_s))

    async def get_current_position(self, timeout: Optional[float] = None) -> Coordinate:
        for entry in self.trace:
            location = entry.get("location")
            if location:
                return Coordinate(lat=location["lat"], lon=location["lon"])
        raise AcquisitionError("Trace contains no position fixes")

    def watch(
        self, on_position: PositionCallback, on_error: Optional[ErrorCallback] = None
    ) -> PositionWatch:
        return _ReplayWatch(self, on_position, on_error)
