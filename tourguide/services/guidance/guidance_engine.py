"""
Live turn-by-turn guidance.

GuidanceEngine owns the active route and the continuous position watch.
Load a route with load_route(), feed one-shot fixes with update_position(),
and the engine starts watching as soon as it has both a route with steps and
a position. Every watch fix recomputes the next maneuver and publishes it.
"""
import logging
import math
from enum import Enum
from typing import Callable, List, Optional, Sequence

from tourguide.config import settings
from tourguide.exceptions import AcquisitionError
from tourguide.models.geo import Coordinate, GuidanceState, Route, RouteStep
from tourguide.services.geo import distance
from tourguide.services.location import LocationProvider, PositionWatch
from tourguide.services.map.renderer import MapRenderer

logger = logging.getLogger(__name__)

NEXT_TURN_MARKER = "next_turn"

GuidanceListener = Callable[[GuidanceState, Coordinate], None]


class GuidanceStatus(str, Enum):
    IDLE = "idle"        # no route, no watch
    ROUTED = "routed"    # route loaded, not watching
    GUIDING = "guiding"  # watch active


def format_instruction(step: RouteStep) -> str:
    """Human-readable instruction, e.g. "turn left on Main Street"."""
    maneuver = step.maneuver
    action = (maneuver.type if maneuver else None) or "Proceed"
    modifier = f" {maneuver.modifier}" if maneuver and maneuver.modifier else ""
    road = f" on {step.street_name}" if step.street_name else ""
    return f"{action}{modifier}{road}"


def compute_guidance(steps: Sequence[RouteStep], position: Coordinate) -> GuidanceState:
    """
    Select the maneuver nearest to position.

    This is a nearest-maneuver heuristic, not progress tracking along the
    route: on a route that loops back near itself it can pick a maneuver that
    was already passed.
    """
    best_index = -1
    best_distance = math.inf
    for index, step in enumerate(steps):
        if step.maneuver is None:
            continue
        d = distance(position, step.maneuver.location)
        if d < best_distance:
            best_distance = d
            best_index = index

    if best_index < 0:
        return GuidanceState()

    step = steps[best_index]
    return GuidanceState(
        next_step_index=best_index,
        distance_to_maneuver_meters=round(best_distance),
        text=format_instruction(step),
        maneuver_location=step.maneuver.location,
    )


class GuidanceEngine:
    """
    Route guidance state machine: IDLE -> ROUTED -> GUIDING.

    Args:
        location: Source of continuous position fixes.
        renderer: Map collaborator for the follow view and next-turn marker.
        follow_zoom: Zoom used when the view follows the user.
    """

    def __init__(
        self,
        location: LocationProvider,
        renderer: Optional[MapRenderer] = None,
        *,
        follow_zoom: Optional[int] = None,
    ) -> None:
        self._location = location
        self._renderer = renderer
        self._follow_zoom = follow_zoom if follow_zoom is not None else settings.follow_zoom

        self._status = GuidanceStatus.IDLE
        self._route: Optional[Route] = None
        self._position: Optional[Coordinate] = None
        self._guidance: Optional[GuidanceState] = None
        self._watch: Optional[PositionWatch] = None
        self._listeners: List[GuidanceListener] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def status(self) -> GuidanceStatus:
        return self._status

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def position(self) -> Optional[Coordinate]:
        return self._position

    @property
    def guidance(self) -> Optional[GuidanceState]:
        return self._guidance

    @property
    def is_watching(self) -> bool:
        return self._watch is not None and self._watch.active

    def subscribe(self, listener: GuidanceListener) -> None:
        """Call listener(guidance, position) after every processed watch fix"""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def load_route(self, route: Route) -> None:
        """Replace the active route; guidance restarts from scratch"""
        if self._closed:
            return
        self._stop_watch()
        self._route = route
        self._guidance = None
        self._remove_marker()
        self._status = GuidanceStatus.ROUTED
        logger.info("Route loaded (%d steps)", len(route.steps))
        self._maybe_start()

    def update_position(self, position: Coordinate) -> None:
        """Record a one-shot fix; may start guiding"""
        if self._closed:
            return
        self._position = position
        self._maybe_start()

    def clear(self) -> None:
        """Drop the route and stop watching; nothing is emitted afterwards"""
        self._stop_watch()
        had_route = self._route is not None
        self._route = None
        self._guidance = None
        self._remove_marker()
        self._status = GuidanceStatus.IDLE
        if had_route:
            logger.info("Guidance cleared")

    def close(self) -> None:
        """Tear down for good; later routes and fixes are ignored"""
        self.clear()
        self._listeners.clear()
        self._closed = True

    # ------------------------------------------------------------------
    # Watch lifecycle
    # ------------------------------------------------------------------

    def _maybe_start(self) -> None:
        if self._status is not GuidanceStatus.ROUTED:
            return
        if self._route is None or not self._route.steps or self._position is None:
            return
        if self.is_watching:
            return

        self._watch = self._location.watch(self._handle_position, self._handle_error)
        self._status = GuidanceStatus.GUIDING
        self._watch.start()
        logger.info("Guidance started")

    def _stop_watch(self) -> None:
        if self._watch is not None:
            self._watch.stop()
            self._watch = None

    def _handle_position(self, position: Coordinate) -> None:
        if self._status is not GuidanceStatus.GUIDING or self._route is None:
            return

        self._position = position
        if self._renderer is not None:
            self._renderer.set_view(position, self._follow_zoom)

        guidance = compute_guidance(self._route.steps, position)
        self._guidance = guidance
        if guidance.maneuver_location is not None and self._renderer is not None:
            self._renderer.upsert_marker(
                NEXT_TURN_MARKER, guidance.maneuver_location, "Next turn", style="next_turn"
            )
        logger.debug("Guidance at %s: %s", position, guidance.text)

        for listener in list(self._listeners):
            listener(guidance, position)

    def _handle_error(self, error: AcquisitionError) -> None:
        # Guidance stays as it was until the next good fix
        logger.warning("Position update failed: %s", error)

    def _remove_marker(self) -> None:
        if self._renderer is not None:
            self._renderer.remove_marker(NEXT_TURN_MARKER)
