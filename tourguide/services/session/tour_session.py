"""
Tour Guide session - wires place search, routing and live guidance together
and owns the state the UI and map renderer observe.
"""
import logging
import uuid
from typing import List, Optional, Sequence

from tourguide.config import settings
from tourguide.config.place_types import is_valid_category
from tourguide.exceptions import AcquisitionError, TourGuideError
from tourguide.models.geo import Coordinate, GuidanceState, Place, Route
from tourguide.services.guidance import GuidanceEngine, GuidanceStatus
from tourguide.services.location import LocationProvider, PushLocationProvider
from tourguide.services.map import (
    MapRenderer,
    OSRMRoutePlanner,
    OverlayMapRenderer,
    OverpassPlaceFinder,
    PlaceService,
    RoutingService,
)
from tourguide.services.nlp import ChatIntentParser, ChatResponder
from . import transitions
from .transitions import SessionState

logger = logging.getLogger(__name__)

USER_MARKER = "user"
ROUTE_POLYLINE = "route"
PLACE_MARKER_PREFIX = "place:"


class TourSession:
    """
    One user's Tour Guide session.

    Every public operation is best-effort: failures become chat messages and
    leave the previous places, route and guidance in place.

    Args:
        place_finder: Nearby POI search; defaults to Overpass.
        route_planner: Routing service; defaults to OSRM.
        location: Platform location service; defaults to a push provider.
        renderer: Map collaborator; defaults to an in-memory overlay renderer.
        chat_responder: Optional hosted chat model; without it chat input
            falls back to keyword intent matching.
    """

    def __init__(
        self,
        *,
        place_finder: Optional[PlaceService] = None,
        route_planner: Optional[RoutingService] = None,
        location: Optional[LocationProvider] = None,
        renderer: Optional[MapRenderer] = None,
        chat_responder: Optional[ChatResponder] = None,
        intent_parser: Optional[ChatIntentParser] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._place_finder = place_finder or OverpassPlaceFinder()
        self._route_planner = route_planner or OSRMRoutePlanner()
        self._location = location or PushLocationProvider()
        self._renderer = renderer or OverlayMapRenderer()
        self._chat_responder = chat_responder
        self._intent_parser = intent_parser or ChatIntentParser()

        self._engine = GuidanceEngine(self._location, self._renderer)
        self._engine.subscribe(self._on_guidance)

        self._state = transitions.initial_state(settings.default_category, settings.default_mode)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def location(self) -> LocationProvider:
        return self._location

    @property
    def renderer(self) -> MapRenderer:
        return self._renderer

    @property
    def guidance_status(self) -> GuidanceStatus:
        return self._engine.status

    def find_place(self, place_id: str) -> Optional[Place]:
        """First place in the current results with this id"""
        for place in self._state.places:
            if place.id == place_id:
                return place
        return None

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    async def acquire_location(self) -> Optional[Coordinate]:
        """One-shot position fix; failure is recorded, not raised"""
        try:
            coordinate = await self._location.get_current_position(settings.location_timeout_s)
        except AcquisitionError as e:
            logger.warning("Location acquisition failed: %s", e)
            self._state = transitions.location_failed(self._state, str(e))
            return None

        self._state = transitions.location_acquired(self._state, coordinate)
        self._renderer.set_view(coordinate, settings.initial_zoom)
        self._sync_markers(previous_places=self._state.places)
        self._engine.update_position(coordinate)
        return coordinate

    def record_location_error(self, reason: str) -> None:
        """Note a location failure reported outside acquire_location()"""
        logger.warning("Location unavailable: %s", reason)
        self._state = transitions.location_failed(self._state, reason)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def select_category(self, category: str) -> None:
        self._state = transitions.select_category(self._state, category)

    def select_mode(self, mode: str) -> None:
        self._state = transitions.select_mode(self._state, mode)

    # ------------------------------------------------------------------
    # Nearby places
    # ------------------------------------------------------------------

    async def find_nearby(self, category: Optional[str] = None) -> Optional[List[Place]]:
        """Search the selected (or given) category around the current position

        Returns:
            The new result list, or None if nothing was applied.
        """
        category = category or self._state.category
        if not is_valid_category(category):
            raise ValueError(f"Unknown category: {category!r}")

        center = self._state.coordinate
        if center is None:
            self._post("Please share your location first.")
            return None

        self._state, token = transitions.begin_places_request(self._state)
        try:
            places = await self._place_finder.find_nearby(center, category, settings.poi_radius_m)
        except TourGuideError as e:
            logger.warning("Nearby search for %s failed: %s", category, e)
            if transitions.is_current_places(self._state, token):
                self._state = transitions.places_failed(self._state)
            return None

        if not transitions.is_current_places(self._state, token):
            logger.debug("Discarding stale nearby results (request %d)", token)
            return None

        previous = self._state.places
        self._state = transitions.places_loaded(
            self._state, category, places, settings.summary_limit
        )
        self._sync_markers(previous_places=previous)
        return places

    # ------------------------------------------------------------------
    # Route
    # ------------------------------------------------------------------

    async def route_to(self, place: Place) -> Optional[Route]:
        """Plan a route from the current position to place and start guidance"""
        origin = self._state.coordinate
        if origin is None:
            self._post("Share your location to draw a route.")
            return None

        self._state, token = transitions.begin_route_request(self._state)
        try:
            route = await self._route_planner.plan(origin, place.coordinate, self._state.mode)
        except TourGuideError as e:
            logger.warning("Routing to %s failed: %s", place.name, e)
            if transitions.is_current_route(self._state, token):
                self._state = transitions.route_failed(self._state)
            return None

        if not transitions.is_current_route(self._state, token):
            logger.debug("Discarding stale route (request %d)", token)
            return None

        # The engine swaps routes before the next fix is processed
        self._engine.load_route(route)
        self._state = transitions.route_loaded(self._state, route)

        self._renderer.draw_polyline(ROUTE_POLYLINE, route.geometry)
        self._renderer.fit_bounds(route.geometry, settings.fit_padding_px)
        return route

    def clear_route(self) -> None:
        self._engine.clear()
        self._renderer.remove_polyline(ROUTE_POLYLINE)
        self._state = transitions.route_cleared(self._state)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def handle_message(self, text: str) -> Optional[str]:
        """Answer free-text chat input; returns the assistant reply"""
        text = text.strip()
        if not text:
            return None
        self._state = transitions.with_message(self._state, "user", text)

        if self._chat_responder is not None:
            try:
                reply = await self._chat_responder.reply(text, self._state.coordinate)
            except Exception as e:
                logger.warning("Chat responder failed: %s", e)
                reply = "Chat service is unavailable at the moment."
            return self._post(reply)

        intent = self._intent_parser.parse(text)
        coordinate = self._state.coordinate
        if coordinate is not None and intent.wants_nearby:
            await self.find_nearby(intent.category)
            last = self._state.messages[-1]
            return last.content if last.role == "assistant" else None

        near = (
            f" You are near ({coordinate.lat:.4f}, {coordinate.lon:.4f})."
            if coordinate is not None
            else ""
        )
        return self._post(
            f"Chat assistant not configured.{near} "
            "Use the Nearby button or share location for recommendations."
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop guidance and release the position watch; later responses are dropped"""
        self._state = transitions.session_closed(self._state)
        self._engine.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _post(self, content: str) -> str:
        self._state = transitions.with_message(self._state, "assistant", content)
        return content

    def _on_guidance(self, guidance: GuidanceState, position: Coordinate) -> None:
        self._state = transitions.position_updated(self._state, position, guidance)
        self._renderer.upsert_marker(USER_MARKER, position, "You are here", style="user")

    def _sync_markers(self, previous_places: Sequence[Place]) -> None:
        """Redraw the user and place markers; fit the view when there are two or more"""
        points = []
        coordinate = self._state.coordinate
        if coordinate is not None:
            self._renderer.upsert_marker(USER_MARKER, coordinate, "You are here", style="user")
            points.append(coordinate)

        places = self._state.places
        for index, place in enumerate(places):
            self._renderer.upsert_marker(
                f"{PLACE_MARKER_PREFIX}{index}",
                place.coordinate,
                f"{place.name} ({place.category})",
                style="place",
            )
            points.append(place.coordinate)
        for index in range(len(places), len(previous_places)):
            self._renderer.remove_marker(f"{PLACE_MARKER_PREFIX}{index}")

        if len(points) >= 2:
            self._renderer.fit_bounds(points, settings.fit_padding_px)
