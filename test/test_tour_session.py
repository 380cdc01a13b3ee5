import asyncio

import pytest

from conftest import StubPlaceService, StubRoutingService, make_place, make_route
from tourguide.exceptions import ServiceError
from tourguide.models.geo import Coordinate
from tourguide.services.guidance import GuidanceStatus
from tourguide.services.location import PushLocationProvider, ReplayLocationProvider
from tourguide.services.map import PlaceService
from tourguide.services.nlp import ChatResponder
from tourguide.services.session import TourSession

HOME = Coordinate(lat=40.0, lon=-75.0)
ROUTE = make_route((40.0, -75.0), (40.001, -75.0), (40.002, -75.001))


class GatedPlaceService(PlaceService):
    """Answers each call only once its gate is opened"""

    def __init__(self):
        self.gates = []

    async def find_nearby(self, center, category, radius_meters=1500):
        gate = asyncio.Event()
        entry = {"gate": gate, "places": []}
        self.gates.append(entry)
        await gate.wait()
        return entry["places"]

    def release(self, index, places):
        self.gates[index]["places"] = places
        self.gates[index]["gate"].set()


class StubChatResponder(ChatResponder):
    def __init__(self, reply=None, *, should_raise=False):
        self._reply = reply
        self.should_raise = should_raise
        self.received = []

    async def reply(self, text, coordinate):
        self.received.append((text, coordinate))
        if self.should_raise:
            raise RuntimeError("chat model down")
        return self._reply


def _session(renderer=None, **kwargs):
    provider = PushLocationProvider()
    kwargs.setdefault("place_finder", StubPlaceService())
    kwargs.setdefault("route_planner", StubRoutingService(ROUTE))
    session = TourSession(location=provider, renderer=renderer, **kwargs)
    return session, provider


def _located_session(renderer=None, **kwargs):
    session, provider = _session(renderer, **kwargs)
    provider.push(HOME)
    asyncio.run(session.acquire_location())
    return session, provider


def _last_message(session):
    return session.state.messages[-1].content


def test_new_session_greets_and_uses_defaults():
    session, _ = _session()
    assert session.state.category == "restaurant"
    assert session.state.mode == "walking"
    assert session.state.coordinate is None
    assert session.state.messages[0].role == "assistant"
    assert session.guidance_status is GuidanceStatus.IDLE


def test_acquire_location_sets_view_and_user_marker(renderer):
    session, _ = _located_session(renderer)

    assert session.state.coordinate == HOME
    assert session.state.location_error is None
    assert _last_message(session) == "Location set to (40.0000, -75.0000)."
    overlays = renderer.snapshot()
    assert overlays.view.center == HOME
    assert overlays.view.zoom == 14
    assert overlays.markers["user"].coordinate == HOME


def test_acquire_location_failure_is_recorded():
    session = TourSession(
        place_finder=StubPlaceService(),
        route_planner=StubRoutingService(ROUTE),
        location=ReplayLocationProvider([]),
    )
    result = asyncio.run(session.acquire_location())

    assert result is None
    assert session.state.coordinate is None
    assert session.state.location_error == "Trace contains no position fixes"


def test_record_location_error():
    session, _ = _session()
    session.record_location_error("User denied Geolocation")
    assert session.state.location_error == "User denied Geolocation"


def test_preferences_are_validated():
    session, _ = _session()
    session.select_category("museum")
    session.select_mode("cycling")
    assert session.state.category == "museum"
    assert session.state.mode == "cycling"

    with pytest.raises(ValueError):
        session.select_category("nightclub")
    with pytest.raises(ValueError):
        session.select_mode("teleport")
    assert session.state.category == "museum"


def test_find_nearby_requires_location():
    finder = StubPlaceService([make_place("1", "Diner", 40.001, -75.0)])
    session, _ = _session(place_finder=finder)

    result = asyncio.run(session.find_nearby())

    assert result is None
    assert finder.received == []
    assert _last_message(session) == "Please share your location first."


def test_find_nearby_replaces_results_and_markers(renderer):
    finder = StubPlaceService([
        make_place("1", "Diner", 40.00045, -75.0, 50),
        make_place("2", "Bistro", 40.0018, -75.0, 200),
    ])
    session, _ = _located_session(renderer, place_finder=finder)

    asyncio.run(session.find_nearby())

    assert finder.received == [(HOME, "restaurant", 1500)]
    assert [p.name for p in session.state.places] == ["Diner", "Bistro"]
    assert _last_message(session) == (
        "Nearby restaurant: Diner (restaurant, 50m), Bistro (restaurant, 200m)"
    )
    markers = renderer.snapshot().markers
    assert markers["place:0"].label == "Diner (restaurant)"
    assert "place:1" in markers
    assert renderer.snapshot().bounds is not None

    finder.places = [make_place("3", "Cafe Uno", 40.001, -75.0, 111)]
    asyncio.run(session.find_nearby())

    assert [p.id for p in session.state.places] == ["3"]
    markers = renderer.snapshot().markers
    assert markers["place:0"].label == "Cafe Uno (restaurant)"
    assert "place:1" not in markers


def test_summary_is_limited_to_five_places():
    finder = StubPlaceService(
        [make_place(str(i), f"Place {i}", 40.0 + i * 0.001, -75.0, i * 100) for i in range(7)]
    )
    session, _ = _located_session(place_finder=finder)

    asyncio.run(session.find_nearby())

    assert len(session.state.places) == 7
    summary = _last_message(session)
    assert "Place 4" in summary
    assert "Place 5" not in summary


def test_empty_results_post_humanized_category():
    session, _ = _located_session(place_finder=StubPlaceService([]))

    asyncio.run(session.find_nearby("post_office"))

    assert session.state.places == ()
    assert _last_message(session) == "No nearby post office found."


def test_failed_search_keeps_previous_places(service_error):
    finder = StubPlaceService([make_place("1", "Diner", 40.001, -75.0)])
    session, _ = _located_session(place_finder=finder)
    asyncio.run(session.find_nearby())

    finder.error = service_error
    result = asyncio.run(session.find_nearby())

    assert result is None
    assert [p.id for p in session.state.places] == ["1"]
    assert _last_message(session) == "Could not load nearby places right now."


def test_find_nearby_rejects_unknown_category():
    session, _ = _located_session()
    with pytest.raises(ValueError):
        asyncio.run(session.find_nearby("casino"))


def test_stale_search_results_are_discarded():
    finder = GatedPlaceService()
    session, _ = _located_session(place_finder=finder)

    async def scenario():
        first = asyncio.ensure_future(session.find_nearby("restaurant"))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(session.find_nearby("cafe"))
        await asyncio.sleep(0)

        finder.release(1, [make_place("new", "Fresh", 40.001, -75.0)])
        await second
        finder.release(0, [make_place("old", "Stale", 40.002, -75.0)])
        return await first

    stale_result = asyncio.run(scenario())

    assert stale_result is None
    assert [p.id for p in session.state.places] == ["new"]
    assert "Stale" not in _last_message(session)


def test_route_to_draws_route_and_starts_guidance(renderer):
    planner = StubRoutingService(ROUTE)
    session, provider = _located_session(renderer, route_planner=planner)
    session.select_mode("cycling")
    place = make_place("1", "Diner", 40.002, -75.001)

    route = asyncio.run(session.route_to(place))

    assert route is ROUTE
    assert planner.received == [(HOME, place.coordinate, "cycling")]
    assert session.state.route == ROUTE
    assert session.guidance_status is GuidanceStatus.GUIDING
    assert renderer.snapshot().polylines["route"] == ROUTE.geometry

    provider.push(Coordinate(lat=40.0011, lon=-75.0))

    assert session.state.coordinate == Coordinate(lat=40.0011, lon=-75.0)
    assert session.state.guidance.next_step_index == 1
    assert renderer.snapshot().markers["user"].coordinate == Coordinate(lat=40.0011, lon=-75.0)


def test_route_to_requires_location():
    planner = StubRoutingService(ROUTE)
    session, _ = _session(route_planner=planner)

    result = asyncio.run(session.route_to(make_place("1", "Diner", 40.001, -75.0)))

    assert result is None
    assert planner.received == []
    assert _last_message(session) == "Share your location to draw a route."


def test_failed_route_keeps_previous_route():
    planner = StubRoutingService(ROUTE)
    session, _ = _located_session(route_planner=planner)
    asyncio.run(session.route_to(make_place("1", "Diner", 40.002, -75.001)))

    planner.error = ServiceError("OSRM", "No route found")
    result = asyncio.run(session.route_to(make_place("2", "Bistro", 41.0, -75.0)))

    assert result is None
    assert session.state.route == ROUTE
    assert session.guidance_status is GuidanceStatus.GUIDING
    assert _last_message(session) == "Could not draw route on the map."


def test_clear_route_stops_guidance(renderer):
    session, provider = _located_session(renderer)
    asyncio.run(session.route_to(make_place("1", "Diner", 40.002, -75.001)))
    provider.push(Coordinate(lat=40.001, lon=-75.0))

    session.clear_route()
    provider.push(Coordinate(lat=40.002, lon=-75.0))

    assert session.state.route is None
    assert session.state.guidance is None
    assert session.guidance_status is GuidanceStatus.IDLE
    assert provider.watch_count == 0
    assert "route" not in renderer.snapshot().polylines


def test_handle_message_searches_matching_category():
    finder = StubPlaceService([make_place("1", "Bean There", 40.001, -75.0, 111)])
    session, _ = _located_session(place_finder=finder)

    reply = asyncio.run(session.handle_message("Where can I get   COFFEE?"))

    assert finder.received[-1][1] == "cafe"
    assert reply == "Nearby cafe: Bean There (restaurant, 111m)"
    assert session.state.messages[-2].role == "user"


def test_handle_message_without_location_explains_fallback():
    finder = StubPlaceService()
    session, _ = _session(place_finder=finder)

    reply = asyncio.run(session.handle_message("any museum around?"))

    assert finder.received == []
    assert reply == (
        "Chat assistant not configured. "
        "Use the Nearby button or share location for recommendations."
    )


def test_handle_message_without_intent_mentions_position():
    session, _ = _located_session()
    reply = asyncio.run(session.handle_message("hello there"))
    assert "You are near (40.0000, -75.0000)." in reply


def test_handle_message_ignores_blank_input():
    session, _ = _session()
    count = len(session.state.messages)
    assert asyncio.run(session.handle_message("   ")) is None
    assert len(session.state.messages) == count


def test_chat_responder_answers_when_configured():
    responder = StubChatResponder("Try the harbour walk.")
    session, _ = _located_session(chat_responder=responder)

    reply = asyncio.run(session.handle_message("what should I see?"))

    assert reply == "Try the harbour walk."
    assert responder.received == [("what should I see?", HOME)]


def test_chat_responder_failure_is_reported():
    session, _ = _located_session(chat_responder=StubChatResponder(should_raise=True))
    reply = asyncio.run(session.handle_message("food please"))
    assert reply == "Chat service is unavailable at the moment."


def test_find_place_by_id():
    finder = StubPlaceService([make_place("42", "Diner", 40.001, -75.0)])
    session, _ = _located_session(place_finder=finder)
    asyncio.run(session.find_nearby())

    assert session.find_place("42").name == "Diner"
    assert session.find_place("missing") is None


def test_route_in_flight_is_dropped_after_clear():
    gate = {}

    class GatedRoutingService(StubRoutingService):
        async def plan(self, origin, destination, mode):
            gate["event"] = asyncio.Event()
            await gate["event"].wait()
            return ROUTE

    session, provider = _located_session(route_planner=GatedRoutingService())

    async def scenario():
        pending = asyncio.ensure_future(
            session.route_to(make_place("1", "Diner", 40.002, -75.001))
        )
        await asyncio.sleep(0)
        session.clear_route()
        gate["event"].set()
        return await pending

    assert asyncio.run(scenario()) is None
    assert session.state.route is None
    assert session.guidance_status is GuidanceStatus.IDLE
    assert provider.watch_count == 0


class QueuedRoutingService(StubRoutingService):
    """Holds every plan() call until release(index) is called"""

    def __init__(self):
        super().__init__()
        self.pending = []

    async def plan(self, origin, destination, mode):
        entry = {"gate": asyncio.Event(), "route": None}
        self.pending.append(entry)
        await entry["gate"].wait()
        return entry["route"]

    def release(self, index, route):
        self.pending[index]["route"] = route
        self.pending[index]["gate"].set()


def test_route_finishing_after_close_opens_no_watch():
    planner = QueuedRoutingService()
    session, provider = _located_session(route_planner=planner)

    async def scenario():
        pending = asyncio.ensure_future(
            session.route_to(make_place("1", "Diner", 40.002, -75.001))
        )
        await asyncio.sleep(0)
        session.close()
        planner.release(0, ROUTE)
        return await pending

    assert asyncio.run(scenario()) is None
    assert session.state.route is None
    assert session.guidance_status is GuidanceStatus.IDLE
    assert provider.watch_count == 0


def test_search_finishing_after_close_is_dropped():
    finder = GatedPlaceService()
    session, _ = _located_session(place_finder=finder)

    async def scenario():
        pending = asyncio.ensure_future(session.find_nearby())
        await asyncio.sleep(0)
        session.close()
        finder.release(0, [make_place("1", "Diner", 40.001, -75.0)])
        return await pending

    assert asyncio.run(scenario()) is None
    assert session.state.places == ()


def test_older_route_resolving_last_is_discarded(renderer):
    planner = QueuedRoutingService()
    session, provider = _located_session(renderer, route_planner=planner)
    newer = make_route((40.0, -75.0), (40.003, -75.0))

    async def scenario():
        first = asyncio.ensure_future(session.route_to(make_place("1", "Old", 40.002, -75.001)))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(session.route_to(make_place("2", "New", 40.003, -75.0)))
        await asyncio.sleep(0)

        planner.release(1, newer)
        await second
        planner.release(0, ROUTE)
        return await first

    assert asyncio.run(scenario()) is None
    assert session.state.route == newer
    assert renderer.snapshot().polylines["route"] == newer.geometry
    assert provider.watch_count == 1
