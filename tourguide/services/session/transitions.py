"""Session state and the pure transition functions that advance it."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from tourguide.config.place_types import (
    humanize_category,
    is_valid_category,
    is_valid_mode,
)
from tourguide.models.chat import ChatMessage
from tourguide.models.geo import Coordinate, GuidanceState, Place, Route

MESSAGE_HISTORY_LIMIT = 200


@dataclass(frozen=True)
class SessionState:
    """Everything the UI and map renderer may observe about a Tour Guide session."""

    category: str
    mode: str
    coordinate: Optional[Coordinate] = None
    location_error: Optional[str] = None
    places: Tuple[Place, ...] = ()
    route: Optional[Route] = None
    guidance: Optional[GuidanceState] = None
    messages: Tuple[ChatMessage, ...] = ()
    # Request generations; a response carrying an older token is stale
    places_generation: int = 0
    route_generation: int = 0
    closed: bool = False


def initial_state(category: str, mode: str) -> SessionState:
    state = SessionState(category=category, mode=mode)
    return with_message(
        state,
        "assistant",
        "Hi! I can use your location to suggest nearby spots and guide you there. "
        "Share your location to begin.",
    )


def with_message(
    state: SessionState, role: str, content: str, limit: int = MESSAGE_HISTORY_LIMIT
) -> SessionState:
    """Append a chat message, keeping only the newest limit messages."""
    messages = state.messages + (ChatMessage(role=role, content=content),)
    return replace(state, messages=messages[-limit:])


# ----------------------------------------------------------------------
# Location
# ----------------------------------------------------------------------


def location_acquired(state: SessionState, coordinate: Coordinate) -> SessionState:
    state = replace(state, coordinate=coordinate, location_error=None)
    return with_message(
        state,
        "assistant",
        f"Location set to ({coordinate.lat:.4f}, {coordinate.lon:.4f}).",
    )


def location_failed(state: SessionState, reason: str) -> SessionState:
    return replace(state, location_error=reason or "Unable to get location")


def position_updated(
    state: SessionState, coordinate: Coordinate, guidance: GuidanceState
) -> SessionState:
    return replace(state, coordinate=coordinate, guidance=guidance)


# ----------------------------------------------------------------------
# Preferences
# ----------------------------------------------------------------------


def select_category(state: SessionState, category: str) -> SessionState:
    if not is_valid_category(category):
        raise ValueError(f"Unknown category: {category!r}")
    return replace(state, category=category)


def select_mode(state: SessionState, mode: str) -> SessionState:
    if not is_valid_mode(mode):
        raise ValueError(f"Unknown routing mode: {mode!r}")
    return replace(state, mode=mode)


# ----------------------------------------------------------------------
# Nearby places
# ----------------------------------------------------------------------


def begin_places_request(state: SessionState) -> Tuple[SessionState, int]:
    token = state.places_generation + 1
    return replace(state, places_generation=token), token


def is_current_places(state: SessionState, token: int) -> bool:
    return not state.closed and token == state.places_generation


def summarize_places(places: Sequence[Place], limit: int) -> str:
    parts = []
    for place in places[:limit]:
        dist = place.distance_meters if place.distance_meters is not None else "?"
        parts.append(f"{place.name} ({place.category}, {dist}m)")
    return ", ".join(parts)


def places_loaded(
    state: SessionState, category: str, places: Sequence[Place], summary_limit: int
) -> SessionState:
    """Replace the result set wholesale and post a short summary."""
    label = humanize_category(category)
    summary = summarize_places(places, summary_limit)
    state = replace(state, places=tuple(places))
    if summary:
        return with_message(state, "assistant", f"Nearby {label}: {summary}")
    return with_message(state, "assistant", f"No nearby {label} found.")


def places_failed(state: SessionState) -> SessionState:
    return with_message(state, "assistant", "Could not load nearby places right now.")


# ----------------------------------------------------------------------
# Route
# ----------------------------------------------------------------------


def begin_route_request(state: SessionState) -> Tuple[SessionState, int]:
    token = state.route_generation + 1
    return replace(state, route_generation=token), token


def is_current_route(state: SessionState, token: int) -> bool:
    return not state.closed and token == state.route_generation


def route_loaded(state: SessionState, route: Route) -> SessionState:
    return replace(state, route=route, guidance=None)


def route_failed(state: SessionState) -> SessionState:
    return with_message(state, "assistant", "Could not draw route on the map.")


def route_cleared(state: SessionState) -> SessionState:
    # Bumping the generation also drops a route request still in flight
    return replace(
        state,
        route=None,
        guidance=None,
        route_generation=state.route_generation + 1,
    )


def session_closed(state: SessionState) -> SessionState:
    # Responses still in flight must not touch a closed session
    return replace(
        state,
        closed=True,
        places_generation=state.places_generation + 1,
        route_generation=state.route_generation + 1,
    )
