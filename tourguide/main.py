import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from tourguide.config import settings
from tourguide.config.place_types import CATEGORY_LABELS
from tourguide.models.geo import Coordinate
from tourguide.models.request import (
    ChatRequest,
    NearbySearchRequest,
    PositionReport,
    PreferencesRequest,
    RouteRequest,
)
from tourguide.models.response import CategoryOption, MapOverlays, SessionSnapshot
from tourguide.services.location import PushLocationProvider
from tourguide.services.map import OverlayMapRenderer
from tourguide.services.session import TourSession

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

# Active sessions by id; each owns at most one live position watch
sessions: Dict[str, TourSession] = {}
# Monotonic time of the last request per session
last_seen: Dict[str, float] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    for session in list(sessions.values()):
        session.close()
    sessions.clear()
    last_seen.clear()
    logger.info("All sessions closed")


app = FastAPI(
    title="Tour Guide API",
    description="Nearby places, routing and live turn-by-turn guidance",
    version=settings.api_version,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def create_session() -> TourSession:
    """Build a session whose location is fed by the browser"""
    return TourSession(location=PushLocationProvider(), renderer=OverlayMapRenderer())


def _get_session(session_id: str) -> TourSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    last_seen[session_id] = time.monotonic()
    return session


def _discard_session(session_id: str) -> None:
    sessions.pop(session_id).close()
    last_seen.pop(session_id, None)


def sweep_idle_sessions() -> int:
    """Close sessions idle for at least the configured timeout"""
    now = time.monotonic()
    idle = [
        session_id
        for session_id, seen in last_seen.items()
        if now - seen >= settings.session_idle_timeout_s
    ]
    for session_id in idle:
        _discard_session(session_id)
    if idle:
        logger.info("Closed %d idle sessions", len(idle))
    return len(idle)


def _snapshot(session: TourSession) -> SessionSnapshot:
    state = session.state
    renderer = session.renderer
    overlays = renderer.snapshot() if isinstance(renderer, OverlayMapRenderer) else MapOverlays()
    return SessionSnapshot(
        session_id=session.session_id,
        coordinate=state.coordinate,
        location_error=state.location_error,
        category=state.category,
        mode=state.mode,
        guidance_status=session.guidance_status.value,
        places=list(state.places),
        route=state.route,
        guidance=state.guidance,
        messages=[message.content for message in state.messages if message.role == "assistant"],
        overlays=overlays,
    )


@app.post("/api/v1/sessions", response_model=SessionSnapshot)
async def open_session():
    sweep_idle_sessions()
    session = create_session()
    sessions[session.session_id] = session
    last_seen[session.session_id] = time.monotonic()
    logger.info("Session %s opened", session.session_id)
    return _snapshot(session)


@app.get("/api/v1/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    return _snapshot(_get_session(session_id))


@app.delete("/api/v1/sessions/{session_id}")
async def close_session(session_id: str):
    _get_session(session_id)
    _discard_session(session_id)
    logger.info("Session %s closed", session_id)
    return {"status": "closed"}


@app.post("/api/v1/sessions/{session_id}/position", response_model=SessionSnapshot)
async def report_position(session_id: str, report: PositionReport):
    """Forward a browser geolocation fix or error into the session"""
    session = _get_session(session_id)
    location = session.location
    if not isinstance(location, PushLocationProvider):
        raise HTTPException(status_code=409, detail="Session location is not client-fed")

    if report.error:
        location.push_error(report.error)
        if session.state.coordinate is None:
            session.record_location_error(report.error)
        return _snapshot(session)

    if report.lat is None or report.lon is None:
        raise HTTPException(status_code=422, detail="Either lat/lon or error is required")

    location.push(Coordinate(lat=report.lat, lon=report.lon))
    if session.state.coordinate is None:
        await session.acquire_location()
    return _snapshot(session)


@app.put("/api/v1/sessions/{session_id}/preferences", response_model=SessionSnapshot)
async def update_preferences(session_id: str, request: PreferencesRequest):
    session = _get_session(session_id)
    try:
        if request.category is not None:
            session.select_category(request.category)
        if request.mode is not None:
            session.select_mode(request.mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/places/search", response_model=SessionSnapshot)
async def search_places(session_id: str, request: NearbySearchRequest):
    session = _get_session(session_id)
    try:
        await session.find_nearby(request.category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/route", response_model=SessionSnapshot)
async def route_to_place(session_id: str, request: RouteRequest):
    session = _get_session(session_id)
    place = session.find_place(request.place_id)
    if place is None:
        raise HTTPException(status_code=404, detail=f"Unknown place: {request.place_id}")
    await session.route_to(place)
    return _snapshot(session)


@app.delete("/api/v1/sessions/{session_id}/route", response_model=SessionSnapshot)
async def clear_route(session_id: str):
    session = _get_session(session_id)
    session.clear_route()
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/messages", response_model=SessionSnapshot)
async def send_message(session_id: str, request: ChatRequest):
    session = _get_session(session_id)
    await session.handle_message(request.text)
    return _snapshot(session)


@app.get("/api/v1/categories", response_model=List[CategoryOption])
async def list_categories():
    return [CategoryOption(key=key, label=label) for key, label in CATEGORY_LABELS.items()]


@app.get("/health")
async def health_check():
    """Health check"""
    return {"status": "healthy", "version": settings.api_version, "sessions": len(sessions)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
