from typing import Optional
from pydantic import BaseModel, Field


class PositionReport(BaseModel):
    """Browser geolocation callback payload: a fix or an error message"""
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lon: Optional[float] = Field(default=None, ge=-180, le=180)
    error: Optional[str] = None


class PreferencesRequest(BaseModel):
    category: Optional[str] = None
    mode: Optional[str] = None


class NearbySearchRequest(BaseModel):
    category: Optional[str] = None


class RouteRequest(BaseModel):
    place_id: str


class ChatRequest(BaseModel):
    text: str
