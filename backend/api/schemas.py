"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Any, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from dj.serialization import DashboardState
from models import (
    AudioFeatures,
    Coordinates,
    CueSource,
    EventPhase,
    EventSize,
    PresenceStatus,
    Track,
)


# Base schemas
class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(from_attributes=True)


class CoordinatesSchema(BaseSchema):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)

    def to_coordinates(self) -> Coordinates:
        return Coordinates(lat=self.lat, lon=self.lon)


# Event schemas
class EventCreate(BaseModel):
    """Schema for creating an event."""

    event_id: Optional[str] = None
    name: Optional[str] = None
    start_time: Optional[AwareDatetime] = None
    expected_guest_count: Optional[int] = Field(None, ge=1)
    geofence_enabled: bool = False
    geofence_center: Optional[CoordinatesSchema] = None
    geofence_radius_m: Optional[float] = Field(None, gt=0)


class EventResponse(BaseModel):
    """Schema for event response."""

    event_id: str
    name: Optional[str] = None
    start_time: datetime
    event_size: EventSize
    phase: EventPhase
    expected_guest_count: int
    geofence_enabled: bool
    geofence_radius_m: float
    contributor_count: int


# Contribution schemas
class ContributionCreate(BaseModel):
    """Raw provider music data submitted for one guest."""

    music_data: dict[str, Any]
    user_id: Optional[str] = None
    arrival_time: Optional[AwareDatetime] = None
    coordinates: Optional[CoordinatesSchema] = None


class ProcessingStatsResponse(BaseSchema):
    total_tracks: int
    contribution_size: int
    vibe_gate_passed: int
    vibe_gate_pass_rate: float
    average_pts: float
    top_pts: float


class ContributionResponse(BaseModel):
    """Schema for contribution response."""

    user_id: str
    outcome: str
    fingerprint: str
    stats: ProcessingStatsResponse
    summary: dict[str, Any]


class LocationUpdate(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    updated_at: Optional[AwareDatetime] = None


# Pool schemas
class ContributorResponse(BaseSchema):
    user_id: str
    display_name: str
    base_pts: float
    weighted_pts: float
    time_decay_multiplier: float
    cohort: int
    presence_status: PresenceStatus


class AggregatedTrackResponse(BaseSchema):
    """Schema for a ranked pool entry."""

    track_id: str
    name: str
    artist: str
    album: Optional[str] = None
    total_pts: float
    average_pts: float
    contributor_count: int
    top_contributor: Optional[str] = None
    explicit: bool = False
    release_date: Optional[str] = None
    contributors: list[ContributorResponse] = Field(default_factory=list)
    flow_score: Optional[float] = None
    bpm_diff: Optional[float] = None
    key_relation: Optional[str] = None
    transition_quality: Optional[str] = None
    repeat_penalty: float = 0.0
    artist_fatigue: float = 0.0
    ranking_score: Optional[float] = None
    artwork_index: Optional[int] = None


# DJ schemas
class TrackInput(BaseModel):
    """A track picked from the pool or from a manual search."""

    track_id: str
    name: str
    artist: str
    album: Optional[str] = None
    audio_features: Optional[dict[str, Any]] = None

    def to_track(self) -> Track:
        return Track(
            track_id=self.track_id,
            name=self.name,
            artist=self.artist,
            album=self.album,
            audio_features=AudioFeatures.from_provider(self.audio_features),
        )


class CueRequest(BaseModel):
    track: TrackInput
    rank: Optional[int] = Field(None, ge=1)


class QueueAddRequest(BaseModel):
    track: TrackInput
    position: Optional[int] = Field(None, ge=1)
    source: CueSource = CueSource.QRATE


class QueueReorderRequest(BaseModel):
    position: int = Field(ge=1)


class DJStateResponse(DashboardState):
    """Dashboard state plus display helpers."""

    elapsed: str = ""
    history: list[dict[str, Any]] = Field(default_factory=list)
