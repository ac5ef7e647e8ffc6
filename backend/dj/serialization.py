"""JSON persistence for the DJ dashboard state."""

from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, ValidationError

from models import (
    AudioFeatures,
    CueSource,
    DJDashboardState,
    NowPlayingTrack,
    PlayedTrack,
    QueuedTrack,
)
from models.errors import StateDeserializationError


class StateSchema(BaseModel):
    """Base schema reading straight from the dashboard dataclasses."""

    model_config = ConfigDict(from_attributes=True)


class AudioFeaturesState(StateSchema):
    tempo: Optional[float] = None
    energy: Optional[float] = None
    danceability: Optional[float] = None
    valence: Optional[float] = None
    key: Optional[int] = None
    mode: Optional[int] = None
    loudness: Optional[float] = None
    acousticness: Optional[float] = None
    instrumentalness: Optional[float] = None
    speechiness: Optional[float] = None
    liveness: Optional[float] = None
    duration_ms: Optional[int] = None
    time_signature: Optional[int] = None


class TrackState(StateSchema):
    track_id: str
    name: str
    artist: str
    source: CueSource
    album: Optional[str] = None
    audio_features: Optional[AudioFeaturesState] = None


class NowPlayingState(TrackState):
    started_at: AwareDatetime
    qrate_rank: Optional[int] = None


class QueuedState(TrackState):
    queue_position: int = Field(ge=1)
    added_at: AwareDatetime


class PlayedState(StateSchema):
    track_id: str
    name: str
    artist: str
    played_at: AwareDatetime
    source: CueSource


class DashboardState(StateSchema):
    now_playing: Optional[NowPlayingState] = None
    queue: list[QueuedState]
    play_history: list[PlayedState]


def _features(schema: Optional[AudioFeaturesState]) -> Optional[AudioFeatures]:
    if schema is None:
        return None
    return AudioFeatures(**schema.model_dump())


def serialize_dj_state(state: DJDashboardState) -> str:
    """Encode the dashboard state as JSON with ISO-8601 timestamps."""
    return DashboardState.model_validate(state).model_dump_json()


def deserialize_dj_state(serialized: str) -> DJDashboardState:
    """Decode a state produced by ``serialize_dj_state``.

    Raises:
        StateDeserializationError: If the payload is not valid JSON, is
            missing fields, or carries timestamps without a timezone.
    """
    try:
        data = DashboardState.model_validate_json(serialized)
    except ValidationError as exc:
        raise StateDeserializationError(f"Invalid DJ state: {exc}") from exc

    now_playing = None
    if data.now_playing is not None:
        current = data.now_playing
        now_playing = NowPlayingTrack(
            track_id=current.track_id,
            name=current.name,
            artist=current.artist,
            album=current.album,
            audio_features=_features(current.audio_features),
            started_at=current.started_at,
            source=current.source,
            qrate_rank=current.qrate_rank,
        )

    return DJDashboardState(
        now_playing=now_playing,
        queue=[
            QueuedTrack(
                track_id=queued.track_id,
                name=queued.name,
                artist=queued.artist,
                album=queued.album,
                audio_features=_features(queued.audio_features),
                queue_position=queued.queue_position,
                added_at=queued.added_at,
                source=queued.source,
            )
            for queued in data.queue
        ],
        play_history=[
            PlayedTrack(
                track_id=played.track_id,
                name=played.name,
                artist=played.artist,
                played_at=played.played_at,
                source=played.source,
            )
            for played in data.play_history
        ],
    )
