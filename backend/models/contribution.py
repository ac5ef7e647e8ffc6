"""Scoring results, guest contributions and aggregated pool models."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.event import Coordinates, GuestArrival, PresenceStatus
from models.track import AudioFeatures, Timeframe, Track, parse_release_year


@dataclass(frozen=True)
class PTSBreakdown:
    rank: int
    timeframe: Timeframe
    is_saved: bool


@dataclass(frozen=True)
class PTSResult:
    """Personal Taste Score for one (track, user) pair."""

    track_id: str
    user_id: str
    base_rank_score: float
    recency_multiplier: float
    saved_bonus: float
    final_pts: float
    breakdown: PTSBreakdown


@dataclass(frozen=True)
class WeightedTrackEntry:
    """A scored track inside a guest contribution."""

    id: str
    name: str
    artist: str
    rank: int
    timeframe: Timeframe
    is_saved: bool
    pts: float
    weighted_pts: float
    is_followed_artist: bool = False
    album: Optional[str] = None
    audio_features: Optional[AudioFeatures] = None
    explicit: bool = False
    release_date: Optional[str] = None


@dataclass(frozen=True)
class GuestContribution:
    """Everything one guest contributes to an event.

    Resubmissions replace the previous contribution as a whole; the
    fingerprint identifies submissions with identical content.
    """

    user_id: str
    profile_id: str
    display_name: str
    arrival_time: datetime
    tracks: tuple[WeightedTrackEntry, ...] = ()
    cohort_index: int = 0
    presence_status: PresenceStatus = PresenceStatus.UNKNOWN
    coordinates: Optional[Coordinates] = None
    last_location_update: Optional[datetime] = None

    @property
    def fingerprint(self) -> str:
        """SHA-256 over the profile id and the sorted set of track ids."""
        track_ids = sorted({track.id for track in self.tracks})
        digest = hashlib.sha256()
        digest.update(self.profile_id.encode("utf-8"))
        digest.update(b"\x00")
        digest.update("\x1f".join(track_ids).encode("utf-8"))
        return digest.hexdigest()

    @property
    def arrival(self) -> GuestArrival:
        return GuestArrival(
            user_id=self.user_id,
            arrival_time=self.arrival_time,
            cohort_index=self.cohort_index,
            presence_status=self.presence_status,
            coordinates=self.coordinates,
            last_location_update=self.last_location_update,
        )

    def __repr__(self) -> str:
        return f"<GuestContribution(user_id={self.user_id}, tracks={len(self.tracks)})>"


@dataclass(frozen=True)
class Contributor:
    """One guest's share of an aggregated track."""

    user_id: str
    display_name: str
    base_pts: float
    weighted_pts: float
    time_decay_multiplier: float
    cohort: int
    presence_status: PresenceStatus


@dataclass
class AggregatedTrack:
    """A track in the event-wide ranked pool."""

    track_id: str
    name: str
    artist: str
    total_pts: float
    average_pts: float
    contributor_count: int
    contributors: list[Contributor] = field(default_factory=list)
    album: Optional[str] = None
    audio_features: Optional[AudioFeatures] = None
    top_contributor: Optional[str] = None
    explicit: bool = False
    release_date: Optional[str] = None

    # Flow compatibility relative to the now-playing track
    flow_score: Optional[float] = None
    bpm_diff: Optional[float] = None
    key_relation: Optional[str] = None
    transition_quality: Optional[str] = None

    # Ranking penalties and score
    repeat_penalty: float = 0.0
    artist_fatigue: float = 0.0
    ranking_score: Optional[float] = None

    @property
    def total_penalty(self) -> float:
        return self.repeat_penalty + self.artist_fatigue

    @property
    def release_year(self) -> Optional[int]:
        return parse_release_year(self.release_date)

    def as_track(self) -> Track:
        return Track(
            track_id=self.track_id,
            name=self.name,
            artist=self.artist,
            album=self.album,
            audio_features=self.audio_features,
        )

    def __repr__(self) -> str:
        return (
            f"<AggregatedTrack(id={self.track_id}, total_pts={self.total_pts:.4f}, "
            f"contributors={self.contributor_count})>"
        )
