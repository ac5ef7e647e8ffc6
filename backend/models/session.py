"""DJ session models for tracking the live set."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from models.track import AudioFeatures, Track


class CueSource(str, Enum):
    """Where a cued or queued track came from."""

    QRATE = "qrate"  # picked from the recommendation pool
    OFF_BOOK = "off-book"  # found through manual search


@dataclass
class NowPlayingTrack:
    """The track currently playing."""

    track_id: str
    name: str
    artist: str
    started_at: datetime
    source: CueSource
    album: Optional[str] = None
    audio_features: Optional[AudioFeatures] = None
    qrate_rank: Optional[int] = None

    @classmethod
    def from_track(
        cls, track: Track, started_at: datetime, rank: Optional[int] = None
    ) -> "NowPlayingTrack":
        return cls(
            track_id=track.track_id,
            name=track.name,
            artist=track.artist,
            album=track.album,
            audio_features=track.audio_features,
            started_at=started_at,
            source=CueSource.QRATE if rank is not None else CueSource.OFF_BOOK,
            qrate_rank=rank,
        )


@dataclass
class QueuedTrack:
    """A track waiting in the DJ queue."""

    track_id: str
    name: str
    artist: str
    queue_position: int
    added_at: datetime
    source: CueSource = CueSource.QRATE
    album: Optional[str] = None
    audio_features: Optional[AudioFeatures] = None

    def as_track(self) -> Track:
        return Track(
            track_id=self.track_id,
            name=self.name,
            artist=self.artist,
            album=self.album,
            audio_features=self.audio_features,
        )


@dataclass
class PlayedTrack:
    """A track in the play history."""

    track_id: str
    name: str
    artist: str
    played_at: datetime
    source: CueSource


@dataclass
class DJDashboardState:
    """Now playing, queue and reverse-chronological play history."""

    now_playing: Optional[NowPlayingTrack] = None
    queue: list[QueuedTrack] = field(default_factory=list)
    play_history: list[PlayedTrack] = field(default_factory=list)

    def __repr__(self) -> str:
        playing = self.now_playing.track_id if self.now_playing else None
        return (
            f"<DJDashboardState(now_playing={playing}, queue={len(self.queue)}, "
            f"history={len(self.play_history)})>"
        )
