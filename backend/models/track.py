"""Track and related models."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class Timeframe(str, Enum):
    """Listening timeframe a provider ranking was taken from."""

    SHORT_TERM = "short_term"
    MEDIUM_TERM = "medium_term"
    LONG_TERM = "long_term"


# Pitch class + mode to Camelot wheel
PITCH_CLASS_TO_CAMELOT = {
    # Major keys (mode = 1)
    (0, 1): "8B",   # C major
    (1, 1): "3B",   # C#/Db major
    (2, 1): "10B",  # D major
    (3, 1): "5B",   # D#/Eb major
    (4, 1): "12B",  # E major
    (5, 1): "7B",   # F major
    (6, 1): "2B",   # F#/Gb major
    (7, 1): "9B",   # G major
    (8, 1): "4B",   # G#/Ab major
    (9, 1): "11B",  # A major
    (10, 1): "6B",  # A#/Bb major
    (11, 1): "1B",  # B major
    # Minor keys (mode = 0)
    (0, 0): "5A",   # C minor
    (1, 0): "12A",  # C#/Db minor
    (2, 0): "7A",   # D minor
    (3, 0): "2A",   # D#/Eb minor
    (4, 0): "9A",   # E minor
    (5, 0): "4A",   # F minor
    (6, 0): "11A",  # F#/Gb minor
    (7, 0): "6A",   # G minor
    (8, 0): "1A",   # G#/Ab minor
    (9, 0): "8A",   # A minor
    (10, 0): "3A",  # A#/Bb minor
    (11, 0): "10A", # B minor
}


def camelot_from_pitch_class(key: Optional[int], mode: Optional[int]) -> Optional[str]:
    if key is None or mode is None:
        return None
    return PITCH_CLASS_TO_CAMELOT.get((key, mode))


@dataclass(frozen=True)
class AudioFeatures:
    """Audio features supplied by the music metadata provider."""

    tempo: Optional[float] = None
    energy: Optional[float] = None  # 0-1
    danceability: Optional[float] = None
    valence: Optional[float] = None
    key: Optional[int] = None  # pitch class 0-11
    mode: Optional[int] = None  # 0 = minor, 1 = major
    loudness: Optional[float] = None
    acousticness: Optional[float] = None
    instrumentalness: Optional[float] = None
    speechiness: Optional[float] = None
    liveness: Optional[float] = None
    duration_ms: Optional[int] = None
    time_signature: Optional[int] = None

    @property
    def camelot_key(self) -> Optional[str]:
        """Camelot notation for the key/mode pair, if both are known."""
        return camelot_from_pitch_class(self.key, self.mode)

    @property
    def has_flow_features(self) -> bool:
        """Whether tempo and energy are known (needed for flow scoring)."""
        return self.tempo is not None and self.energy is not None

    @classmethod
    def from_provider(cls, features: Optional[dict]) -> Optional["AudioFeatures"]:
        """Build from a provider audio-features payload (snake or camel case)."""
        if not features:
            return None

        def pick(*names):
            for name in names:
                if features.get(name) is not None:
                    return features[name]
            return None

        return cls(
            tempo=pick("tempo", "bpm"),
            energy=pick("energy"),
            danceability=pick("danceability"),
            valence=pick("valence"),
            key=pick("key"),
            mode=pick("mode"),
            loudness=pick("loudness"),
            acousticness=pick("acousticness"),
            instrumentalness=pick("instrumentalness"),
            speechiness=pick("speechiness"),
            liveness=pick("liveness"),
            duration_ms=pick("duration_ms", "durationMs"),
            time_signature=pick("time_signature", "timeSignature"),
        )


@dataclass(frozen=True)
class TrackMetadata:
    """A guest's ranked track, ready for Personal Taste Scoring."""

    id: str
    name: str
    artist: str
    rank: int
    timeframe: Timeframe
    user_id: str
    is_saved: bool = False
    is_followed_artist: bool = False
    album: Optional[str] = None
    genres: tuple[str, ...] = ()
    audio_features: Optional[AudioFeatures] = None
    explicit: bool = False
    release_date: Optional[str] = None
    popularity: Optional[int] = None

    @property
    def release_year(self) -> Optional[int]:
        """Year component of the provider release date, if parseable."""
        return parse_release_year(self.release_date)


@dataclass
class Track:
    """Canonical track view used by DJ actions.

    Recommendation pool entries, search results and guest requests are all
    converted to this shape before they reach the queue.
    """

    track_id: str
    name: str
    artist: str
    album: Optional[str] = None
    audio_features: Optional[AudioFeatures] = None
    album_art: Optional[str] = None
    duration_ms: Optional[int] = None
    release_year: Optional[int] = None
    explicit: bool = False
    genres: list[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"<Track(id={self.track_id}, name='{self.name}', artist='{self.artist}')>"


def parse_release_year(value: Optional[str]) -> Optional[int]:
    """Parse the year out of a provider release date (YYYY, YYYY-MM or YYYY-MM-DD)."""
    if not value:
        return None
    try:
        return date.fromisoformat(value).year
    except ValueError:
        pass
    try:
        return int(value[:4])
    except ValueError:
        return None
