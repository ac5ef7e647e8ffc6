"""Smart filters applied to ranked recommendations before they reach the DJ."""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence

from models import AggregatedTrack, PlayedTrack

logger = logging.getLogger(__name__)

ERA_RANGE_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")
ERA_DECADE_PATTERN = re.compile(r"^(\d{4})s$")
ERA_YEAR_PATTERN = re.compile(r"^(\d{4})$")


class RepetitionVelocity(str, Enum):
    """How many recent songs an artist must sit out."""

    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CUSTOM = "custom"


REPETITION_WINDOWS = {
    RepetitionVelocity.OFF: 0,
    RepetitionVelocity.LOW: 3,
    RepetitionVelocity.MEDIUM: 5,
    RepetitionVelocity.HIGH: 10,
}


@dataclass(frozen=True)
class SmartFiltersConfig:
    """Presentation filters; every filter is off by default.

    Audio feature bounds are on the provider's 0-1 scale. ``era_bias``
    accepts a decade (``1990s``), a range (``1980-1999``) or a single year.
    """

    no_explicit: bool = False
    repetition_velocity: RepetitionVelocity = RepetitionVelocity.OFF
    repetition_window: int = 5  # used with RepetitionVelocity.CUSTOM
    era_bias: Optional[str] = None
    era_bias_multiplier: float = 1.5
    energy_min: Optional[float] = None
    energy_max: Optional[float] = None
    danceability_min: Optional[float] = None
    valence_min: Optional[float] = None
    valence_max: Optional[float] = None
    vocal_emphasis: bool = False
    instrumentalness_max: float = 0.2

    @property
    def repetition_songs(self) -> int:
        if self.repetition_velocity == RepetitionVelocity.CUSTOM:
            return self.repetition_window
        return REPETITION_WINDOWS[self.repetition_velocity]


DEFAULT_FILTERS = SmartFiltersConfig()

QUICK_PRESETS = {
    "family-friendly": SmartFiltersConfig(no_explicit=True),
    "high-energy-throwback": SmartFiltersConfig(
        energy_min=0.75,
        era_bias="1980-1999",
        era_bias_multiplier=1.8,
        repetition_velocity=RepetitionVelocity.LOW,
    ),
    "vocal-showcase": SmartFiltersConfig(
        vocal_emphasis=True,
        instrumentalness_max=0.2,
        repetition_velocity=RepetitionVelocity.HIGH,
    ),
    "peak-hour": SmartFiltersConfig(
        energy_min=0.8,
        danceability_min=0.7,
        repetition_velocity=RepetitionVelocity.MEDIUM,
    ),
    "cool-down": SmartFiltersConfig(
        energy_max=0.5,
        valence_max=0.6,
        repetition_velocity=RepetitionVelocity.LOW,
    ),
}


def era_range(era: str) -> tuple[int, int]:
    """Inclusive year range for an era string.

    Raises:
        ValueError: If ``era`` is not a decade, range or single year.
    """
    era = era.strip()
    match = ERA_RANGE_PATTERN.match(era)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        if start > end:
            raise ValueError(f"Era range is reversed: {era!r}")
        return start, end
    match = ERA_DECADE_PATTERN.match(era)
    if match:
        start = int(match.group(1))
        return start, start + 9
    match = ERA_YEAR_PATTERN.match(era)
    if match:
        year = int(match.group(1))
        return year, year
    raise ValueError(f"Not an era: {era!r}")


def passes_content_filter(track: AggregatedTrack, config: SmartFiltersConfig) -> bool:
    return not (config.no_explicit and track.explicit)


def passes_repetition_filter(
    track: AggregatedTrack,
    play_history: Sequence[PlayedTrack],
    config: SmartFiltersConfig,
) -> bool:
    """False when the artist played within the last N songs (history newest first)."""
    songs = config.repetition_songs
    if songs <= 0:
        return True
    artist = track.artist.lower()
    return all(played.artist.lower() != artist for played in play_history[:songs])


def passes_audio_feature_filters(track: AggregatedTrack, config: SmartFiltersConfig) -> bool:
    """Check feature bounds; unknown features never exclude a track."""
    features = track.audio_features
    if features is None:
        return True

    bounds = (
        (features.energy, config.energy_min, config.energy_max),
        (features.danceability, config.danceability_min, None),
        (features.valence, config.valence_min, config.valence_max),
    )
    for value, low, high in bounds:
        if value is None:
            continue
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False

    if (
        config.vocal_emphasis
        and features.instrumentalness is not None
        and features.instrumentalness > config.instrumentalness_max
    ):
        return False
    return True


def apply_era_bias(track: AggregatedTrack, config: SmartFiltersConfig) -> float:
    """Track score, multiplied when its release year falls inside the era."""
    score = track.ranking_score if track.ranking_score is not None else track.total_pts
    year = track.release_year
    if not config.era_bias or year is None:
        return score
    start, end = era_range(config.era_bias)
    if start <= year <= end:
        return score * config.era_bias_multiplier
    return score


def apply_smart_filters(
    tracks: Sequence[AggregatedTrack],
    play_history: Sequence[PlayedTrack],
    config: SmartFiltersConfig = DEFAULT_FILTERS,
) -> list[AggregatedTrack]:
    """Filter candidates, apply the era bias and re-sort by score.

    Raises:
        ValueError: If ``config.era_bias`` cannot be parsed.
    """
    if config.era_bias:
        era_range(config.era_bias)

    filtered = [
        track
        for track in tracks
        if passes_content_filter(track, config)
        and passes_repetition_filter(track, play_history, config)
        and passes_audio_feature_filters(track, config)
    ]
    rescored = [replace(track, ranking_score=apply_era_bias(track, config)) for track in filtered]
    rescored.sort(key=lambda track: track.ranking_score, reverse=True)

    logger.debug("Smart filters kept %d/%d tracks", len(rescored), len(tracks))
    return rescored


def active_filter_count(config: SmartFiltersConfig) -> int:
    return sum(
        (
            config.no_explicit,
            config.repetition_songs > 0,
            bool(config.era_bias),
            config.energy_min is not None,
            config.energy_max is not None,
            config.danceability_min is not None,
            config.valence_min is not None,
            config.valence_max is not None,
            config.vocal_emphasis,
        )
    )


def filter_summary(config: SmartFiltersConfig) -> list[str]:
    """Human-readable description of the active filters."""
    summary = []
    if config.no_explicit:
        summary.append("No explicit content")
    if config.repetition_songs > 0:
        summary.append(
            f"Artist variety: {config.repetition_velocity.value} ({config.repetition_songs} songs)"
        )
    if config.era_bias:
        summary.append(f"Era boost: {config.era_bias}")
    if config.energy_min is not None or config.energy_max is not None:
        low = config.energy_min if config.energy_min is not None else 0.0
        high = config.energy_max if config.energy_max is not None else 1.0
        summary.append(f"Energy: {low * 100:.0f}%-{high * 100:.0f}%")
    if config.danceability_min is not None:
        summary.append(f"Danceability: >{config.danceability_min * 100:.0f}%")
    if config.valence_min is not None or config.valence_max is not None:
        low = config.valence_min if config.valence_min is not None else 0.0
        high = config.valence_max if config.valence_max is not None else 1.0
        summary.append(f"Mood: {low * 100:.0f}%-{high * 100:.0f}%")
    if config.vocal_emphasis:
        summary.append("Vocal showcase")
    return summary
