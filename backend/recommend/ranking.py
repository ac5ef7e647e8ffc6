"""Ranking modes and play-history penalties for the recommendation pool."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

from models import AggregatedTrack, PlayedTrack

MAX_REPEAT_PENALTY = 10.0
ARTIST_FATIGUE_PER_PLAY = 0.5


class RankingMode(str, Enum):
    HITFINDER = "hitfinder"  # crowd popularity only
    MIX_ASSIST = "mix-assist"  # popularity balanced with flow


@dataclass(frozen=True)
class DJWeights:
    popularity_weight: float
    flow_weight: float


DJ_PRESETS = {
    "crowd_pleaser": DJWeights(popularity_weight=0.9, flow_weight=0.1),
    "balanced": DJWeights(popularity_weight=0.6, flow_weight=0.4),
    "technical": DJWeights(popularity_weight=0.3, flow_weight=0.7),
    "purist": DJWeights(popularity_weight=0.1, flow_weight=0.9),
}


@dataclass(frozen=True)
class RankingConfig:
    mode: RankingMode = RankingMode.HITFINDER
    weights: DJWeights = DJ_PRESETS["balanced"]
    repeat_window_minutes: int = 180
    artist_fatigue_count: int = 3


@dataclass(frozen=True)
class Penalties:
    repeat_penalty: float
    artist_fatigue: float

    @property
    def total(self) -> float:
        return self.repeat_penalty + self.artist_fatigue


def calculate_penalties(
    track_id: str,
    artist: str,
    play_history: Sequence[PlayedTrack],
    config: RankingConfig,
    now: Optional[datetime] = None,
) -> Penalties:
    """Repeat penalty and artist fatigue for one candidate.

    Args:
        track_id: Candidate track id.
        artist: Candidate artist name (compared case-insensitively).
        play_history: Played tracks, most recent first.
        config: Window and fatigue settings.
        now: Reference time, defaults to the current UTC time.

    Returns:
        Penalties to subtract from the ranking score.
    """
    now = now or datetime.now(timezone.utc)
    window = timedelta(minutes=config.repeat_window_minutes)
    recent = [play for play in play_history if now - play.played_at < window]

    repeat_penalty = 0.0
    repeats = [play for play in recent if play.track_id == track_id]
    if repeats:
        hours_since_play = (now - repeats[0].played_at) / timedelta(hours=1)
        window_hours = config.repeat_window_minutes / 60
        repeat_penalty = max(
            0.0, MAX_REPEAT_PENALTY - hours_since_play / window_hours * MAX_REPEAT_PENALTY
        )

    artist_plays = [play for play in recent if play.artist.lower() == artist.lower()]
    artist_fatigue = len(artist_plays[: config.artist_fatigue_count]) * ARTIST_FATIGUE_PER_PLAY

    return Penalties(repeat_penalty=repeat_penalty, artist_fatigue=artist_fatigue)


def hitfinder_score(total_pts: float, penalties: Penalties, weights: DJWeights) -> float:
    return weights.popularity_weight * total_pts - penalties.total


def mix_assist_score(
    total_pts: float,
    flow_score: float,
    penalties: Penalties,
    weights: DJWeights,
) -> float:
    """Popularity plus flow, where ``flow_score`` is on the 0-100 scale."""
    return (
        weights.popularity_weight * total_pts
        + weights.flow_weight * (flow_score / 100) * 10
        - penalties.total
    )


def rank_pool(
    pool: Sequence[AggregatedTrack],
    play_history: Sequence[PlayedTrack],
    config: Optional[RankingConfig] = None,
    now: Optional[datetime] = None,
) -> list[AggregatedTrack]:
    """Apply penalties and the configured ranking mode.

    Mix-assist falls back to the hitfinder score for candidates that have
    not been flow-scored. Ties keep pool order.
    """
    config = config or RankingConfig()
    now = now or datetime.now(timezone.utc)

    ranked = []
    for track in pool:
        penalties = calculate_penalties(track.track_id, track.artist, play_history, config, now)
        if config.mode == RankingMode.MIX_ASSIST and track.flow_score is not None:
            score = mix_assist_score(track.total_pts, track.flow_score, penalties, config.weights)
        else:
            score = hitfinder_score(track.total_pts, penalties, config.weights)
        ranked.append(
            replace(
                track,
                repeat_penalty=penalties.repeat_penalty,
                artist_fatigue=penalties.artist_fatigue,
                ranking_score=score,
            )
        )

    return sorted(ranked, key=lambda track: track.ranking_score, reverse=True)
