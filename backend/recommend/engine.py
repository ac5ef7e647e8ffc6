"""Flow compatibility engine for the DJ recommendation pool."""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from models import AggregatedTrack, AudioFeatures, NowPlayingTrack
from recommend.harmonic import HarmonicMatcher, KeyRelation, compatible_keys, parse_camelot
from recommend.transitions import TransitionQuality, transition_quality, transition_score

logger = logging.getLogger(__name__)

# Provider energy is 0-1, transition bands are 0-100
ENERGY_SCALE = 100


@dataclass(frozen=True)
class FlowResult:
    """Compatibility of a candidate with the track currently playing."""

    flow_score: float
    bpm_diff: float
    energy_diff: float
    key_relation: KeyRelation
    transition_quality: TransitionQuality


class FlowEngine:
    """Scores pool candidates against the now-playing track."""

    def __init__(self, matcher: Optional[HarmonicMatcher] = None) -> None:
        """Initialize the flow engine.

        Args:
            matcher: Harmonic matcher; a fresh one with its own cache is
                created when omitted.
        """
        self.matcher = matcher if matcher is not None else HarmonicMatcher()

    def flow_score(
        self,
        candidate: AudioFeatures,
        current: AudioFeatures,
    ) -> FlowResult:
        """Score one transition.

        Args:
            candidate: Audio features of the candidate track.
            current: Audio features of the now-playing track.

        Returns:
            FlowResult with the 0-100 score and its components.
        """
        bpm_diff = abs((candidate.tempo or 0) - (current.tempo or 0))
        energy_diff = abs((candidate.energy or 0) - (current.energy or 0)) * ENERGY_SCALE
        relation = self.matcher.relation(candidate.camelot_key, current.camelot_key)

        return FlowResult(
            flow_score=transition_score(bpm_diff, energy_diff, relation.is_match),
            bpm_diff=bpm_diff,
            energy_diff=energy_diff,
            key_relation=relation,
            transition_quality=transition_quality(bpm_diff, energy_diff),
        )

    def rescore(
        self,
        pool: Sequence[AggregatedTrack],
        now_playing: Optional[NowPlayingTrack],
    ) -> list[AggregatedTrack]:
        """Recompute flow fields for every candidate in the pool.

        Candidates are copied, never mutated in place. Candidates without
        tempo and energy come back with ``flow_score=None``. When nothing is
        playing, or the now-playing track has no usable features, the pool
        is returned as is.
        """
        current = now_playing.audio_features if now_playing else None
        if current is None or not current.has_flow_features:
            return list(pool)

        rescored = []
        for candidate in pool:
            features = candidate.audio_features
            if features is None or not features.has_flow_features:
                rescored.append(
                    replace(
                        candidate,
                        flow_score=None,
                        bpm_diff=None,
                        key_relation=None,
                        transition_quality=None,
                    )
                )
                continue

            result = self.flow_score(features, current)
            rescored.append(
                replace(
                    candidate,
                    flow_score=result.flow_score,
                    bpm_diff=result.bpm_diff,
                    key_relation=result.key_relation.value,
                    transition_quality=result.transition_quality.value,
                )
            )

        logger.debug(
            "Rescored %d candidates against %s", len(rescored), now_playing.track_id
        )
        return rescored


def rank_by_flow(pool: Sequence[AggregatedTrack]) -> list[AggregatedTrack]:
    """Order by flow score descending; unscored candidates keep their order at the end."""
    scored = [track for track in pool if track.flow_score is not None]
    unscored = [track for track in pool if track.flow_score is None]
    return sorted(scored, key=lambda track: track.flow_score, reverse=True) + unscored


def harmonic_filter(
    pool: Sequence[AggregatedTrack],
    current_key: str,
) -> list[AggregatedTrack]:
    """Keep only candidates whose key mixes with ``current_key``.

    An unparseable ``current_key`` filters nothing out.
    """
    if parse_camelot(current_key) is None:
        return list(pool)

    keys = set(compatible_keys(current_key).values())
    return [
        track
        for track in pool
        if track.audio_features is not None
        and (track.audio_features.camelot_key or "").upper() in keys
    ]
