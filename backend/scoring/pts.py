"""Personal Taste Score (PTS) engine.

Quantifies how important each track is to an individual guest. All
functions are pure; scoring disjoint inputs from several threads is safe.
"""

from typing import Iterable

from models.contribution import PTSBreakdown, PTSResult
from models.track import Timeframe, TrackMetadata
from scoring.primitives import (
    DEFAULT_RANK_DECAY_CONSTANT,
    base_rank_score,
    clamp_rank,
    recency_multiplier,
    saved_bonus,
)


def calculate_pts(
    track: TrackMetadata,
    decay_constant: float = DEFAULT_RANK_DECAY_CONSTANT,
) -> PTSResult:
    """Calculate the Personal Taste Score for a single track.

    Args:
        track: Ranked track from one guest.
        decay_constant: Rank decay constant ``k``.

    Returns:
        PTSResult with every factor of the product kept for auditing.
    """
    rank = clamp_rank(track.rank)
    base = base_rank_score(rank, decay_constant)
    recency = recency_multiplier(track.timeframe)
    bonus = saved_bonus(track.is_saved)

    return PTSResult(
        track_id=track.id,
        user_id=track.user_id,
        base_rank_score=base,
        recency_multiplier=recency,
        saved_bonus=bonus,
        final_pts=base * recency * bonus,
        breakdown=PTSBreakdown(
            rank=rank,
            timeframe=track.timeframe,
            is_saved=track.is_saved,
        ),
    )


def calculate_batch_pts(
    tracks: Iterable[TrackMetadata],
    decay_constant: float = DEFAULT_RANK_DECAY_CONSTANT,
) -> list[PTSResult]:
    """Score many tracks, highest PTS first (ties keep input order)."""
    results = [calculate_pts(track, decay_constant) for track in tracks]
    return sorted(results, key=lambda r: r.final_pts, reverse=True)


def top_tracks_by_pts(results: Iterable[PTSResult], limit: int = 50) -> list[dict]:
    """Combine raw PTS results across users and return the top tracks."""
    grouped: dict[str, list[PTSResult]] = {}
    for result in results:
        grouped.setdefault(result.track_id, []).append(result)

    combined = []
    for track_id, track_results in grouped.items():
        total = sum(r.final_pts for r in track_results)
        combined.append(
            {
                "track_id": track_id,
                "total_pts": total,
                "average_pts": total / len(track_results),
                "user_count": len(track_results),
            }
        )

    combined.sort(key=lambda t: t["total_pts"], reverse=True)
    return combined[:limit]


def _reference_pts(rank: int, timeframe: Timeframe, is_saved: bool) -> float:
    track = TrackMetadata(
        id="reference",
        name="Reference",
        artist="Reference",
        rank=rank,
        timeframe=timeframe,
        is_saved=is_saved,
        user_id="reference",
    )
    return calculate_pts(track).final_pts


def pts_score_ranges() -> dict[str, float]:
    """Reference scores for UI feedback: best (~1.65), average (~0.097), worst (~0.0067)."""
    return {
        "best": _reference_pts(1, Timeframe.SHORT_TERM, True),
        "average": _reference_pts(50, Timeframe.MEDIUM_TERM, False),
        "worst": _reference_pts(100, Timeframe.LONG_TERM, False),
    }


def format_pts_breakdown(result: PTSResult) -> str:
    """Human-readable breakdown of a PTS result."""
    rule = "─" * 21
    lines = [
        f"Track: {result.track_id}",
        f"User: {result.user_id}",
        rule,
        f"Rank: #{result.breakdown.rank}",
        f"Base Score: {result.base_rank_score:.4f}",
        f"Timeframe: {result.breakdown.timeframe.value} ({result.recency_multiplier}x)",
        f"Saved: {'Yes' if result.breakdown.is_saved else 'No'} ({result.saved_bonus}x)",
        rule,
        f"Final PTS: {result.final_pts:.4f}",
    ]
    return "\n".join(lines)
