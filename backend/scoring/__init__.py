"""Personal Taste Score and contextual weighting."""

from scoring.primitives import (
    base_rank_score,
    decay_projection,
    presence_decay,
    recency_multiplier,
    saved_bonus,
)
from scoring.pts import calculate_batch_pts, calculate_pts
from scoring.weighting import ContextualWeightingEngine, haversine_distance_m

__all__ = [
    "ContextualWeightingEngine",
    "base_rank_score",
    "calculate_batch_pts",
    "calculate_pts",
    "decay_projection",
    "haversine_distance_m",
    "presence_decay",
    "recency_multiplier",
    "saved_bonus",
]
