"""Closed-form score and decay primitives.

Personal Taste Score components:

    PTS = BaseRankScore × RecencyMultiplier × SavedBonus

and the presence decay applied on top of it:

    TimeDecayMultiplier = D ** hours_since_arrival
"""

import logging
import math
from typing import Union

from models.track import Timeframe

logger = logging.getLogger(__name__)

DEFAULT_RANK_DECAY_CONSTANT = 0.05
MIN_RANK = 1
MAX_RANK = 100

RECENCY_MULTIPLIERS = {
    Timeframe.SHORT_TERM: 1.5,  # last ~4 weeks
    Timeframe.MEDIUM_TERM: 1.2,  # last ~6 months
    Timeframe.LONG_TERM: 1.0,  # all time
}
SAVED_BONUS = 1.1


def clamp_rank(rank: int) -> int:
    """Clamp a rank into [1, 100], logging when it was out of range."""
    if rank < MIN_RANK or rank > MAX_RANK:
        logger.warning("Invalid rank %s, clamping to %d-%d", rank, MIN_RANK, MAX_RANK)
        return max(MIN_RANK, min(MAX_RANK, rank))
    return rank


def base_rank_score(rank: int, decay_constant: float = DEFAULT_RANK_DECAY_CONSTANT) -> float:
    """Exponential rank decay ``e^(-k(r-1))``.

    A guest's #1 track scores 1.0 and #100 scores roughly 0.0067 with the
    default constant.
    """
    rank = clamp_rank(rank)
    return math.exp(-decay_constant * (rank - 1))


def recency_multiplier(timeframe: Union[Timeframe, str, None]) -> float:
    """Multiplier for the listening timeframe; unknown timeframes get 1.0."""
    try:
        return RECENCY_MULTIPLIERS[Timeframe(timeframe)]
    except ValueError:
        return 1.0


def saved_bonus(is_saved: bool) -> float:
    return SAVED_BONUS if is_saved else 1.0


def presence_decay(decay_rate: float, hours_since_arrival: float) -> float:
    """Continuous hourly decay ``decay_rate ** hours``.

    Args:
        decay_rate: Fraction of influence kept per hour, in (0, 1].
        hours_since_arrival: Elapsed hours; negative values count as zero.

    Returns:
        Multiplier in (0, 1].
    """
    if not 0 < decay_rate <= 1:
        raise ValueError(f"decay_rate must be in (0, 1], got {decay_rate}")
    return decay_rate ** max(0.0, hours_since_arrival)


def decay_projection(decay_rate: float, hours: int = 5) -> list[dict]:
    """Influence left after each whole hour from 0 to ``hours``."""
    projection = []
    for hour in range(hours + 1):
        multiplier = presence_decay(decay_rate, hour)
        projection.append(
            {"hour": hour, "multiplier": multiplier, "percentage": multiplier * 100}
        )
    return projection
