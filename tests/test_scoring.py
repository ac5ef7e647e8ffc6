"""Tests for score primitives and the PTS engine."""

import logging
import math

import pytest

from models import Timeframe, TrackMetadata
from scoring.primitives import (
    base_rank_score,
    decay_projection,
    presence_decay,
    recency_multiplier,
    saved_bonus,
)
from scoring.pts import (
    calculate_batch_pts,
    calculate_pts,
    format_pts_breakdown,
    pts_score_ranges,
    top_tracks_by_pts,
)


def track(rank: int, timeframe=Timeframe.SHORT_TERM, is_saved=False, track_id=None, user_id="u1"):
    return TrackMetadata(
        id=track_id or f"t{rank}",
        name="Song",
        artist="Artist",
        rank=rank,
        timeframe=timeframe,
        user_id=user_id,
        is_saved=is_saved,
    )


class TestBaseRankScore:
    def test_top_rank_scores_one(self):
        assert base_rank_score(1) == 1.0

    def test_last_rank(self):
        assert base_rank_score(100) == pytest.approx(0.00674, abs=1e-3)

    def test_strictly_decreasing(self):
        scores = [base_rank_score(rank) for rank in range(1, 101)]
        assert all(a > b for a, b in zip(scores, scores[1:]))

    def test_out_of_range_ranks_are_clamped(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert base_rank_score(0) == base_rank_score(1)
            assert base_rank_score(250) == base_rank_score(100)
        assert "clamping" in caplog.text


class TestMultipliers:
    @pytest.mark.parametrize(
        "timeframe, expected",
        [
            (Timeframe.SHORT_TERM, 1.5),
            (Timeframe.MEDIUM_TERM, 1.2),
            (Timeframe.LONG_TERM, 1.0),
            ("short_term", 1.5),
            ("all_time", 1.0),
            (None, 1.0),
        ],
    )
    def test_recency(self, timeframe, expected):
        assert recency_multiplier(timeframe) == expected

    def test_saved_bonus(self):
        assert saved_bonus(True) == 1.1
        assert saved_bonus(False) == 1.0


class TestPresenceDecay:
    def test_default_rates_after_two_hours(self):
        present = presence_decay(0.90, 2)
        absent = presence_decay(0.40, 2)
        assert present == pytest.approx(0.81)
        assert absent == pytest.approx(0.16)
        assert present >= 5 * absent

    def test_fractional_hours(self):
        assert presence_decay(0.81, 0.5) == pytest.approx(0.9)

    def test_negative_hours_count_as_zero(self):
        assert presence_decay(0.4, -3) == 1.0

    @pytest.mark.parametrize("rate", [0, -0.5, 1.01])
    def test_invalid_rate(self, rate):
        with pytest.raises(ValueError):
            presence_decay(rate, 1)

    def test_projection(self):
        projection = decay_projection(0.5, hours=3)
        assert [p["hour"] for p in projection] == [0, 1, 2, 3]
        assert projection[2]["multiplier"] == pytest.approx(0.25)
        assert projection[2]["percentage"] == pytest.approx(25.0)


class TestPTS:
    def test_best_case(self):
        result = calculate_pts(track(1, Timeframe.SHORT_TERM, is_saved=True))
        assert result.final_pts == pytest.approx(1.65)
        assert result.breakdown.is_saved

    def test_average_case(self):
        result = calculate_pts(track(50, Timeframe.MEDIUM_TERM))
        # e^(-0.05 * 49) * 1.2
        assert result.final_pts == pytest.approx(math.exp(-2.45) * 1.2)
        assert result.final_pts == pytest.approx(0.10355, abs=1e-4)

    def test_worst_case(self):
        result = calculate_pts(track(100, Timeframe.LONG_TERM))
        assert result.final_pts == pytest.approx(math.exp(-4.95))
        assert result.final_pts == pytest.approx(0.00674, abs=1e-3)

    def test_final_is_product_of_factors(self):
        result = calculate_pts(track(7, Timeframe.MEDIUM_TERM, is_saved=True))
        assert result.final_pts == pytest.approx(
            result.base_rank_score * result.recency_multiplier * result.saved_bonus
        )

    def test_out_of_range_rank_never_raises(self):
        result = calculate_pts(track(500))
        assert result.breakdown.rank == 100

    def test_batch_sorted_descending_with_stable_ties(self):
        tracks = [
            track(5, track_id="a"),
            track(1, track_id="b"),
            track(5, track_id="c"),
            track(3, track_id="d"),
        ]
        results = calculate_batch_pts(tracks)
        assert [r.track_id for r in results] == ["b", "d", "a", "c"]

    def test_top_tracks_combines_users(self):
        results = calculate_batch_pts(
            [track(1, track_id="x", user_id="u1"), track(1, track_id="x", user_id="u2"), track(2, track_id="y")]
        )
        top = top_tracks_by_pts(results, limit=1)
        assert len(top) == 1
        assert top[0]["track_id"] == "x"
        assert top[0]["user_count"] == 2
        assert top[0]["total_pts"] == pytest.approx(3.0)

    def test_score_ranges(self):
        ranges = pts_score_ranges()
        assert ranges["best"] == pytest.approx(1.65)
        assert ranges["best"] > ranges["average"] > ranges["worst"]

    def test_breakdown_text(self):
        text = format_pts_breakdown(calculate_pts(track(1, is_saved=True)))
        assert "Rank: #1" in text
        assert "Saved: Yes" in text
        assert "Final PTS: 1.6500" in text
