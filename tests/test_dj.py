"""Tests for the DJ session state machine and its persistence."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_contribution, make_entry, make_track
from dj.serialization import deserialize_dj_state, serialize_dj_state
from dj.workflow import (
    DJSession,
    elapsed_label,
    format_play_history,
    source_label,
)
from models import AudioFeatures, CueSource
from models.errors import StateDeserializationError
from recommend.aggregation import aggregate_contributions


class Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock(event_start):
    return Clock(event_start)


@pytest.fixture
def session(clock):
    return DJSession(clock=clock)


def queue_ids(state):
    return [(q.track_id, q.queue_position) for q in state.queue]


class TestTapToCue:
    def test_rank_marks_pool_pick(self, session):
        state = session.tap_to_cue(make_track("t1"), rank=3)
        assert state.now_playing.source == CueSource.QRATE
        assert state.now_playing.qrate_rank == 3

    def test_off_book(self, session):
        state = session.tap_to_cue(make_track("t1"))
        assert state.now_playing.source == CueSource.OFF_BOOK

    def test_previous_track_moves_to_history(self, session, clock):
        session.tap_to_cue(make_track("t1"), rank=1)
        started = clock.now
        clock.advance(minutes=4)
        session.tap_to_cue(make_track("t2"))
        clock.advance(minutes=3)
        state = session.tap_to_cue(make_track("t3"))
        assert state.now_playing.track_id == "t3"
        assert [p.track_id for p in state.play_history] == ["t2", "t1"]
        assert state.play_history[1].played_at == started
        assert state.play_history[1].source == CueSource.QRATE

    def test_cue_rescores_pool(self, session, small_event):
        contributions = [
            make_contribution(
                "alice",
                [
                    make_entry("match", 1.0, features=AudioFeatures(tempo=124, energy=0.8, key=9, mode=0)),
                    make_entry("bare", 2.0),
                ],
            )
        ]
        session.set_pool(aggregate_contributions(contributions, small_event, now=small_event.start_time))
        assert all(t.flow_score is None for t in session.recommendations())

        session.tap_to_cue(make_track("current", tempo=124, energy=0.8, key=9, mode=0))
        by_id = {t.track_id: t for t in session.recommendations()}
        assert by_id["match"].flow_score == 100
        assert by_id["bare"].flow_score is None


class TestQueue:
    def test_append_and_insert(self, session):
        session.add_to_queue(make_track("a"))
        session.add_to_queue(make_track("b"))
        state = session.add_to_queue(make_track("c"), position=1)
        assert queue_ids(state) == [("c", 1), ("a", 2), ("b", 3)]

    def test_insert_position_clamped(self, session):
        session.add_to_queue(make_track("a"))
        state = session.add_to_queue(make_track("b"), position=10)
        assert queue_ids(state) == [("a", 1), ("b", 2)]
        state = session.add_to_queue(make_track("c"), position=0)
        assert queue_ids(state)[0] == ("c", 1)

    def test_add_then_remove_restores_queue(self, session):
        session.add_to_queue(make_track("a"))
        before = session.add_to_queue(make_track("b"))
        session.add_to_queue(make_track("x"), position=2)
        after = session.remove_from_queue("x")
        assert queue_ids(after) == queue_ids(before)

    def test_remove_unknown_is_noop(self, session):
        before = session.add_to_queue(make_track("a"))
        assert session.remove_from_queue("missing") == before

    def test_reorder(self, session):
        for track_id in "abcd":
            session.add_to_queue(make_track(track_id))
        state = session.reorder_queue("d", 2)
        assert queue_ids(state) == [("a", 1), ("d", 2), ("b", 3), ("c", 4)]
        state = session.reorder_queue("a", 99)
        assert [q for q, _ in queue_ids(state)] == ["d", "b", "c", "a"]

    def test_reorder_unknown_is_noop(self, session):
        before = session.add_to_queue(make_track("a"))
        assert session.reorder_queue("missing", 1) == before

    def test_state_is_a_copy(self, session):
        state = session.add_to_queue(make_track("a"))
        state.queue.clear()
        assert session.is_in_queue("a")

    def test_advance_cues_head(self, session):
        assert session.advance() is None
        session.add_to_queue(make_track("a"), source=CueSource.OFF_BOOK)
        session.add_to_queue(make_track("b"))
        assert session.next_suggestion().track_id == "a"
        state = session.advance()
        assert state.now_playing.track_id == "a"
        assert state.now_playing.source == CueSource.OFF_BOOK
        assert queue_ids(state) == [("b", 1)]


class TestRecentlyPlayed:
    def test_window(self, session, clock):
        session.tap_to_cue(make_track("a"))
        session.tap_to_cue(make_track("b"))
        assert session.was_recently_played("a")
        assert not session.was_recently_played("b")  # still playing
        assert not session.was_recently_played("a", now=clock.now + timedelta(minutes=181))
        assert session.was_recently_played("a", window_minutes=240, now=clock.now + timedelta(minutes=181))


class TestDisplayHelpers:
    def test_elapsed_label(self, session, clock):
        state = session.tap_to_cue(make_track("a"))
        assert elapsed_label(state.now_playing, clock.now + timedelta(minutes=3, seconds=7)) == "3:07"
        assert elapsed_label(None) == ""

    def test_source_label(self):
        assert source_label(CueSource.QRATE, 4) == "QRate #4"
        assert source_label(CueSource.QRATE) == "QRate"
        assert source_label(CueSource.OFF_BOOK, 4) == "Off-Book"

    def test_format_play_history(self, session, clock):
        session.tap_to_cue(make_track("a"))
        clock.advance(minutes=30)
        state = session.tap_to_cue(make_track("b"))
        rows = format_play_history(state.play_history, now=clock.now + timedelta(minutes=90))
        assert rows == [
            {
                "track_id": "a",
                "name": "Track a",
                "artist": "Artist",
                "played_at": "2 hours ago",
                "source": "Off-Book",
            }
        ]


class TestSerialization:
    def populated(self, session, clock):
        session.tap_to_cue(make_track("a", tempo=120, energy=0.5, key=9, mode=0), rank=1)
        clock.advance(seconds=95, microseconds=123456)
        session.tap_to_cue(make_track("b"))
        session.add_to_queue(make_track("c", tempo=128.5, energy=0.9))
        session.add_to_queue(make_track("d"), position=1, source=CueSource.OFF_BOOK)
        return session.state

    def test_round_trip_is_exact(self, session, clock):
        state = self.populated(session, clock)
        restored = deserialize_dj_state(serialize_dj_state(state))
        assert restored == state
        assert restored.play_history[0].played_at == state.play_history[0].played_at
        assert restored.now_playing.started_at.microsecond == 123456

    def test_empty_state(self, session):
        state = session.state
        assert deserialize_dj_state(serialize_dj_state(state)) == state

    def test_timestamps_are_iso(self, session, clock):
        data = json.loads(serialize_dj_state(self.populated(session, clock)))
        started = datetime.fromisoformat(data["now_playing"]["started_at"].replace("Z", "+00:00"))
        assert started.tzinfo is not None
        assert data["queue"][0]["source"] == "off-book"

    def test_restored_session(self, session, clock):
        state = self.populated(session, clock)
        restored = DJSession(state=deserialize_dj_state(serialize_dj_state(state)), clock=clock)
        assert restored.next_suggestion().track_id == "d"

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            "{}",
            '{"now_playing": null, "queue": [], "play_history": [{"track_id": "a"}]}',
            json.dumps(
                {
                    "now_playing": None,
                    "queue": [],
                    "play_history": [
                        {
                            "track_id": "a",
                            "name": "A",
                            "artist": "X",
                            "played_at": "2026-06-20T21:00:00",
                            "source": "qrate",
                        }
                    ],
                }
            ),
            json.dumps(
                {
                    "now_playing": None,
                    "queue": [],
                    "play_history": [
                        {
                            "track_id": "a",
                            "name": "A",
                            "artist": "X",
                            "played_at": "yesterday",
                            "source": "qrate",
                        }
                    ],
                }
            ),
        ],
    )
    def test_malformed_input_raises(self, payload):
        with pytest.raises(StateDeserializationError):
            deserialize_dj_state(payload)

    def test_error_wraps_validation_error(self):
        with pytest.raises(StateDeserializationError) as exc_info:
            deserialize_dj_state("{}")
        assert exc_info.value.__cause__ is not None


def test_clock_timezone(event_start):
    assert event_start.tzinfo == timezone.utc
