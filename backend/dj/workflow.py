"""Live DJ session: now playing, queue and play history.

Every mutation goes through ``DJSession`` and is serialized by its lock;
queue renumbering is order dependent.
"""

import copy
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from models import (
    AggregatedTrack,
    CueSource,
    DJDashboardState,
    NowPlayingTrack,
    PlayedTrack,
    QueuedTrack,
    Track,
)
from recommend.aggregation import utc_now
from recommend.engine import FlowEngine

logger = logging.getLogger(__name__)

DEFAULT_RECENT_WINDOW_MINUTES = 180


def _renumber(queue: list[QueuedTrack]) -> None:
    for index, queued in enumerate(queue, start=1):
        queued.queue_position = index


def _clamp_position(position: int, upper: int) -> int:
    return max(1, min(position, upper))


class DJSession:
    """Single-writer DJ dashboard state with flow recalculation on cue."""

    def __init__(
        self,
        flow_engine: Optional[FlowEngine] = None,
        state: Optional[DJDashboardState] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the session.

        Args:
            flow_engine: Engine rescoring the pool whenever now playing changes.
            state: Restored dashboard state, empty when omitted.
            clock: Source of the current time.
        """
        self.flow_engine = flow_engine if flow_engine is not None else FlowEngine()
        self._state = state if state is not None else DJDashboardState()
        self._clock = clock
        self._lock = threading.Lock()
        self._pool: list[AggregatedTrack] = []
        self._recommendations: list[AggregatedTrack] = []

    @property
    def state(self) -> DJDashboardState:
        """A copy of the current state; mutating it does not affect the session."""
        with self._lock:
            return copy.deepcopy(self._state)

    def set_pool(self, pool: Sequence[AggregatedTrack]) -> list[AggregatedTrack]:
        """Replace the candidate pool and rescore it against now playing."""
        with self._lock:
            self._pool = list(pool)
            self._recommendations = self.flow_engine.rescore(self._pool, self._state.now_playing)
            return list(self._recommendations)

    def recommendations(self) -> list[AggregatedTrack]:
        with self._lock:
            return list(self._recommendations)

    def tap_to_cue(self, track: Track, rank: Optional[int] = None) -> DJDashboardState:
        """Mark ``track`` as now playing.

        A ``rank`` marks the pick as coming from the recommendation pool,
        otherwise it is off-book. The previous track moves to the front of
        the play history.
        """
        with self._lock:
            self._cue(NowPlayingTrack.from_track(track, self._clock(), rank))
            return copy.deepcopy(self._state)

    def advance(self) -> Optional[DJDashboardState]:
        """Cue the head of the queue; returns None when the queue is empty."""
        with self._lock:
            if not self._state.queue:
                return None
            head = self._state.queue.pop(0)
            _renumber(self._state.queue)
            self._cue(
                NowPlayingTrack(
                    track_id=head.track_id,
                    name=head.name,
                    artist=head.artist,
                    album=head.album,
                    audio_features=head.audio_features,
                    started_at=self._clock(),
                    source=head.source,
                )
            )
            return copy.deepcopy(self._state)

    def _cue(self, now_playing: NowPlayingTrack) -> None:
        previous = self._state.now_playing
        if previous is not None:
            self._state.play_history.insert(
                0,
                PlayedTrack(
                    track_id=previous.track_id,
                    name=previous.name,
                    artist=previous.artist,
                    played_at=previous.started_at,
                    source=previous.source,
                ),
            )
        self._state.now_playing = now_playing
        logger.info(
            "Now playing %s - %s (%s)", now_playing.name, now_playing.artist, now_playing.source.value
        )
        self._recommendations = self.flow_engine.rescore(self._pool, now_playing)

    def add_to_queue(
        self,
        track: Track,
        position: Optional[int] = None,
        source: CueSource = CueSource.QRATE,
    ) -> DJDashboardState:
        """Insert at a 1-indexed ``position`` (clamped to the queue) or append."""
        with self._lock:
            queue = self._state.queue
            queued = QueuedTrack(
                track_id=track.track_id,
                name=track.name,
                artist=track.artist,
                album=track.album,
                audio_features=track.audio_features,
                queue_position=len(queue) + 1,
                added_at=self._clock(),
                source=source,
            )
            if position is None:
                queue.append(queued)
            else:
                queue.insert(_clamp_position(position, len(queue) + 1) - 1, queued)
            _renumber(queue)
            return copy.deepcopy(self._state)

    def remove_from_queue(self, track_id: str) -> DJDashboardState:
        """Remove every queue entry for ``track_id``; unknown ids are a no-op."""
        with self._lock:
            self._state.queue = [q for q in self._state.queue if q.track_id != track_id]
            _renumber(self._state.queue)
            return copy.deepcopy(self._state)

    def reorder_queue(self, track_id: str, new_position: int) -> DJDashboardState:
        """Move ``track_id`` to ``new_position``; unknown ids are a no-op."""
        with self._lock:
            queue = self._state.queue
            index = next((i for i, q in enumerate(queue) if q.track_id == track_id), None)
            if index is not None:
                moved = queue.pop(index)
                queue.insert(_clamp_position(new_position, len(queue) + 1) - 1, moved)
                _renumber(queue)
            return copy.deepcopy(self._state)

    def is_in_queue(self, track_id: str) -> bool:
        with self._lock:
            return any(q.track_id == track_id for q in self._state.queue)

    def next_suggestion(self) -> Optional[QueuedTrack]:
        with self._lock:
            return copy.deepcopy(self._state.queue[0]) if self._state.queue else None

    def was_recently_played(
        self,
        track_id: str,
        window_minutes: int = DEFAULT_RECENT_WINDOW_MINUTES,
        now: Optional[datetime] = None,
    ) -> bool:
        with self._lock:
            return was_recently_played(
                self._state, track_id, window_minutes, now or self._clock()
            )


def was_recently_played(
    state: DJDashboardState,
    track_id: str,
    window_minutes: int = DEFAULT_RECENT_WINDOW_MINUTES,
    now: Optional[datetime] = None,
) -> bool:
    """Whether the history holds ``track_id`` played within the window."""
    cutoff = (now or utc_now()) - timedelta(minutes=window_minutes)
    return any(
        played.track_id == track_id and played.played_at > cutoff
        for played in state.play_history
    )


def elapsed_label(now_playing: Optional[NowPlayingTrack], now: Optional[datetime] = None) -> str:
    """``m:ss`` since the now-playing track started."""
    if now_playing is None:
        return ""
    elapsed = max(0, int(((now or utc_now()) - now_playing.started_at).total_seconds()))
    minutes, seconds = divmod(elapsed, 60)
    return f"{minutes}:{seconds:02d}"


def source_label(source: CueSource, rank: Optional[int] = None) -> str:
    if source == CueSource.QRATE and rank is not None:
        return f"QRate #{rank}"
    if source == CueSource.OFF_BOOK:
        return "Off-Book"
    return "QRate"


def played_time_label(played_at: datetime, now: Optional[datetime] = None) -> str:
    minutes = int(((now or utc_now()) - played_at).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes == 1:
        return "1 min ago"
    if minutes < 60:
        return f"{minutes} min ago"

    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    return f"{hours} hours ago"


def format_play_history(
    history: Sequence[PlayedTrack],
    limit: int = 10,
    now: Optional[datetime] = None,
) -> list[dict]:
    """Most recent plays as display rows."""
    return [
        {
            "track_id": played.track_id,
            "name": played.name,
            "artist": played.artist,
            "played_at": played_time_label(played.played_at, now),
            "source": source_label(played.source),
        }
        for played in history[:limit]
    ]
