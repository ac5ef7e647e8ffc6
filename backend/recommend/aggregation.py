"""Cross-guest aggregation of weighted PTS into one ranked track pool."""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Optional

from models import (
    AggregatedTrack,
    Contributor,
    Coordinates,
    EventConfig,
    GuestContribution,
    WeightedTrackEntry,
)
from scoring.weighting import ContextualWeightingEngine

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ContributionListener = Callable[[GuestContribution, "SubmissionOutcome"], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionOutcome(str, Enum):
    ACCEPTED = "accepted"  # first contribution from this guest
    REPLACED = "replaced"  # new content superseded the previous contribution
    UNCHANGED = "unchanged"  # identical fingerprint, nothing to do

    @property
    def changed(self) -> bool:
        return self != SubmissionOutcome.UNCHANGED


def aggregate_contributions(
    contributions: Iterable[GuestContribution],
    event: EventConfig,
    weighting_engine: Optional[ContextualWeightingEngine] = None,
    now: Optional[datetime] = None,
) -> list[AggregatedTrack]:
    """Group every guest's tracks by id and rank them by total weighted PTS.

    Args:
        contributions: Current contribution of each guest.
        event: Event the contributions belong to.
        weighting_engine: Engine applying presence-aware time decay.
        now: Reference time for the decay, defaults to the current UTC time.

    Returns:
        Aggregated tracks sorted by total PTS descending, ties by track id.
    """
    weighting_engine = weighting_engine or ContextualWeightingEngine()
    now = now or utc_now()

    entries: dict[str, list[tuple[WeightedTrackEntry, Contributor]]] = {}
    for contribution in sorted(contributions, key=lambda c: c.user_id):
        arrival = contribution.arrival
        for entry in contribution.tracks:
            result = weighting_engine.apply(entry.pts, arrival, event, now)
            contributor = Contributor(
                user_id=contribution.user_id,
                display_name=contribution.display_name,
                base_pts=entry.pts,
                weighted_pts=result.weighted_pts,
                time_decay_multiplier=result.time_decay_multiplier,
                cohort=result.metadata.cohort,
                presence_status=result.metadata.presence_status,
            )
            entries.setdefault(entry.id, []).append((entry, contributor))

    pool = []
    for track_id, track_entries in entries.items():
        contributors = sorted(
            (contributor for _, contributor in track_entries),
            key=lambda c: (-c.weighted_pts, c.user_id),
        )
        total = sum(contributor.weighted_pts for contributor in contributors)
        base_total = sum(contributor.base_pts for contributor in contributors)
        first = track_entries[0][0]
        features = next(
            (entry.audio_features for entry, _ in track_entries if entry.audio_features),
            None,
        )
        pool.append(
            AggregatedTrack(
                track_id=track_id,
                name=first.name,
                artist=first.artist,
                album=first.album,
                audio_features=features,
                explicit=any(entry.explicit for entry, _ in track_entries),
                release_date=next(
                    (entry.release_date for entry, _ in track_entries if entry.release_date),
                    None,
                ),
                total_pts=total,
                average_pts=base_total / len(contributors),
                contributor_count=len(contributors),
                contributors=contributors,
                top_contributor=contributors[0].display_name,
            )
        )

    pool.sort(key=lambda track: (-track.total_pts, track.track_id))
    return pool


class ContributionRegistry:
    """Latest contribution per guest, replaced atomically on resubmission."""

    def __init__(self) -> None:
        self._contributions: dict[str, GuestContribution] = {}
        self._lock = threading.Lock()

    def submit(self, contribution: GuestContribution) -> SubmissionOutcome:
        with self._lock:
            current = self._contributions.get(contribution.user_id)
            if current is not None and current.fingerprint == contribution.fingerprint:
                return SubmissionOutcome.UNCHANGED
            self._contributions[contribution.user_id] = contribution

        if current is None:
            return SubmissionOutcome.ACCEPTED
        return SubmissionOutcome.REPLACED

    def update_location(
        self,
        user_id: str,
        coordinates: Coordinates,
        updated_at: datetime,
    ) -> Optional[GuestContribution]:
        """Record a guest's latest location; returns None for unknown guests."""
        with self._lock:
            current = self._contributions.get(user_id)
            if current is None:
                return None
            updated = replace(
                current, coordinates=coordinates, last_location_update=updated_at
            )
            self._contributions[user_id] = updated
            return updated

    def remove(self, user_id: str) -> bool:
        with self._lock:
            return self._contributions.pop(user_id, None) is not None

    def get(self, user_id: str) -> Optional[GuestContribution]:
        with self._lock:
            return self._contributions.get(user_id)

    def snapshot(self) -> tuple[GuestContribution, ...]:
        with self._lock:
            return tuple(self._contributions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._contributions)


class AggregationEngine:
    """Owns an event's contributions and its latest ranked pool.

    Changes schedule a recomputation. With ``debounce_seconds`` set, bursts
    of submissions coalesce into one recomputation on a timer thread;
    otherwise the pool is rebuilt before ``submit`` returns.
    """

    def __init__(
        self,
        event: EventConfig,
        weighting_engine: Optional[ContextualWeightingEngine] = None,
        debounce_seconds: float = 0.0,
        clock: Clock = utc_now,
    ) -> None:
        self.event = event
        self.weighting_engine = weighting_engine or ContextualWeightingEngine()
        self.debounce_seconds = debounce_seconds
        self.registry = ContributionRegistry()
        self._clock = clock
        self._pool: list[AggregatedTrack] = []
        self._pool_lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._listeners: list[ContributionListener] = []

    def on_accepted(self, listener: ContributionListener) -> None:
        """Register a callback for accepted or replaced contributions."""
        self._listeners.append(listener)

    def submit(self, contribution: GuestContribution) -> SubmissionOutcome:
        outcome = self.registry.submit(contribution)
        if not outcome.changed:
            logger.info("Contribution from %s unchanged, skipping", contribution.user_id)
            return outcome

        logger.info(
            "Contribution from %s %s (%d tracks)",
            contribution.user_id,
            outcome.value,
            len(contribution.tracks),
        )
        for listener in self._listeners:
            listener(contribution, outcome)
        self.schedule()
        return outcome

    def update_location(
        self,
        user_id: str,
        coordinates: Coordinates,
        updated_at: Optional[datetime] = None,
    ) -> bool:
        updated = self.registry.update_location(
            user_id, coordinates, updated_at or self._clock()
        )
        if updated is None:
            return False
        self.schedule()
        return True

    def remove(self, user_id: str) -> bool:
        removed = self.registry.remove(user_id)
        if removed:
            self.schedule()
        return removed

    def schedule(self) -> None:
        """Recompute now, or restart the debounce timer."""
        if self.debounce_seconds <= 0:
            self.refresh()
            return

        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self.refresh)
            self._timer.daemon = True
            self._timer.start()

    def refresh(self, now: Optional[datetime] = None) -> list[AggregatedTrack]:
        """Rebuild the pool from a registry snapshot.

        Rebuilds run one at a time so a stale snapshot never overwrites the
        pool built from a newer one.
        """
        with self._refresh_lock:
            contributions = self.registry.snapshot()
            pool = aggregate_contributions(
                contributions, self.event, self.weighting_engine, now or self._clock()
            )
            with self._pool_lock:
                self._pool = pool
        logger.debug(
            "Aggregated %d contributions into %d tracks", len(contributions), len(pool)
        )
        return pool

    def pool(self, limit: Optional[int] = None) -> list[AggregatedTrack]:
        with self._pool_lock:
            pool = list(self._pool)
        return pool[:limit] if limit is not None else pool

    def close(self) -> None:
        """Cancel a pending debounced recomputation."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
