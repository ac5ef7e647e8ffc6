"""In-memory event container wiring the scoring pipeline to the API."""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

from api.config import Settings
from caching import ArtworkIndexCache, HarmonicPairCache
from dj.workflow import DJSession
from ingest.guest_data import (
    GuestProcessingOptions,
    ProcessedGuest,
    ValidationResult,
    process_guest_data,
    validate_guest_data,
)
from models import (
    SMALL_EVENT_DECAY_CONFIG,
    AggregatedTrack,
    Coordinates,
    DecayConfig,
    EventConfig,
    EventSize,
)
from models.errors import EventNotFoundError
from recommend.aggregation import AggregationEngine, SubmissionOutcome
from recommend.engine import FlowEngine
from recommend.filters import SmartFiltersConfig, apply_smart_filters
from recommend.harmonic import HarmonicMatcher
from recommend.ranking import DJ_PRESETS, RankingConfig, RankingMode, rank_pool
from scoring.weighting import ContextualWeightingEngine

logger = logging.getLogger(__name__)


@dataclass
class EventRuntime:
    """Live state of one event."""

    config: EventConfig
    expected_guest_count: int
    aggregation: AggregationEngine
    dj: DJSession
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_id(self) -> str:
        return self.config.event_id


@dataclass
class SubmissionResult:
    validation: ValidationResult
    outcome: Optional[SubmissionOutcome] = None
    processed: Optional[ProcessedGuest] = None


class EventService:
    """Owns every event plus the caches shared between them."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.harmonic_cache = HarmonicPairCache(maxsize=settings.harmonic_cache_size)
        self.artwork_cache = ArtworkIndexCache()
        self._events: dict[str, EventRuntime] = {}
        self._lock = threading.Lock()

    def decay_config_for(self, event_size: EventSize) -> DecayConfig:
        if event_size == EventSize.SMALL:
            return SMALL_EVENT_DECAY_CONFIG
        return DecayConfig(
            present_decay_rate=self.settings.present_decay_rate,
            absent_decay_rate=self.settings.absent_decay_rate,
            gentle_decay_for_all=self.settings.gentle_decay_for_all,
        )

    def create_event(
        self,
        event_id: Optional[str] = None,
        name: Optional[str] = None,
        start_time: Optional[datetime] = None,
        expected_guest_count: Optional[int] = None,
        geofence_enabled: bool = False,
        geofence_center: Optional[Coordinates] = None,
        geofence_radius_m: Optional[float] = None,
    ) -> EventRuntime:
        """Register a new event, replacing any event with the same id."""
        guest_count = expected_guest_count or self.settings.default_guest_count
        event_size = EventSize.for_guest_count(guest_count, self.settings.small_event_threshold)
        config = EventConfig(
            event_id=event_id or uuid.uuid4().hex,
            name=name,
            start_time=start_time or datetime.now(timezone.utc),
            event_size=event_size,
            geofence_enabled=geofence_enabled,
            geofence_center=geofence_center,
            geofence_radius_m=geofence_radius_m or self.settings.geofence_default_radius_m,
        )

        weighting = ContextualWeightingEngine(
            decay_config=self.decay_config_for(event_size),
            location_stale_minutes=self.settings.location_stale_minutes,
        )
        flow_engine = FlowEngine(HarmonicMatcher(self.harmonic_cache))
        runtime = EventRuntime(
            config=config,
            expected_guest_count=guest_count,
            aggregation=AggregationEngine(
                config,
                weighting_engine=weighting,
                debounce_seconds=self.settings.aggregation_debounce_seconds,
            ),
            dj=DJSession(flow_engine=flow_engine),
        )

        with self._lock:
            previous = self._events.get(config.event_id)
            self._events[config.event_id] = runtime
        if previous is not None:
            previous.aggregation.close()

        logger.info(
            "Created event %s (%s, %d expected guests)",
            config.event_id,
            event_size.value,
            guest_count,
        )
        return runtime

    def get(self, event_id: str) -> EventRuntime:
        with self._lock:
            runtime = self._events.get(event_id)
        if runtime is None:
            raise EventNotFoundError(event_id)
        return runtime

    def submit_contribution(
        self,
        event_id: str,
        payload: dict[str, Any],
        user_id: Optional[str] = None,
        arrival_time: Optional[datetime] = None,
        coordinates: Optional[Coordinates] = None,
    ) -> SubmissionResult:
        """Validate, score and register a guest's music data."""
        runtime = self.get(event_id)
        validation = validate_guest_data(payload)
        if not validation.valid:
            logger.warning("Rejected guest data for %s: %s", event_id, validation.errors)
            return SubmissionResult(validation=validation)

        processed = process_guest_data(
            payload,
            GuestProcessingOptions(
                user_id=user_id,
                guest_count=runtime.expected_guest_count,
                vibe_gate_enabled=self.settings.vibe_gate_enabled,
                arrival_time=arrival_time,
                coordinates=coordinates,
                decay_constant=self.settings.rank_decay_constant,
                event=runtime.config,
            ),
        )

        # A resubmission keeps the guest's arrival and location unless new ones are given.
        contribution = processed.contribution
        previous = runtime.aggregation.registry.get(contribution.user_id)
        if previous is not None:
            if arrival_time is None:
                contribution = replace(
                    contribution,
                    arrival_time=previous.arrival_time,
                    cohort_index=previous.cohort_index,
                )
            if coordinates is None:
                contribution = replace(
                    contribution,
                    coordinates=previous.coordinates,
                    last_location_update=previous.last_location_update,
                )
            processed = replace(processed, contribution=contribution)

        outcome = runtime.aggregation.submit(contribution)
        return SubmissionResult(validation=validation, outcome=outcome, processed=processed)

    def update_location(
        self,
        event_id: str,
        user_id: str,
        coordinates: Coordinates,
        updated_at: Optional[datetime] = None,
    ) -> bool:
        return self.get(event_id).aggregation.update_location(user_id, coordinates, updated_at)

    def pool(self, event_id: str, limit: Optional[int] = None) -> list[AggregatedTrack]:
        return self.get(event_id).aggregation.pool(limit)

    def recommendations(
        self,
        event_id: str,
        mode: RankingMode = RankingMode.HITFINDER,
        preset: str = "balanced",
        limit: Optional[int] = None,
        filters: Optional[SmartFiltersConfig] = None,
    ) -> list[AggregatedTrack]:
        """Pool rescored against now playing, minus queued and recent tracks.

        Raises:
            KeyError: If ``preset`` is not a known DJ preset.
            ValueError: If the smart filters carry an unparseable era.
        """
        runtime = self.get(event_id)
        weights = DJ_PRESETS[preset]
        candidates = runtime.dj.set_pool(runtime.aggregation.pool())

        state = runtime.dj.state
        playing = state.now_playing.track_id if state.now_playing else None
        window = self.settings.repeat_window_minutes
        candidates = [
            track
            for track in candidates
            if track.track_id != playing
            and not runtime.dj.is_in_queue(track.track_id)
            and not runtime.dj.was_recently_played(track.track_id, window)
        ]

        ranked = rank_pool(
            candidates,
            state.play_history,
            RankingConfig(
                mode=mode,
                weights=weights,
                repeat_window_minutes=window,
                artist_fatigue_count=self.settings.artist_fatigue_count,
            ),
        )
        if filters is not None:
            ranked = apply_smart_filters(ranked, state.play_history, filters)
        return ranked[:limit] if limit is not None else ranked

    def close(self) -> None:
        with self._lock:
            runtimes = list(self._events.values())
        for runtime in runtimes:
            runtime.aggregation.close()
