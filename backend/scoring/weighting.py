"""Context-aware time decay of guest influence.

Guests who arrived long ago, or who have left the venue, should pull the
pool less than guests on the dance floor right now. The multiplier is a
pure function of the guest, the event configuration and the current time;
nothing is cached between calls.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

import numpy as np

from models.event import (
    DEFAULT_DECAY_CONFIG,
    Coordinates,
    DecayConfig,
    EventConfig,
    EventPhase,
    EventSize,
    GuestArrival,
    PresenceStatus,
)
from scoring.primitives import presence_decay

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371e3
LOCATION_STALE_MINUTES = 15.0


@dataclass(frozen=True)
class DecayResult:
    multiplier: float
    presence_status: PresenceStatus
    hours_since_arrival: float
    decay_rate: float


@dataclass(frozen=True)
class WeightingMetadata:
    cohort: int
    presence_status: PresenceStatus
    hours_since_arrival: float
    decay_rate: float


@dataclass(frozen=True)
class WeightingResult:
    """Weighted PTS plus the values that produced it, for auditing."""

    base_pts: float
    time_decay_multiplier: float
    weighted_pts: float
    metadata: WeightingMetadata


def haversine_distance_m(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two coordinates in meters."""
    lat1, lon1, lat2, lon2 = np.radians([a.lat, a.lon, b.lat, b.lon])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))
    return float(EARTH_RADIUS_M * c)


def hours_since_arrival(arrival_time: datetime, now: datetime) -> float:
    return max(0.0, (now - arrival_time).total_seconds() / 3600)


def event_phase(event_start: datetime, now: datetime) -> EventPhase:
    return EventPhase.LIVE if now >= event_start else EventPhase.PRE_PARTY


def group_guests_by_cohort(guests: Iterable[GuestArrival]) -> dict[int, list[GuestArrival]]:
    cohorts: dict[int, list[GuestArrival]] = {}
    for guest in guests:
        cohorts.setdefault(guest.cohort_index, []).append(guest)
    return cohorts


class ContextualWeightingEngine:
    """Applies presence-aware time decay to Personal Taste Scores."""

    def __init__(
        self,
        decay_config: DecayConfig = DEFAULT_DECAY_CONFIG,
        location_stale_minutes: float = LOCATION_STALE_MINUTES,
    ) -> None:
        """Initialize the weighting engine.

        Args:
            decay_config: Hourly decay rates for present/absent guests.
            location_stale_minutes: Age after which a location fix is ignored.
        """
        self.decay_config = decay_config
        self.location_stale_minutes = location_stale_minutes

    def presence_status(
        self,
        guest: GuestArrival,
        event: EventConfig,
        now: Optional[datetime] = None,
    ) -> PresenceStatus:
        """Determine whether a guest is inside the event geofence."""
        now = now or datetime.now(timezone.utc)

        if event.event_size == EventSize.SMALL:
            return PresenceStatus.PRESENT

        if not event.geofence_enabled:
            return PresenceStatus.UNKNOWN

        if guest.coordinates is None or event.geofence_center is None:
            return PresenceStatus.UNKNOWN

        if guest.last_location_update is None:
            return PresenceStatus.UNKNOWN

        age_minutes = (now - guest.last_location_update).total_seconds() / 60
        if age_minutes > self.location_stale_minutes:
            return PresenceStatus.UNKNOWN

        distance = haversine_distance_m(guest.coordinates, event.geofence_center)
        if distance <= event.geofence_radius_m:
            return PresenceStatus.PRESENT
        return PresenceStatus.ABSENT

    def decay_multiplier(
        self,
        guest: GuestArrival,
        event: EventConfig,
        now: Optional[datetime] = None,
    ) -> DecayResult:
        """Compute ``D ** h`` for a guest.

        Small events (or gentle decay for all) use the present rate for
        everyone; otherwise present, absent and unknown guests each get
        their own rate, unknown being the mean of the other two.
        """
        now = now or datetime.now(timezone.utc)
        config = self.decay_config
        hours = hours_since_arrival(guest.arrival_time, now)

        if config.gentle_decay_for_all or event.event_size == EventSize.SMALL:
            rate = config.present_decay_rate
            return DecayResult(
                multiplier=presence_decay(rate, hours),
                presence_status=PresenceStatus.PRESENT,
                hours_since_arrival=hours,
                decay_rate=rate,
            )

        status = self.presence_status(guest, event, now)
        if status == PresenceStatus.PRESENT:
            rate = config.present_decay_rate
        elif status == PresenceStatus.ABSENT:
            rate = config.absent_decay_rate
        else:
            rate = config.unknown_decay_rate

        return DecayResult(
            multiplier=presence_decay(rate, hours),
            presence_status=status,
            hours_since_arrival=hours,
            decay_rate=rate,
        )

    def apply(
        self,
        base_pts: float,
        guest: GuestArrival,
        event: EventConfig,
        now: Optional[datetime] = None,
    ) -> WeightingResult:
        """Weight a base PTS by the guest's time decay multiplier."""
        decay = self.decay_multiplier(guest, event, now)
        return WeightingResult(
            base_pts=base_pts,
            time_decay_multiplier=decay.multiplier,
            weighted_pts=base_pts * decay.multiplier,
            metadata=WeightingMetadata(
                cohort=guest.cohort_index,
                presence_status=decay.presence_status,
                hours_since_arrival=decay.hours_since_arrival,
                decay_rate=decay.decay_rate,
            ),
        )
