"""Event, guest arrival and decay configuration models."""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

SMALL_EVENT_THRESHOLD = 20
DEFAULT_GEOFENCE_RADIUS_M = 100.0


class EventSize(str, Enum):
    """Event size class; small events skip presence tracking."""

    SMALL = "small"
    LARGE = "large"

    @classmethod
    def for_guest_count(
        cls, guest_count: int, threshold: int = SMALL_EVENT_THRESHOLD
    ) -> "EventSize":
        return cls.SMALL if guest_count < threshold else cls.LARGE


class PresenceStatus(str, Enum):
    """Whether a guest is physically at the event."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class EventPhase(str, Enum):
    PRE_PARTY = "pre_party"
    LIVE = "live"


@dataclass(frozen=True)
class Coordinates:
    """WGS84 coordinates in degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class EventConfig:
    """Event settings fixed at setup time."""

    event_id: str
    start_time: datetime
    event_size: EventSize = EventSize.LARGE
    geofence_enabled: bool = False
    geofence_center: Optional[Coordinates] = None
    geofence_radius_m: float = DEFAULT_GEOFENCE_RADIUS_M
    name: Optional[str] = None


@dataclass(frozen=True)
class DecayConfig:
    """Hourly decay rates applied to guest influence."""

    present_decay_rate: float = 0.90  # 10% decay per hour
    absent_decay_rate: float = 0.40  # 60% decay per hour
    gentle_decay_for_all: bool = False

    @property
    def unknown_decay_rate(self) -> float:
        return (self.present_decay_rate + self.absent_decay_rate) / 2


DEFAULT_DECAY_CONFIG = DecayConfig()
SMALL_EVENT_DECAY_CONFIG = DecayConfig(
    present_decay_rate=0.90,
    absent_decay_rate=0.90,
    gentle_decay_for_all=True,
)


def arrival_cohort(arrival_time: datetime, event_start: datetime) -> int:
    """Hour bucket a guest arrived in; 0 for pre-party or arrival at start."""
    seconds = (arrival_time - event_start).total_seconds()
    if seconds <= 0:
        return 0
    return math.floor(seconds / 3600)


@dataclass(frozen=True)
class GuestArrival:
    """A guest's arrival and last known location.

    ``cohort_index`` is derived from ``arrival_time``; build instances with
    :meth:`for_event` rather than passing a cohort by hand.
    """

    user_id: str
    arrival_time: datetime
    cohort_index: int = 0
    presence_status: PresenceStatus = PresenceStatus.UNKNOWN
    coordinates: Optional[Coordinates] = None
    last_location_update: Optional[datetime] = None

    @classmethod
    def for_event(
        cls,
        user_id: str,
        arrival_time: datetime,
        event: EventConfig,
        coordinates: Optional[Coordinates] = None,
        last_location_update: Optional[datetime] = None,
        presence_status: PresenceStatus = PresenceStatus.UNKNOWN,
    ) -> "GuestArrival":
        return cls(
            user_id=user_id,
            arrival_time=arrival_time,
            cohort_index=arrival_cohort(arrival_time, event.start_time),
            presence_status=presence_status,
            coordinates=coordinates,
            last_location_update=last_location_update,
        )
