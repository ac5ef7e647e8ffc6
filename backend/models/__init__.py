"""Domain models for QRate."""

from models.contribution import (
    AggregatedTrack,
    Contributor,
    GuestContribution,
    PTSBreakdown,
    PTSResult,
    WeightedTrackEntry,
)
from models.event import (
    DEFAULT_DECAY_CONFIG,
    SMALL_EVENT_DECAY_CONFIG,
    Coordinates,
    DecayConfig,
    EventConfig,
    EventPhase,
    EventSize,
    GuestArrival,
    PresenceStatus,
)
from models.session import (
    CueSource,
    DJDashboardState,
    NowPlayingTrack,
    PlayedTrack,
    QueuedTrack,
)
from models.track import AudioFeatures, Timeframe, Track, TrackMetadata

__all__ = [
    "AggregatedTrack",
    "AudioFeatures",
    "Contributor",
    "Coordinates",
    "CueSource",
    "DEFAULT_DECAY_CONFIG",
    "DJDashboardState",
    "DecayConfig",
    "EventConfig",
    "EventPhase",
    "EventSize",
    "GuestArrival",
    "GuestContribution",
    "NowPlayingTrack",
    "PTSBreakdown",
    "PTSResult",
    "PlayedTrack",
    "PresenceStatus",
    "QueuedTrack",
    "SMALL_EVENT_DECAY_CONFIG",
    "Timeframe",
    "Track",
    "TrackMetadata",
    "WeightedTrackEntry",
]
