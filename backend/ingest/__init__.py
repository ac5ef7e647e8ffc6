"""Guest music data ingestion."""

from ingest.guest_data import (
    GuestMusicData,
    GuestProcessingOptions,
    ProcessedGuest,
    ValidationResult,
    contribution_summary,
    normalize_guest_data,
    process_guest_data,
    validate_guest_data,
)
from ingest.vibe_gate import GateResult, PassThroughGate, PredicateGate, VibeGate, tracks_per_person

__all__ = [
    "GateResult",
    "GuestMusicData",
    "GuestProcessingOptions",
    "PassThroughGate",
    "PredicateGate",
    "ProcessedGuest",
    "ValidationResult",
    "VibeGate",
    "contribution_summary",
    "normalize_guest_data",
    "process_guest_data",
    "tracks_per_person",
    "validate_guest_data",
]
