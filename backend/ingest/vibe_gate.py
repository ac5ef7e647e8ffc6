"""Vibe Gate contract.

The gate policy itself is configured per event and lives outside the core.
This module fixes the shape of that policy, the statistics it reports and
the contribution sizing rule (more guests means fewer tracks per guest).
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence

from models.track import TrackMetadata

TracksPerPersonFn = Callable[[int], int]


@dataclass(frozen=True)
class GateStats:
    total: int
    passed: int
    failed: int
    pass_rate: float  # percent


@dataclass
class GateResult:
    """Outcome of filtering a guest's tracks through the gate.

    An empty ``passed`` list is a valid outcome, not an error.
    """

    passed: list[TrackMetadata] = field(default_factory=list)
    failed: list[TrackMetadata] = field(default_factory=list)

    @property
    def stats(self) -> GateStats:
        total = len(self.passed) + len(self.failed)
        return GateStats(
            total=total,
            passed=len(self.passed),
            failed=len(self.failed),
            pass_rate=(len(self.passed) / total * 100) if total else 0.0,
        )


class VibeGate(Protocol):
    """Admissibility policy applied to a guest's tracks."""

    def filter(
        self, tracks: Sequence[TrackMetadata], profile: Optional[Any]
    ) -> GateResult:
        ...


class PassThroughGate:
    """Gate that admits every track."""

    def filter(
        self, tracks: Sequence[TrackMetadata], profile: Optional[Any] = None
    ) -> GateResult:
        return GateResult(passed=list(tracks))


class PredicateGate:
    """Gate built from a plain ``(track, profile) -> bool`` callable."""

    def __init__(self, predicate: Callable[[TrackMetadata, Optional[Any]], bool]) -> None:
        self.predicate = predicate

    def filter(
        self, tracks: Sequence[TrackMetadata], profile: Optional[Any] = None
    ) -> GateResult:
        result = GateResult()
        for track in tracks:
            if self.predicate(track, profile):
                result.passed.append(track)
            else:
                result.failed.append(track)
        return result


def tracks_per_person(guest_count: int) -> int:
    """Contribution size: ``max(10, min(100, round(500 / guests)))``, 50 when unknown."""
    if guest_count <= 0:
        return 50
    # half-up rounding, e.g. 8 guests -> 63 tracks
    return max(10, min(100, math.floor(500 / guest_count + 0.5)))
