"""Camelot wheel key relations for harmonic mixing."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from caching.caches import HarmonicPairCache

CAMELOT_PATTERN = re.compile(r"^(\d{1,2})([AB])$", re.IGNORECASE)


class KeyRelation(str, Enum):
    """How a candidate key relates to the key currently playing."""

    PERFECT = "perfect"  # same key
    ENERGY_BOOST = "energy_boost"  # one step up, same letter
    ENERGY_DROP = "energy_drop"  # one step down, same letter
    NONE = "none"

    @property
    def is_match(self) -> bool:
        return self != KeyRelation.NONE

    @property
    def label(self) -> str:
        return KEY_RELATION_LABELS[self]


KEY_RELATION_LABELS = {
    KeyRelation.PERFECT: "Perfect Match",
    KeyRelation.ENERGY_BOOST: "Energy Boost",
    KeyRelation.ENERGY_DROP: "Energy Drop",
    KeyRelation.NONE: "No Relation",
}


@dataclass(frozen=True)
class CamelotKey:
    number: int  # 1-12
    letter: str  # "A" (minor) or "B" (major)

    def __str__(self) -> str:
        return f"{self.number}{self.letter}"

    def step(self, offset: int) -> "CamelotKey":
        """Move around the wheel keeping the letter, wrapping 12 <-> 1."""
        return CamelotKey(number=(self.number - 1 + offset) % 12 + 1, letter=self.letter)


def parse_camelot(key: Optional[str]) -> Optional[CamelotKey]:
    """Parse ``"8A"``-style notation; returns None for anything else."""
    if not key:
        return None
    match = CAMELOT_PATTERN.match(key.strip())
    if not match:
        return None
    number = int(match.group(1))
    if not 1 <= number <= 12:
        return None
    return CamelotKey(number=number, letter=match.group(2).upper())


def compatible_keys(key: str) -> dict[str, str]:
    """Keys that mix harmonically with ``key``.

    Returns:
        Dict with ``perfect``, ``energy_boost`` and ``energy_drop`` keys.
    """
    parsed = parse_camelot(key)
    if parsed is None:
        raise ValueError(f"Not a Camelot key: {key!r}")
    return {
        "perfect": str(parsed),
        "energy_boost": str(parsed.step(1)),
        "energy_drop": str(parsed.step(-1)),
    }


def key_relation(candidate_key: Optional[str], current_key: Optional[str]) -> KeyRelation:
    """Relation of ``candidate_key`` to the key currently playing."""
    candidate = parse_camelot(candidate_key)
    current = parse_camelot(current_key)
    if candidate is None or current is None:
        return KeyRelation.NONE

    if candidate == current:
        return KeyRelation.PERFECT
    if candidate == current.step(1):
        return KeyRelation.ENERGY_BOOST
    if candidate == current.step(-1):
        return KeyRelation.ENERGY_DROP
    return KeyRelation.NONE


class HarmonicMatcher:
    """Key relation lookups backed by a shared pair cache."""

    def __init__(self, cache: Optional[HarmonicPairCache] = None) -> None:
        self.cache = cache if cache is not None else HarmonicPairCache()

    def relation(self, candidate_key: Optional[str], current_key: Optional[str]) -> KeyRelation:
        if not candidate_key or not current_key:
            return KeyRelation.NONE
        return self.cache.relation(
            candidate_key.upper(), current_key.upper(), key_relation
        )
