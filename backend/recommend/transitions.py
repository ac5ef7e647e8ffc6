"""Transition analysis between two tracks.

Energy values here are on a 0-100 scale; provider energies (0-1) are
scaled by the caller.
"""

from dataclasses import dataclass
from enum import Enum

BASE_COMPATIBILITY = 20
KEY_MATCH_BONUS = 10
MAX_BPM_SCORE = 40
MAX_ENERGY_SCORE = 30


class TransitionQuality(str, Enum):
    PERFECT = "perfect"
    SEAMLESS = "seamless"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    CHALLENGING = "challenging"


class EnergyProgression(str, Enum):
    BUILDING = "building"
    MAINTAINING = "maintaining"
    WINDING_DOWN = "winding_down"


@dataclass(frozen=True)
class TransitionAnalysis:
    quality: TransitionQuality
    quality_score: float
    bpm_difference: float
    energy_change: float
    progression: EnergyProgression
    advice: str


def bpm_score(bpm_diff: float) -> float:
    """Tempo compatibility, out of 40."""
    bpm_diff = abs(bpm_diff)
    if bpm_diff <= 5:
        return 40
    if bpm_diff <= 10:
        return 35
    if bpm_diff <= 15:
        return 30
    if bpm_diff <= 25:
        return 25
    return max(0, 30 - (bpm_diff - 15))


def energy_score(energy_diff: float) -> float:
    """Energy compatibility, out of 30."""
    energy_diff = abs(energy_diff)
    if energy_diff <= 10:
        return 30
    if energy_diff <= 20:
        return 25
    if energy_diff <= 30:
        return 20
    return max(0, 20 - (energy_diff - 20))


def transition_score(bpm_diff: float, energy_diff: float, key_match: bool = False) -> float:
    """Overall 0-100 transition score."""
    score = (
        bpm_score(bpm_diff)
        + energy_score(energy_diff)
        + (KEY_MATCH_BONUS if key_match else 0)
        + BASE_COMPATIBILITY
    )
    return max(0, min(100, score))


def transition_quality(bpm_diff: float, energy_diff: float) -> TransitionQuality:
    """Quality label from tempo and energy deltas, independent of the score."""
    bpm_diff = abs(bpm_diff)
    energy_diff = abs(energy_diff)

    if bpm_diff <= 5 and energy_diff <= 10:
        return TransitionQuality.PERFECT
    if bpm_diff <= 10 and energy_diff <= 20:
        return TransitionQuality.SEAMLESS
    if bpm_diff <= 15:
        return TransitionQuality.GOOD
    if bpm_diff <= 25:
        return TransitionQuality.ACCEPTABLE
    return TransitionQuality.CHALLENGING


def energy_progression(current_energy: float, next_energy: float) -> EnergyProgression:
    change = next_energy - current_energy
    if change > 10:
        return EnergyProgression.BUILDING
    if change < -10:
        return EnergyProgression.WINDING_DOWN
    return EnergyProgression.MAINTAINING


def analyze_transition(
    current_bpm: float,
    next_bpm: float,
    current_energy: float = 75,
    next_energy: float = 75,
    key_match: bool = False,
) -> TransitionAnalysis:
    """Full transition analysis with mixing advice."""
    bpm_diff = abs(current_bpm - next_bpm)
    energy_change = next_energy - current_energy
    progression = energy_progression(current_energy, next_energy)

    advice = []
    if bpm_diff <= 5:
        advice.append("BPM nearly identical")
    elif bpm_diff <= 10:
        advice.append("BPM close match")
    elif bpm_diff <= 15:
        advice.append("BPM within acceptable range")
    elif bpm_diff <= 25:
        advice.append("BPM needs adjustment")
    else:
        advice.append("BPM jump - consider transition track")

    if abs(energy_change) <= 10:
        advice.append("energy stays similar")
    elif energy_change > 10:
        advice.append(f"{round(energy_change)}% energy boost")
    else:
        advice.append(f"{abs(round(energy_change))}% energy drop")

    if progression == EnergyProgression.BUILDING and energy_change > 20:
        advice.append("big energy jump - good for peak moments")
    elif progression == EnergyProgression.WINDING_DOWN and energy_change < -20:
        advice.append("significant energy drop - better for set end")

    if key_match:
        advice.append("harmonic key match")

    return TransitionAnalysis(
        quality=transition_quality(bpm_diff, energy_change),
        quality_score=transition_score(bpm_diff, energy_change, key_match),
        bpm_difference=bpm_diff,
        energy_change=energy_change,
        progression=progression,
        advice=" • ".join(advice),
    )
