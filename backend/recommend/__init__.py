"""Aggregation, harmonic matching and flow ranking."""

from recommend.aggregation import (
    AggregationEngine,
    ContributionRegistry,
    SubmissionOutcome,
    aggregate_contributions,
)
from recommend.engine import FlowEngine, FlowResult, harmonic_filter, rank_by_flow
from recommend.filters import QUICK_PRESETS, SmartFiltersConfig, apply_smart_filters
from recommend.harmonic import HarmonicMatcher, KeyRelation, compatible_keys, key_relation
from recommend.ranking import DJ_PRESETS, RankingConfig, RankingMode, rank_pool
from recommend.transitions import TransitionQuality, analyze_transition, transition_quality

__all__ = [
    "AggregationEngine",
    "ContributionRegistry",
    "DJ_PRESETS",
    "FlowEngine",
    "FlowResult",
    "HarmonicMatcher",
    "KeyRelation",
    "QUICK_PRESETS",
    "RankingConfig",
    "RankingMode",
    "SmartFiltersConfig",
    "SubmissionOutcome",
    "TransitionQuality",
    "aggregate_contributions",
    "analyze_transition",
    "apply_smart_filters",
    "compatible_keys",
    "harmonic_filter",
    "key_relation",
    "rank_by_flow",
    "rank_pool",
    "transition_quality",
]
