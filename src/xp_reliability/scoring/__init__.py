"""
Reliability scoring.

Main components:
- formulas: presets and the scorer (missing-data substitution and weight redistribution)
- metrics: derivation of ReviewerMetrics from raw review history
- service: production/shadow scoring over a metrics provider
"""

from .formulas import (
    ALWAYS_ACTIVE_SIGNALS,
    COMPONENT_LABELS,
    LEGACY_FORMULA,
    CUSTOM_V1_FORMULA,
    CUSTOM_V2_FORMULA,
    WITH_ACCURACY_FORMULA,
    WITH_VOTING_FORMULA,
    WITH_EXPERIENCE_FORMULA,
    BALANCED_FORMULA,
    FORMULA_PRESETS,
    BASELINE_FORMULA,
    NEUTRAL_FORMULA,
    find_preset,
    get_formula,
    clamp01,
    calculate_score,
    calculate_score_with_breakdown,
    score_with_formula,
    get_weights_total,
    normalize_weights,
    data_coverage,
    normalize_weights_for_data,
)
from .metrics import calculate_reviewer_metrics, calculate_all_metrics
from .service import ReliabilityService

__all__ = [
    # Presets
    'ALWAYS_ACTIVE_SIGNALS',
    'COMPONENT_LABELS',
    'LEGACY_FORMULA',
    'CUSTOM_V1_FORMULA',
    'CUSTOM_V2_FORMULA',
    'WITH_ACCURACY_FORMULA',
    'WITH_VOTING_FORMULA',
    'WITH_EXPERIENCE_FORMULA',
    'BALANCED_FORMULA',
    'FORMULA_PRESETS',
    'BASELINE_FORMULA',
    'NEUTRAL_FORMULA',
    'find_preset',
    'get_formula',

    # Scorer
    'clamp01',
    'calculate_score',
    'calculate_score_with_breakdown',
    'score_with_formula',
    'get_weights_total',
    'normalize_weights',
    'data_coverage',
    'normalize_weights_for_data',

    # Metrics
    'calculate_reviewer_metrics',
    'calculate_all_metrics',
    'ReliabilityService',
]
