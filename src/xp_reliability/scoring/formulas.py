"""
Reliability formula presets and the scorer.

The scorer turns one reviewer's metrics and a weight vector into a score in
[0, 1]. Three signals (quality, accuracy, vote validation) can be missing for
a reviewer; a missing signal either takes the preset's substitute value or
has its weight zeroed and spread over the active signals, so a reviewer is
never scored against a meaningless placeholder.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..models.metrics import (
    OPTIONAL_SIGNALS,
    WEIGHT_KEYS,
    FormulaDefinition,
    FormulaWeights,
    ReviewerMetrics,
)
from ..models.results import FormulaBreakdown, FormulaResult


logger = logging.getLogger(__name__)

# Treated as active during redistribution even at zero nominal weight.
ALWAYS_ACTIVE_SIGNALS: Tuple[str, ...] = ("timeliness", "experience", "penalty_score")

COMPONENT_LABELS: Dict[str, str] = {
    "timeliness": "Timeliness",
    "quality": "Quality",
    "accuracy": "Accuracy",
    "vote_validation": "Vote Validation",
    "experience": "Experience",
    "missed_penalty": "Missed Penalty",
    "penalty_score": "Penalty Score",
    "review_variance": "Review Variance",
    "late_percentage": "Late %",
}


LEGACY_FORMULA = FormulaDefinition(
    id="LEGACY",
    name="Formula A: Current (Baseline)",
    description="Legacy production formula: 30% timeliness + 70% quality",
    weights=FormulaWeights(timeliness=0.30, quality=0.70),
    # 3.5 out of 5, normalized as (3.5 - 1) / 4
    default_values={"quality": 0.625},
)

CUSTOM_V1_FORMULA = FormulaDefinition(
    id="CUSTOM_V1",
    name="Custom Formula V1 (Shadow)",
    description="Optimized (Exp 39.9%, Time 31.7%, Pen 13.3%, Late 5.5%, Var 3.2%, Acc 2.8%, Missed 2.2%, Vote 1.4%)",
    weights=FormulaWeights(
        timeliness=0.317,
        accuracy=0.028,
        vote_validation=0.014,
        experience=0.399,
        missed_penalty=0.022,
        penalty_score=0.133,
        review_variance=0.032,
        late_percentage=0.055,
    ),
    default_values={"vote_validation": 0.65},
)

CUSTOM_V2_FORMULA = FormulaDefinition(
    id="CUSTOM_V2",
    name="Custom Formula V2 (Vote Validation)",
    description="Optimized Vote Focus (Exp 39.6%, Vote 16.1%, Acc 15.3%, Late 11.1%, Time 9.9%, Missed 4.8%, Pen 2.0%, Var 1.2%)",
    weights=FormulaWeights(
        timeliness=0.099,
        accuracy=0.153,
        vote_validation=0.161,
        experience=0.396,
        missed_penalty=0.048,
        penalty_score=0.020,
        review_variance=0.012,
        late_percentage=0.111,
    ),
    default_values={"vote_validation": 0.65},
)

WITH_ACCURACY_FORMULA = FormulaDefinition(
    id="WITH_ACCURACY",
    name="Formula B: Timeliness + Accuracy + Experience",
    description="Focus on speed and accuracy: 40% timeliness + 30% accuracy + 30% experience",
    weights=FormulaWeights(timeliness=0.40, accuracy=0.30, experience=0.30),
)

WITH_VOTING_FORMULA = FormulaDefinition(
    id="WITH_VOTING",
    name="Formula C: Community Consensus",
    description="Prioritizes voting outcomes: 25% timeliness + 35% voting + 20% accuracy + 20% experience",
    weights=FormulaWeights(timeliness=0.25, accuracy=0.20, vote_validation=0.35, experience=0.20),
)

WITH_EXPERIENCE_FORMULA = FormulaDefinition(
    id="WITH_EXPERIENCE",
    name="Formula D: Experience & Reliability",
    description="Rewards veterans: 30% timeliness + 25% experience + 25% penaltyScore + 20% latePercentage",
    weights=FormulaWeights(timeliness=0.30, experience=0.25, penalty_score=0.25, late_percentage=0.20),
)

BALANCED_FORMULA = FormulaDefinition(
    id="BALANCED",
    name="Formula E: Balanced (Data-Driven)",
    description="Equal weight to available metrics (excludes quality/voting if no data)",
    weights=FormulaWeights(
        timeliness=0.20,
        accuracy=0.15,
        experience=0.20,
        missed_penalty=0.10,
        penalty_score=0.15,
        late_percentage=0.20,
    ),
)

FORMULA_PRESETS: Tuple[FormulaDefinition, ...] = (
    LEGACY_FORMULA,
    CUSTOM_V1_FORMULA,
    CUSTOM_V2_FORMULA,
    WITH_ACCURACY_FORMULA,
    WITH_VOTING_FORMULA,
    WITH_EXPERIENCE_FORMULA,
    BALANCED_FORMULA,
)

# Baseline that candidate formulas are compared against
BASELINE_FORMULA = LEGACY_FORMULA
# Starting point for unsupervised clustering when no labels exist
NEUTRAL_FORMULA = BALANCED_FORMULA


def find_preset(formula_id: str) -> Optional[FormulaDefinition]:
    """Return the preset with this id, or None."""
    for preset in FORMULA_PRESETS:
        if preset.id == formula_id:
            return preset
    return None


def get_formula(formula_id: str) -> FormulaDefinition:
    """Return the preset with this id, falling back to the legacy formula."""
    preset = find_preset(formula_id)
    if preset is None:
        logger.warning(f"Unknown formula id {formula_id!r}, using {LEGACY_FORMULA.id}")
        return LEGACY_FORMULA
    return preset


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _effective_inputs(
    metrics: ReviewerMetrics,
    weights: FormulaWeights,
    default_values: Optional[Mapping[str, float]] = None,
) -> Tuple[Dict[str, float], Dict[str, float]]:
    """Apply missing-data substitution and weight redistribution for one reviewer."""
    values = {key: metrics.signal(key) for key in WEIGHT_KEYS}
    adjusted = weights.as_dict()
    defaults = default_values or {}

    missing: List[str] = []
    for key in OPTIONAL_SIGNALS:
        if metrics.has_data_for(key) or adjusted[key] <= 0:
            continue
        if key in defaults:
            values[key] = defaults[key]
        else:
            missing.append(key)

    if missing:
        _redistribute(adjusted, missing)

    return values, adjusted


def _redistribute(adjusted: Dict[str, float], missing: Sequence[str]) -> None:
    """Zero the missing keys and share their weight equally across the active keys, in place."""
    freed = 0.0
    for key in missing:
        freed += adjusted[key]
        adjusted[key] = 0.0

    active = [
        key for key in WEIGHT_KEYS
        if key not in missing and (adjusted[key] > 0 or key in ALWAYS_ACTIVE_SIGNALS)
    ]
    # No active signal left: the freed weight is dropped
    if active:
        share = freed / len(active)
        for key in active:
            adjusted[key] += share


def _contributions(
    values: Dict[str, float], adjusted: Dict[str, float]
) -> List[FormulaBreakdown]:
    return [
        FormulaBreakdown(
            component=COMPONENT_LABELS[key],
            raw_value=values[key],
            weight=adjusted[key],
            contribution=values[key] * adjusted[key],
        )
        for key in WEIGHT_KEYS
        if adjusted[key] > 0
    ]


def _score_inputs(values: Dict[str, float], adjusted: Dict[str, float]) -> float:
    total = 0.0
    for key in WEIGHT_KEYS:
        if adjusted[key] > 0:
            total += values[key] * adjusted[key]
    return clamp01(total)


def calculate_score(
    metrics: ReviewerMetrics,
    weights: FormulaWeights,
    default_values: Optional[Mapping[str, float]] = None,
) -> float:
    """
    Score one reviewer under a weight vector.

    Args:
        metrics: The reviewer's derived metrics
        weights: Formula weights (ideally summing to 1)
        default_values: Substitutes for quality/accuracy/vote_validation when
            the reviewer has no data for them

    Returns:
        Score in [0, 1]; never raises on valid metrics
    """
    values, adjusted = _effective_inputs(metrics, weights, default_values)
    return _score_inputs(values, adjusted)


def calculate_score_with_breakdown(
    metrics: ReviewerMetrics,
    weights: FormulaWeights,
    default_values: Optional[Mapping[str, float]] = None,
) -> FormulaResult:
    """
    Score one reviewer and report each component's contribution.

    The breakdown shows the effective (post-redistribution) weights, and the
    total is always identical to ``calculate_score`` for the same inputs.
    """
    values, adjusted = _effective_inputs(metrics, weights, default_values)
    return FormulaResult(
        reviewer_id=metrics.id,
        username=metrics.username,
        score=_score_inputs(values, adjusted),
        breakdown=_contributions(values, adjusted),
    )


def score_with_formula(metrics: ReviewerMetrics, formula: FormulaDefinition) -> float:
    """Score one reviewer under a preset, including its substitute values."""
    return calculate_score(metrics, formula.weights, formula.default_values)


def get_weights_total(weights: FormulaWeights) -> float:
    return weights.total()


def normalize_weights(weights: FormulaWeights) -> FormulaWeights:
    """Scale weights to sum to 1. All-zero weights are returned unchanged."""
    total = weights.total()
    if total == 0:
        return weights
    return FormulaWeights(**{key: value / total for key, value in weights.as_dict().items()})


def data_coverage(reviewers: Sequence[ReviewerMetrics]) -> Dict[str, float]:
    """Fraction of reviewers with real data per weight key. An empty population counts as covered."""
    if not reviewers:
        return {key: 1.0 for key in WEIGHT_KEYS}
    coverage = {}
    for key in WEIGHT_KEYS:
        with_data = sum(1 for r in reviewers if r.has_data_for(key))
        coverage[key] = with_data / len(reviewers)
    return coverage


def normalize_weights_for_data(
    weights: FormulaWeights, reviewers: Sequence[ReviewerMetrics]
) -> FormulaWeights:
    """
    Drop signals that no reviewer in the population has data for.

    Their weight is spread over the active signals exactly like the
    per-reviewer redistribution in ``calculate_score``, then the result is
    normalized.
    """
    adjusted = weights.as_dict()
    missing = [
        key for key in OPTIONAL_SIGNALS
        if adjusted[key] > 0 and not any(r.has_data_for(key) for r in reviewers)
    ]

    if missing:
        logger.info(f"No reviewer has data for {', '.join(missing)}; redistributing their weight")
        _redistribute(adjusted, missing)

    return normalize_weights(FormulaWeights(**adjusted))
