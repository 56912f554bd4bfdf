"""
Fitness evaluation of candidate weight vectors.

A weight vector is judged over a reviewer population on several criteria:
- discrimination: how far apart the resulting scores are
- known-bad accuracy: whether labelled bad reviewers land at the bottom
- fairness: whether new reviewers sit near a neutral 0.5
- stability: correlation with the baseline formula's scores
plus bonuses for feature importance and using several signals, and
penalties for redundant or inverted signals.

Everything that does not depend on the weights is computed once per
population in a FitnessContext, so the optimizer only rescores reviewers.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..models.metrics import WEIGHT_KEYS, FormulaWeights, ReviewerMetrics
from ..models.results import FormulaEvaluation, Recommendation
from ..scoring.formulas import BASELINE_FORMULA, calculate_score, clamp01, find_preset
from .analysis import calculate_feature_matrix
from .classifier import ReviewerLabels, bootstrap_labels, identify_bad, identify_good
from .prng import SeededRandom
from .stats import calculate_correlation


logger = logging.getLogger(__name__)

DISCRIMINATION_SCALE = 0.2
NEW_REVIEWER_MAX_REVIEWS = 5
NEUTRAL_SCORE = 0.5
FAIRNESS_TOLERANCE = 0.25

# Weighted sum of criteria
DISCRIMINATION_WEIGHT = 0.25
BAD_ACCURACY_WEIGHT = 0.25
FAIRNESS_WEIGHT = 0.15
STABILITY_WEIGHT = 0.05
IMPORTANCE_WEIGHT = 0.2

# A weight above this counts towards robustness
ROBUST_MIN_WEIGHT = 0.05
ROBUST_MIN_SIGNALS = 3
ROBUSTNESS_BONUS = 0.1
SINGLE_SIGNAL_PENALTY = 0.2

# Redundancy and inverse-signal checks only look at heavily weighted keys
HEAVY_WEIGHT = 0.1
REDUNDANT_CORRELATION = 0.7
REDUNDANCY_FACTOR = 0.5
INVERSE_SIGNAL_GAP = 0.1
INVERSE_SIGNAL_FACTOR = 0.5

RECOMMENDED_THRESHOLD = 0.65
ACCEPTABLE_THRESHOLD = 0.45

# Bonus for keeping forced metrics alive
FORCE_INCLUDE_STRONG = 0.1
FORCE_INCLUDE_STRONG_BONUS = 0.05
FORCE_INCLUDE_WEAK = 0.01
FORCE_INCLUDE_WEAK_BONUS = 0.01

BOOTSTRAP_ITERATIONS = 100
BOOTSTRAP_MIN_REVIEWERS = 5
CONFIDENCE_Z = 1.96

CUSTOM_FORMULA_ID = "custom"


class FitnessContext:
    """
    Weight-independent inputs of the fitness function for one population.

    Build it once and reuse it for every candidate; the reviewers are treated
    as a read-only snapshot.
    """

    def __init__(
        self,
        reviewers: Sequence[ReviewerMetrics],
        baseline_weights: Optional[FormulaWeights] = None,
        labels: Optional[ReviewerLabels] = None,
    ):
        self.reviewers: List[ReviewerMetrics] = list(reviewers)
        self.baseline_weights = baseline_weights or BASELINE_FORMULA.weights
        self.labels = labels or bootstrap_labels(self.reviewers)

        bad_ids = self.labels.bad_ids
        self.bad_indices = [i for i, r in enumerate(self.reviewers) if r.id in bad_ids]
        self.new_indices = [
            i for i, r in enumerate(self.reviewers) if r.total_reviews < NEW_REVIEWER_MAX_REVIEWS
        ]

        self.baseline_scores = [
            calculate_score(r, self.baseline_weights, BASELINE_FORMULA.default_values)
            for r in self.reviewers
        ]

        columns = {key: [r.signal(key) for r in self.reviewers] for key in WEIGHT_KEYS}
        self.metric_correlations: Dict[Tuple[str, str], float] = {}
        for i, first in enumerate(WEIGHT_KEYS):
            for second in WEIGHT_KEYS[i + 1:]:
                self.metric_correlations[(first, second)] = abs(
                    calculate_correlation(columns[first], columns[second])
                )

        importance = calculate_feature_matrix(self.reviewers).metrics
        self.avg_importance = float(np.mean([m.importance for m in importance])) if importance else 0.0

        # Inverse signals are judged on the rule-based groups only
        bad_group = [r for r in self.reviewers if identify_bad(r).is_bad]
        good_group = [r for r in self.reviewers if identify_good(r).is_good]
        self.group_means: Optional[Tuple[Dict[str, float], Dict[str, float]]] = None
        if bad_group and good_group:
            self.group_means = (
                {key: float(np.mean([r.signal(key) for r in bad_group])) for key in WEIGHT_KEYS},
                {key: float(np.mean([r.signal(key) for r in good_group])) for key in WEIGHT_KEYS},
            )

    def correlation(self, first: str, second: str) -> float:
        """Absolute correlation between two metric columns."""
        if WEIGHT_KEYS.index(first) > WEIGHT_KEYS.index(second):
            first, second = second, first
        return self.metric_correlations[(first, second)]


@dataclass
class FitnessTerms:
    """Every criterion, bonus and penalty of one evaluation."""
    std_dev: float
    discrimination: float
    known_bad_accuracy: float
    fairness: float
    stability: float
    importance_bonus: float
    robustness_bonus: float
    redundancy_penalty: float
    inverse_signal_penalty: float
    active_signals: int
    overall_score: float


def _as_context(
    population: Union[FitnessContext, Sequence[ReviewerMetrics]],
    baseline_weights: Optional[FormulaWeights] = None,
) -> FitnessContext:
    if isinstance(population, FitnessContext):
        return population
    return FitnessContext(population, baseline_weights)


def _assess(
    context: FitnessContext,
    weights: FormulaWeights,
    default_values: Optional[Mapping[str, float]] = None,
    is_baseline: bool = False,
) -> FitnessTerms:
    reviewers = context.reviewers
    scores = [calculate_score(r, weights, default_values) for r in reviewers]
    # Label accuracy and fairness always use the bare weights
    bare_scores = [calculate_score(r, weights) for r in reviewers] if default_values else scores

    std_dev = float(np.std(scores)) if scores else 0.0
    mean = float(np.mean(scores)) if scores else 0.0
    discrimination = min(1.0, std_dev / DISCRIMINATION_SCALE)

    bad_count = len(context.bad_indices)
    if bad_count:
        ordered = sorted(scores)
        threshold = ordered[max(0, min(len(ordered) - 1, bad_count - 1))] or mean
        in_bottom = sum(1 for i in context.bad_indices if bare_scores[i] <= threshold)
        known_bad_accuracy = in_bottom / bad_count
    else:
        known_bad_accuracy = 1.0

    if context.new_indices:
        new_avg = float(np.mean([bare_scores[i] for i in context.new_indices]))
    else:
        new_avg = NEUTRAL_SCORE
    fairness = max(0.0, 1 - abs(new_avg - NEUTRAL_SCORE) / FAIRNESS_TOLERANCE)

    if is_baseline:
        stability = 1.0
    else:
        stability = max(0.0, calculate_correlation(scores, context.baseline_scores))

    weight_map = weights.as_dict()
    heavy = [key for key in WEIGHT_KEYS if weight_map[key] > HEAVY_WEIGHT]

    redundancy_penalty = 0.0
    for i, first in enumerate(heavy):
        for second in heavy[i + 1:]:
            r = context.correlation(first, second)
            if r > REDUNDANT_CORRELATION:
                redundancy_penalty += (r - REDUNDANT_CORRELATION) * REDUNDANCY_FACTOR

    importance_bonus = context.avg_importance / 100 * IMPORTANCE_WEIGHT

    active_signals = sum(1 for w in weight_map.values() if w > ROBUST_MIN_WEIGHT)
    if active_signals >= ROBUST_MIN_SIGNALS:
        robustness_bonus = ROBUSTNESS_BONUS
    elif active_signals == 1:
        robustness_bonus = -SINGLE_SIGNAL_PENALTY
    else:
        robustness_bonus = 0.0

    inverse_signal_penalty = 0.0
    if context.group_means is not None:
        bad_means, good_means = context.group_means
        for key in heavy:
            if bad_means[key] > good_means[key] + INVERSE_SIGNAL_GAP:
                inverse_signal_penalty += weight_map[key] * INVERSE_SIGNAL_FACTOR

    overall_score = clamp01(
        discrimination * DISCRIMINATION_WEIGHT
        + known_bad_accuracy * BAD_ACCURACY_WEIGHT
        + importance_bonus
        + robustness_bonus
        + fairness * FAIRNESS_WEIGHT
        + stability * STABILITY_WEIGHT
        - redundancy_penalty
        - inverse_signal_penalty
    )

    return FitnessTerms(
        std_dev=std_dev,
        discrimination=discrimination,
        known_bad_accuracy=known_bad_accuracy,
        fairness=fairness,
        stability=stability,
        importance_bonus=importance_bonus,
        robustness_bonus=robustness_bonus,
        redundancy_penalty=redundancy_penalty,
        inverse_signal_penalty=inverse_signal_penalty,
        active_signals=active_signals,
        overall_score=overall_score,
    )


def calculate_confidence(
    reviewers: Sequence[ReviewerMetrics],
    weights: FormulaWeights,
    iterations: int = BOOTSTRAP_ITERATIONS,
    rng: Optional[SeededRandom] = None,
) -> Tuple[float, float]:
    """
    Bootstrap the score standard deviation.

    Args:
        reviewers: Reviewer population
        weights: Weights to score with
        iterations: Number of bootstrap resamples
        rng: Generator for the resampling (seed 42 by default)

    Returns:
        (mean std dev, 95% margin); (0, 0) for fewer than 5 reviewers
    """
    if len(reviewers) < BOOTSTRAP_MIN_REVIEWERS or iterations < 1:
        return 0.0, 0.0

    rng = rng or SeededRandom()
    scores = [calculate_score(r, weights) for r in reviewers]
    n = len(scores)

    std_devs = []
    for _ in range(iterations):
        sample = [scores[rng.index(n)] for _ in range(n)]
        std_devs.append(float(np.std(sample)))

    return float(np.mean(std_devs)), CONFIDENCE_Z * float(np.std(std_devs))


def _recommendation(overall_score: float) -> Recommendation:
    if overall_score >= RECOMMENDED_THRESHOLD:
        return Recommendation.RECOMMENDED
    if overall_score >= ACCEPTABLE_THRESHOLD:
        return Recommendation.ACCEPTABLE
    return Recommendation.NOT_RECOMMENDED


def _formula_name(formula_id: str) -> str:
    if formula_id == CUSTOM_FORMULA_ID:
        return "Custom Formula"
    preset = find_preset(formula_id)
    return preset.name if preset else formula_id


def evaluate_formula(
    reviewers: Union[FitnessContext, Sequence[ReviewerMetrics]],
    weights: FormulaWeights,
    formula_id: str = CUSTOM_FORMULA_ID,
    baseline_weights: Optional[FormulaWeights] = None,
    seed: int = 42,
) -> FormulaEvaluation:
    """
    Full multi-criteria evaluation of one weight vector.

    Args:
        reviewers: Reviewer population, or a prebuilt FitnessContext
        weights: Weights to evaluate
        formula_id: Preset id (its substitute values are applied) or "custom"
        baseline_weights: Weights the stability term compares against (legacy by default)
        seed: Seed of the bootstrap behind ``discrimination_margin``

    Returns:
        FormulaEvaluation with criteria, overall score, recommendation and
        human readable reasons and tradeoffs
    """
    context = _as_context(reviewers, baseline_weights)
    preset = find_preset(formula_id)
    is_baseline = formula_id == BASELINE_FORMULA.id
    terms = _assess(context, weights, preset.default_values if preset else None, is_baseline)

    _, margin = calculate_confidence(context.reviewers, weights, rng=SeededRandom(seed))

    reasons = []
    tradeoffs = []
    if terms.discrimination > 0.7:
        reasons.append(f"Good separation between reviewers (std: {terms.std_dev:.2f})")
    if terms.known_bad_accuracy > 0.6:
        reasons.append(f"Correctly identifies {round(terms.known_bad_accuracy * 100)}% of problematic reviewers")
    if terms.fairness > 0.7:
        reasons.append("Treats new reviewers fairly")
    if terms.active_signals >= ROBUST_MIN_SIGNALS:
        reasons.append(f"Uses {terms.active_signals} data components for comprehensive scoring")
    if not is_baseline and terms.stability > 0.7:
        reasons.append("Maintains reasonable consistency with current rankings")

    if terms.discrimination < 0.5:
        tradeoffs.append("Low score differentiation")
    if terms.known_bad_accuracy < 0.5:
        tradeoffs.append("May not identify problematic reviewers well")
    if terms.inverse_signal_penalty > 0:
        tradeoffs.append('Formula weights metrics where "Bad" reviewers score higher than "Good" ones')
    if is_baseline and not any(r.has_quality_data for r in context.reviewers):
        tradeoffs.append("Legacy formula relies on quality data (70%) which is missing")

    return FormulaEvaluation(
        formula_id=formula_id,
        formula_name=_formula_name(formula_id),
        weights=weights,
        discrimination=terms.discrimination,
        discrimination_margin=margin,
        known_bad_accuracy=terms.known_bad_accuracy,
        fairness=terms.fairness,
        stability=terms.stability,
        overall_score=terms.overall_score,
        recommendation=_recommendation(terms.overall_score),
        reasons=reasons,
        tradeoffs=tradeoffs,
    )


def evaluate_formula_weights(
    reviewers: Union[FitnessContext, Sequence[ReviewerMetrics]],
    weights: FormulaWeights,
    baseline_weights: Optional[FormulaWeights] = None,
) -> float:
    """Overall score of a custom weight vector, without the bootstrap margin."""
    return _assess(_as_context(reviewers, baseline_weights), weights).overall_score


def force_include_bonus(weights: FormulaWeights, force_include: Iterable[str]) -> float:
    bonus = 0.0
    for key in force_include:
        weight = getattr(weights, key)
        if weight > FORCE_INCLUDE_STRONG:
            bonus += FORCE_INCLUDE_STRONG_BONUS
        elif weight > FORCE_INCLUDE_WEAK:
            bonus += FORCE_INCLUDE_WEAK_BONUS
    return bonus


def calculate_fitness(
    context: FitnessContext,
    weights: FormulaWeights,
    force_include: Iterable[str] = (),
) -> float:
    """Optimizer fitness: overall score plus the force-include bonus, capped at 1."""
    score = evaluate_formula_weights(context, weights)
    return min(1.0, score + force_include_bonus(weights, force_include))
