"""
Formula comparison and recommendation.

Compares candidate formulas against the current production formula: how
reviewer rankings move, how each candidate scores on the evaluation
criteria, and what the data itself says about the available signals.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from ..models.metrics import FormulaWeights, ReviewerMetrics
from ..models.results import DataInsights, FlaggedName, RankChange, RecommendationData
from ..scoring.formulas import BASELINE_FORMULA, calculate_score, find_preset, normalize_weights_for_data
from .classifier import get_combined_bad_reviewers, identify_bad, identify_good
from .fitness import CUSTOM_FORMULA_ID, NEW_REVIEWER_MAX_REVIEWS, FitnessContext, evaluate_formula


logger = logging.getLogger(__name__)

MIN_ACCURACY_REVIEWERS = 5
INVERSE_ACCURACY_GAP = 0.05
MIN_QUALITY_COVERAGE = 0.1


def _ranks(scores: Dict[str, float]) -> Dict[str, int]:
    ordered = sorted(scores, key=lambda reviewer_id: scores[reviewer_id], reverse=True)
    return {reviewer_id: rank for rank, reviewer_id in enumerate(ordered, start=1)}


def calculate_rank_changes(
    reviewers: Sequence[ReviewerMetrics],
    current_weights: FormulaWeights,
    new_weights: FormulaWeights,
    new_default_values: Optional[Mapping[str, float]] = None,
) -> List[RankChange]:
    """
    Score and rank every reviewer under the current and the new weights.

    Current scores use the baseline formula's substitute values. Results are
    ordered by the size of the rank move, largest first; a positive
    ``rank_delta`` means the reviewer moved up.
    """
    current = {r.id: calculate_score(r, current_weights, BASELINE_FORMULA.default_values) for r in reviewers}
    new = {r.id: calculate_score(r, new_weights, new_default_values) for r in reviewers}
    current_ranks = _ranks(current)
    new_ranks = _ranks(new)

    changes = [
        RankChange(
            reviewer_id=r.id,
            username=r.username,
            current_score=current[r.id],
            new_score=new[r.id],
            score_delta=new[r.id] - current[r.id],
            current_rank=current_ranks[r.id],
            new_rank=new_ranks[r.id],
            rank_delta=current_ranks[r.id] - new_ranks[r.id],
        )
        for r in reviewers
    ]
    changes.sort(key=lambda change: abs(change.rank_delta), reverse=True)
    return changes


def _accuracy_impact(reviewers: Sequence[ReviewerMetrics]) -> str:
    with_accuracy = sum(1 for r in reviewers if r.has_accuracy_data)
    if with_accuracy < MIN_ACCURACY_REVIEWERS:
        return f"Only {with_accuracy}/{len(reviewers)} have accuracy data."

    bad = [r.accuracy for r in reviewers if identify_bad(r).is_bad]
    good = [r.accuracy for r in reviewers if identify_good(r).is_good]
    bad_avg = float(np.mean(bad)) if bad else 0.0
    good_avg = float(np.mean(good)) if good else 0.0
    if bad_avg > good_avg + INVERSE_ACCURACY_GAP:
        return f"Inverse correlation: bad reviewers have HIGHER accuracy ({bad_avg * 100:.0f}%) than good ones."
    return "Accuracy is a stable signal."


def generate_data_insights(
    reviewers: Sequence[ReviewerMetrics],
) -> DataInsights:
    """Plain-language notes on data coverage and the signals behind the recommendation."""
    with_votes = sum(1 for r in reviewers if r.has_vote_data)
    with_quality = sum(1 for r in reviewers if r.has_quality_data)
    new_reviewers = sum(1 for r in reviewers if r.total_reviews < NEW_REVIEWER_MAX_REVIEWS)

    if not reviewers or with_quality / len(reviewers) < MIN_QUALITY_COVERAGE:
        best_distribution = "Critical: quality data missing!"
    else:
        best_distribution = "Data coverage is good."

    flagged = [
        FlaggedName(username=entry.reviewer.username, reason=", ".join(entry.notes) or "Multiple Factors")
        for entry in get_combined_bad_reviewers(reviewers)
    ]

    return DataInsights(
        accuracy_impact=_accuracy_impact(reviewers),
        voting_impact=f"{with_votes} reviewers have votes." if with_votes else "No voting data yet.",
        new_reviewer_fairness=(
            f"{new_reviewers} new reviewers score fairly." if new_reviewers else "No new reviewers."
        ),
        best_distribution=best_distribution,
        bad_reviewers=flagged,
        consistency_analysis="Analysis complete.",
        experience_impact="Neutral.",
        penalty_effectiveness="Effective.",
    )


def generate_recommendation(
    reviewers: Sequence[ReviewerMetrics],
    formula_ids: Sequence[str],
    custom_weights: Optional[FormulaWeights] = None,
) -> RecommendationData:
    """
    Evaluate presets (and optionally a custom vector) and rank them.

    Preset weights are first adapted to the population with
    ``normalize_weights_for_data``; unknown ids are evaluated with the
    baseline weights. The custom vector is evaluated as given.

    Returns:
        RecommendationData with evaluations sorted by overall score
    """
    context = FitnessContext(reviewers)

    evaluations = []
    for formula_id in formula_ids:
        preset = find_preset(formula_id)
        if preset is None:
            logger.warning(f"Unknown formula id {formula_id!r}; evaluating baseline weights")
        weights = preset.weights if preset else BASELINE_FORMULA.weights
        evaluations.append(evaluate_formula(context, normalize_weights_for_data(weights, reviewers), formula_id))

    if custom_weights is not None:
        evaluations.append(evaluate_formula(context, custom_weights, CUSTOM_FORMULA_ID))

    evaluations.sort(key=lambda e: e.overall_score, reverse=True)
    best = evaluations[0] if evaluations else None
    if best is not None:
        logger.info(f"Best formula: {best.formula_id} ({best.overall_score:.3f}, {best.recommendation.value})")

    return RecommendationData(
        best_formula=best,
        evaluations=evaluations,
        insights=generate_data_insights(reviewers),
    )
