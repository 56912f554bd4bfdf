"""
Metrics calculator: raw review history -> ReviewerMetrics.

The metrics are a derived view, recomputed on demand from a reviewer's peer
reviews and XP transactions. Reviewers without any review get the fixed
cold-start vector so that every normalized signal is defined.
"""

import logging
from typing import Iterable, List, Optional

import numpy as np

from ..config import NormalizationConfig, VoteValidationConfig, settings
from ..models.history import RawReviewerData
from ..models.metrics import NO_ACCURACY_DATA, ReviewerMetrics


logger = logging.getLogger(__name__)

PENALTY_TRANSACTION = "PENALTY"
VALIDATED = "VALIDATED"
INVALIDATED = "INVALIDATED"

# Each missed assignment costs a quarter of the missed-review signal.
MISSED_REVIEW_COST = 0.25
# Reviews further than this many XP from consensus count as extreme misses.
EXTREME_MISS_DEVIATION = 50
# Neutral quality when the reviewer has never been rated.
UNRATED_QUALITY = 0.4

COLD_START_SIGNAL = 0.5
COLD_START_REVIEW_VARIANCE = 0.75


def _penalty_score(data: RawReviewerData) -> float:
    total_penalty = sum(abs(t.amount) for t in data.xp_transactions if t.type == PENALTY_TRANSACTION)
    return max(0.0, 1 - total_penalty / 100)


def _missed_penalty(missed_reviews: int) -> float:
    return max(0.0, 1 - missed_reviews * MISSED_REVIEW_COST)


def calculate_reviewer_metrics(
    data: RawReviewerData,
    vote_params: Optional[VoteValidationConfig] = None,
    normalization: Optional[NormalizationConfig] = None,
) -> ReviewerMetrics:
    """
    Derive normalized reliability metrics for one reviewer.

    Args:
        data: The reviewer's review and transaction history
        vote_params: Vote validation heuristic parameters (defaults to settings)
        normalization: Normalization caps (defaults to settings)

    Returns:
        ReviewerMetrics with every normalized field in [0, 1]
    """
    vote_params = vote_params or settings.vote_validation
    normalization = normalization or settings.normalization

    reviews = data.peer_reviews
    total_reviews = len(reviews)
    penalty_score = _penalty_score(data)
    missed_penalty = _missed_penalty(data.missed_reviews)

    if total_reviews == 0:
        return ReviewerMetrics(
            id=data.id,
            username=data.display_name,
            email=data.email,
            missed_reviews=data.missed_reviews,
            streak_weeks=data.streak_weeks,
            timeliness=COLD_START_SIGNAL,
            quality=COLD_START_SIGNAL,
            accuracy=NO_ACCURACY_DATA,
            vote_validation=COLD_START_SIGNAL,
            experience=0.0,
            missed_penalty=missed_penalty,
            penalty_score=penalty_score,
            review_variance=COLD_START_REVIEW_VARIANCE,
            late_percentage=COLD_START_SIGNAL,
        )

    # Timeliness
    late_reviews = sum(1 for r in reviews if r.is_late)
    timeliness = 1 - late_reviews / total_reviews

    # Quality: ratings are on a 1-5 scale
    ratings = [r.quality_rating for r in reviews if r.quality_rating is not None]
    avg_quality_rating = float(np.mean(ratings)) if ratings else 0.0
    quality = min(1.0, max(0.0, (avg_quality_rating - 1) / 4)) if ratings else UNRATED_QUALITY

    # Accuracy: distance from the final consensus
    deviations = [abs(r.xp_score - r.final_xp) for r in reviews if r.final_xp is not None]
    avg_deviation = float(np.mean(deviations)) if deviations else 0.0
    if deviations:
        accuracy = max(0.0, 1 - avg_deviation / normalization.max_deviation_for_accuracy)
    else:
        accuracy = NO_ACCURACY_DATA

    # Vote validation
    votes_validated = sum(1 for r in reviews if r.judgment_status == VALIDATED)
    votes_invalidated = sum(1 for r in reviews if r.judgment_status == INVALIDATED)
    vote_validation = min(1.0, max(0.0,
        vote_params.baseline
        + votes_validated * vote_params.bonus
        - votes_invalidated * vote_params.penalty
    ))

    experience = min(1.0, total_reviews / normalization.max_reviews_for_experience)

    # Review variance: population std dev of the XP the reviewer hands out
    std_dev_xp = float(np.std([r.xp_score for r in reviews]))
    review_variance = max(0.0, 1 - std_dev_xp / normalization.max_std_dev_for_variance)

    extreme_miss_count = sum(1 for d in deviations if d > EXTREME_MISS_DEVIATION)

    return ReviewerMetrics(
        id=data.id,
        username=data.display_name,
        email=data.email,
        total_reviews=total_reviews,
        late_reviews=late_reviews,
        missed_reviews=data.missed_reviews,
        streak_weeks=data.streak_weeks,
        votes_validated=votes_validated,
        votes_invalidated=votes_invalidated,
        extreme_miss_count=extreme_miss_count,
        timeliness=timeliness,
        quality=quality,
        accuracy=accuracy,
        vote_validation=vote_validation,
        experience=experience,
        missed_penalty=missed_penalty,
        penalty_score=penalty_score,
        review_variance=review_variance,
        late_percentage=timeliness,
        avg_deviation=avg_deviation,
        avg_quality_rating=avg_quality_rating,
        extreme_miss_rate=extreme_miss_count / total_reviews,
    )


def calculate_all_metrics(raw_reviewers: Iterable[RawReviewerData]) -> List[ReviewerMetrics]:
    """Derive metrics for a batch of reviewers."""
    metrics = [calculate_reviewer_metrics(raw) for raw in raw_reviewers]
    logger.info(f"Computed metrics for {len(metrics)} reviewers")
    return metrics
