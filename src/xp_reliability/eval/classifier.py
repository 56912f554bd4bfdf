"""
Rule-based reviewer classification.

A hand-written heuristic that serves as ground truth when no labels exist:
bad reviewers miss assignments or collect admin penalties, good reviewers are
experienced, punctual and penalty-free with at least one clear strength.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from ..models.metrics import NO_ACCURACY_DATA, ReviewerMetrics
from ..models.results import BadVerdict, Classification, FlaggedReviewer, GoodVerdict
from ..scoring.formulas import NEUTRAL_FORMULA, score_with_formula
from .stats import k_means_1d


logger = logging.getLogger(__name__)

# Hard fails: any one is enough
MISSED_PENALTY_FLOOR = 0.75
PENALTY_SCORE_FLOOR = 0.80

# Soft fails: two are needed
TIMELINESS_FLOOR = 0.70
ACCURACY_FLOOR = 0.50
ACCURACY_MIN_REVIEWS = 5
SOFT_FAILS_REQUIRED = 2

# Core requirements of a good reviewer
GOOD_MIN_EXPERIENCE = 0.5
GOOD_MIN_MISSED_PENALTY = 0.9
GOOD_MIN_PENALTY_SCORE = 0.9
GOOD_MIN_TIMELINESS = 0.85

# Minimum centroid separation for the k-means fallback to count as a real split
CLUSTER_SEPARATION = 0.1
# Margin above the lowest centroid still treated as low signal
LOW_SIGNAL_MARGIN = 0.05
LOW_SIGNAL_REASON = "Natural Low Signal"

# Signals averaged for the natural low-signal check (missed_penalty is a rule input already)
LOW_SIGNAL_KEYS = (
    "accuracy",
    "timeliness",
    "experience",
    "penalty_score",
    "late_percentage",
    "review_variance",
    "vote_validation",
    "quality",
)


def identify_bad(reviewer: ReviewerMetrics) -> BadVerdict:
    """
    Flag reviewers with clear reliability problems.

    A single hard fail (missed assignments, admin penalties) is enough, and
    then only the hard reasons are reported. Otherwise two soft fails
    (very late, very inaccurate with enough reviews) are required.
    """
    hard_reasons = []
    if reviewer.missed_penalty < MISSED_PENALTY_FLOOR:
        hard_reasons.append("Misses 25%+ of assignments")
    if reviewer.penalty_score < PENALTY_SCORE_FLOOR:
        hard_reasons.append("Admin penalties (20+ points)")
    if hard_reasons:
        return BadVerdict(is_bad=True, reasons=hard_reasons)

    soft_reasons = []
    if reviewer.timeliness < TIMELINESS_FLOOR:
        soft_reasons.append("Very late (<70%)")
    if reviewer.accuracy < ACCURACY_FLOOR and reviewer.total_reviews > ACCURACY_MIN_REVIEWS:
        soft_reasons.append("Very low accuracy (<50%)")

    if len(soft_reasons) >= SOFT_FAILS_REQUIRED:
        return BadVerdict(is_bad=True, reasons=soft_reasons)
    return BadVerdict(is_bad=False)


def identify_good(reviewer: ReviewerMetrics) -> GoodVerdict:
    """Recognize reliable reviewers: all core requirements plus at least one strength."""
    meets_core = (
        reviewer.experience >= GOOD_MIN_EXPERIENCE
        and reviewer.missed_penalty >= GOOD_MIN_MISSED_PENALTY
        and reviewer.penalty_score >= GOOD_MIN_PENALTY_SCORE
        and reviewer.timeliness >= GOOD_MIN_TIMELINESS
    )
    if not meets_core:
        return GoodVerdict(is_good=False)

    strengths = []
    if reviewer.experience >= 1.0:
        strengths.append("Veteran (50+ reviews)")
    if reviewer.timeliness >= 0.95:
        strengths.append("Very punctual (95%+)")
    if reviewer.accuracy >= 0.70:
        strengths.append("Accurate (70%+)")
    if reviewer.accuracy >= 0.65:
        strengths.append("Good accuracy (65%+)")

    return GoodVerdict(is_good=len(strengths) > 0, strengths=strengths)


def classify_reviewers(reviewers: Sequence[ReviewerMetrics]) -> Classification:
    """Partition reviewers into good / middle / bad. Bad wins when both rules match."""
    classification = Classification()
    for reviewer in reviewers:
        bad = identify_bad(reviewer)
        if bad.is_bad:
            classification.bad.append(FlaggedReviewer(reviewer=reviewer, notes=bad.reasons))
            continue
        good = identify_good(reviewer)
        if good.is_good:
            classification.good.append(FlaggedReviewer(reviewer=reviewer, notes=good.strengths))
        else:
            classification.middle.append(reviewer)
    return classification


def get_bad_reviewer_reason(reviewer: ReviewerMetrics) -> str:
    """Comma-separated reasons a reviewer is flagged, or an empty string."""
    return ", ".join(identify_bad(reviewer).reasons)


def mean_available_signal(reviewer: ReviewerMetrics) -> float:
    """Mean of the signals a reviewer has data for (0.5 when none)."""
    values = []
    for key in LOW_SIGNAL_KEYS:
        if key == "quality" and not reviewer.has_quality_data:
            continue
        if key == "accuracy" and reviewer.accuracy == NO_ACCURACY_DATA:
            continue
        values.append(reviewer.signal(key))
    return float(np.mean(values)) if values else 0.5


def get_combined_bad_reviewers(reviewers: Sequence[ReviewerMetrics]) -> List[FlaggedReviewer]:
    """
    Rule-based bad reviewers plus the natural low-signal cluster.

    Each remaining reviewer's mean available signal is clustered with 3-means;
    reviewers at or below the lowest centroid (plus a small margin) join the
    bad list tagged "Natural Low Signal".
    """
    combined = []
    for reviewer in reviewers:
        verdict = identify_bad(reviewer)
        if verdict.is_bad:
            combined.append(FlaggedReviewer(reviewer=reviewer, notes=verdict.reasons))
    if not reviewers:
        return combined

    flagged_ids = {entry.reviewer.id for entry in combined}
    signals = [mean_available_signal(r) for r in reviewers]
    result = k_means_1d(signals, min(3, len(reviewers)))
    threshold = min(result.centroids) + LOW_SIGNAL_MARGIN

    for reviewer, signal in zip(reviewers, signals):
        if reviewer.id not in flagged_ids and signal <= threshold:
            combined.append(FlaggedReviewer(reviewer=reviewer, notes=[LOW_SIGNAL_REASON]))
    return combined


@dataclass
class ReviewerLabels:
    """Bad / good ground truth for one population and where it came from."""
    bad: List[ReviewerMetrics] = field(default_factory=list)
    good: List[ReviewerMetrics] = field(default_factory=list)
    source: str = "rules"  # "rules", "kmeans" or "none"

    @property
    def bad_ids(self) -> set:
        return {r.id for r in self.bad}


def bootstrap_labels(reviewers: Sequence[ReviewerMetrics]) -> ReviewerLabels:
    """
    Derive ground-truth labels for fitness evaluation.

    Rule-based bad reviewers are used when any exist. Otherwise everyone is
    scored with the neutral preset and split with 2-means; the lower cluster
    counts as bad only if the centroids are more than CLUSTER_SEPARATION
    apart. Without rule-based good reviewers, everyone outside the bad set
    is treated as good.
    """
    bad = [r for r in reviewers if identify_bad(r).is_bad]
    source = "rules"

    if not bad:
        source = "none"
        scores = [score_with_formula(r, NEUTRAL_FORMULA) for r in reviewers]
        clusters = k_means_1d(scores, 2)
        if len(clusters.centroids) == 2:
            low, high = sorted(range(2), key=lambda i: clusters.centroids[i])
            separation = clusters.centroids[high] - clusters.centroids[low]
            if separation > CLUSTER_SEPARATION:
                bad = [r for r, a in zip(reviewers, clusters.assignments) if a == low]
                source = "kmeans"
                logger.info(
                    f"No rule-based bad reviewers; using low k-means cluster "
                    f"({len(bad)} reviewers, separation {separation:.3f})"
                )
            else:
                logger.info(f"No rule-based bad reviewers and clusters too close ({separation:.3f})")

    bad_ids = {r.id for r in bad}
    good = [r for r in reviewers if identify_good(r).is_good]
    if not good:
        good = [r for r in reviewers if r.id not in bad_ids]

    return ReviewerLabels(bad=bad, good=good, source=source)
