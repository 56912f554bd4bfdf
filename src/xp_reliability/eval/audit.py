"""
Inverse-signal audit.

Checks whether rule-classified bad reviewers are *more* accurate than good
ones, which would mean accuracy is rewarding the wrong behaviour, and looks
for patterns in the outliers that explain it.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from ..models.audit import (
    AuditReviewer,
    AuditStatus,
    DetectedPattern,
    InverseSignalAudit,
    ReviewHistoryItem,
    RootCause,
    TrendDirection,
)
from ..models.history import RawReviewerData
from ..models.metrics import ReviewerMetrics
from ..scoring.metrics import calculate_reviewer_metrics
from .classifier import get_bad_reviewer_reason, identify_bad, identify_good
from .stats import calculate_std_dev


logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
INVERSE_ACCURACY_GAP = 0.05

# Pattern thresholds
SLOW_TIMELINESS = 0.7
THOUGHTFUL_ACCURACY = 0.75
POLARIZED_LOW = 10
POLARIZED_HIGH = 90
SUSPECT_DEVIATION = 20
SUSPECT_ACCURACY = 0.7
MIN_PATTERN_SIZE = 3
MIN_BUG_SIZE = 2
BUG_CONFIDENCE = 0.9
SAMPLE_SIZE_CONFIDENCE = 0.3

# Root cause inference
BUG_MIN_CONFIDENCE = 0.7
PATTERN_MIN_CONFIDENCE = 0.5
CONSENSUS_SPREAD_RATIO = 0.5

# Trend detection over the recent history
TREND_MIN_POINTS = 4
DEVIATION_TREND_TOLERANCE = 5.0
LATENESS_TREND_TOLERANCE = 0.1

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(review) -> datetime:
    created = review.created_at
    if created is None:
        return _EPOCH
    return created if created.tzinfo else created.replace(tzinfo=timezone.utc)


def _trend(recent: List[float], older: List[float], tolerance: float) -> TrendDirection:
    """Lower values are better for both deviation and lateness."""
    if len(recent) + len(older) < TREND_MIN_POINTS or not recent or not older:
        return TrendDirection.STABLE
    delta = float(np.mean(recent)) - float(np.mean(older))
    if delta < -tolerance:
        return TrendDirection.IMPROVING
    if delta > tolerance:
        return TrendDirection.WORSENING
    return TrendDirection.STABLE


def build_audit_reviewer(raw: RawReviewerData, metrics: Optional[ReviewerMetrics] = None) -> AuditReviewer:
    """
    Audit view of one reviewer: metrics plus their ten most recent reviews.

    Reviews without a final consensus have no deviation and a consensus of 0.
    """
    metrics = metrics or calculate_reviewer_metrics(raw)
    reviews = sorted(raw.peer_reviews, key=_sort_key, reverse=True)[:HISTORY_LIMIT]

    history = [
        ReviewHistoryItem(
            submission_id=review.submission_id or "unknown",
            submission_title=review.submission_title or "Unknown Submission",
            reviewer_xp_score=review.xp_score,
            final_consensus=review.final_xp or 0,
            deviation=abs(review.xp_score - review.final_xp) if review.final_xp is not None else None,
            was_late=review.is_late,
            days_late=1 if review.is_late else 0,
            review_date=review.created_at,
        )
        for review in reviews
    ]

    half = len(history) // 2
    recent, older = history[:half], history[half:]
    deviation_trend = _trend(
        [h.deviation for h in recent if h.deviation is not None],
        [h.deviation for h in older if h.deviation is not None],
        DEVIATION_TREND_TOLERANCE,
    )
    lateness_trend = _trend(
        [float(h.was_late) for h in recent],
        [float(h.was_late) for h in older],
        LATENESS_TREND_TOLERANCE,
    )

    return AuditReviewer(
        id=metrics.id,
        username=metrics.username,
        email=metrics.email,
        timeliness=metrics.timeliness,
        accuracy=metrics.accuracy,
        penalty_score=metrics.penalty_score,
        review_variance=metrics.review_variance,
        missed_reviews=metrics.missed_reviews,
        total_reviews=metrics.total_reviews,
        missed_penalty=metrics.missed_penalty,
        experience=metrics.experience,
        reason=get_bad_reviewer_reason(metrics) or None,
        review_history=history,
        avg_deviation=metrics.avg_deviation,
        deviation_trend=deviation_trend,
        lateness_trend=lateness_trend,
    )


def _average_deviation(reviewer: AuditReviewer) -> float:
    deviations = [h.deviation for h in reviewer.review_history if h.deviation is not None]
    return float(np.mean(deviations)) if deviations else 0.0


def detect_patterns(
    bad_but_accurate: Sequence[AuditReviewer],
    good_but_inaccurate: Sequence[AuditReviewer],
) -> List[DetectedPattern]:
    """
    Look for known explanations of an inverse accuracy signal.

    Args:
        bad_but_accurate: Bad reviewers more accurate than the good average
        good_but_inaccurate: Good reviewers less accurate than the bad average

    Returns:
        Detected patterns; the small-sample warning is included whenever
        either group has fewer than three reviewers
    """
    patterns = []

    slow = [
        r for r in bad_but_accurate
        if r.timeliness < SLOW_TIMELINESS and r.accuracy > THOUGHTFUL_ACCURACY
    ]
    if len(slow) >= MIN_PATTERN_SIZE:
        patterns.append(DetectedPattern(
            id="slow-thoughtful",
            name="Slow but Thoughtful",
            description=f"{len(slow)} reviewers are consistently late but highly accurate.",
            confidence=len(slow) / max(1, len(bad_but_accurate)),
            affected_reviewers=[r.id for r in slow],
            suggested_action="Consider reducing timeliness weight.",
        ))

    polarized = [
        r for r in good_but_inaccurate
        if any(h.reviewer_xp_score <= POLARIZED_LOW or h.reviewer_xp_score >= POLARIZED_HIGH for h in r.review_history)
    ]
    if len(polarized) >= MIN_PATTERN_SIZE:
        patterns.append(DetectedPattern(
            id="polarized-fast",
            name="Polarized Fast Reviewers",
            description=f"{len(polarized)} fast reviewers give extreme scores (0-10 or 90-100).",
            confidence=len(polarized) / max(1, len(good_but_inaccurate)),
            affected_reviewers=[r.id for r in polarized],
            suggested_action="Add score polarization penalty to formula.",
        ))

    # High deviation together with high accuracy should be impossible
    suspect = [
        r for r in bad_but_accurate
        if _average_deviation(r) > SUSPECT_DEVIATION and r.accuracy > SUSPECT_ACCURACY
    ]
    if len(suspect) >= MIN_BUG_SIZE:
        patterns.append(DetectedPattern(
            id="calculation-bug",
            name="Possible Calculation Bug",
            description=f"{len(suspect)} reviewers have high deviation but high accuracy score.",
            confidence=BUG_CONFIDENCE,
            affected_reviewers=[r.id for r in suspect],
            suggested_action="Audit the accuracy calculation in the metrics calculator.",
        ))

    if len(bad_but_accurate) < MIN_PATTERN_SIZE or len(good_but_inaccurate) < MIN_PATTERN_SIZE:
        patterns.append(DetectedPattern(
            id="sample-size",
            name="Small Sample Size",
            description="Not enough reviewers to draw reliable conclusions.",
            confidence=SAMPLE_SIZE_CONFIDENCE,
            suggested_action="Collect more data before making formula changes.",
        ))

    return patterns


def _has_pattern(patterns: Sequence[DetectedPattern], pattern_id: str, min_confidence: float = -1.0) -> bool:
    return any(p.id == pattern_id and p.confidence > min_confidence for p in patterns)


def infer_root_cause(
    patterns: Sequence[DetectedPattern],
    bad_but_accurate: Sequence[AuditReviewer],
    good_but_inaccurate: Sequence[AuditReviewer],
) -> RootCause:
    """
    Pick the most likely root cause.

    Priority: calculation bug, slow-but-thoughtful, polarized fast reviewers,
    small sample. Otherwise fast reviewers whose scores cluster much tighter
    than the slow ones point to consensus bias.
    """
    if _has_pattern(patterns, "calculation-bug", BUG_MIN_CONFIDENCE):
        return RootCause.CALCULATION_BUG
    if _has_pattern(patterns, "slow-thoughtful", PATTERN_MIN_CONFIDENCE):
        return RootCause.SLOW_BUT_THOUGHTFUL
    if _has_pattern(patterns, "polarized-fast", PATTERN_MIN_CONFIDENCE):
        return RootCause.POLARIZED_FAST_REVIEWERS
    if _has_pattern(patterns, "sample-size"):
        return RootCause.SAMPLE_SIZE_ARTIFACT

    fast_scores = [h.reviewer_xp_score for r in good_but_inaccurate for h in r.review_history]
    slow_scores = [h.reviewer_xp_score for r in bad_but_accurate for h in r.review_history]
    if fast_scores and slow_scores:
        if calculate_std_dev(fast_scores) < calculate_std_dev(slow_scores) * CONSENSUS_SPREAD_RATIO:
            return RootCause.CONSENSUS_BIAS

    return RootCause.UNKNOWN


def run_inverse_signal_audit(raw_reviewers: Sequence[RawReviewerData]) -> InverseSignalAudit:
    """
    Run the full audit over raw reviewer histories.

    The audit fails when the bad group's average accuracy exceeds the good
    group's by more than INVERSE_ACCURACY_GAP.
    """
    entries = [(raw, calculate_reviewer_metrics(raw)) for raw in raw_reviewers]

    all_bad: List[AuditReviewer] = []
    all_good: List[AuditReviewer] = []
    middle: List[AuditReviewer] = []
    for raw, metrics in entries:
        reviewer = build_audit_reviewer(raw, metrics)
        if identify_bad(metrics).is_bad:
            all_bad.append(reviewer)
        elif identify_good(metrics).is_good:
            all_good.append(reviewer)
        else:
            middle.append(reviewer)

    bad_avg = float(np.mean([r.accuracy for r in all_bad])) if all_bad else 0.0
    good_avg = float(np.mean([r.accuracy for r in all_good])) if all_good else 0.0
    is_inverse = bad_avg > good_avg + INVERSE_ACCURACY_GAP

    bad_but_accurate = [r for r in all_bad if r.accuracy > good_avg]
    good_but_inaccurate = [r for r in all_good if r.accuracy < bad_avg]
    patterns = detect_patterns(bad_but_accurate, good_but_inaccurate)
    root_cause = infer_root_cause(patterns, bad_but_accurate, good_but_inaccurate)

    if is_inverse:
        logger.warning(
            f"Inverse accuracy signal: bad reviewers {bad_avg:.2f} vs good {good_avg:.2f} "
            f"(suggested root cause {root_cause.value})"
        )
    else:
        logger.info(f"No inverse accuracy signal (bad {bad_avg:.2f}, good {good_avg:.2f})")

    return InverseSignalAudit(
        is_inverse_signal_detected=is_inverse,
        bad_reviewer_avg_accuracy=bad_avg,
        good_reviewer_avg_accuracy=good_avg,
        signal_delta=bad_avg - good_avg,
        all_bad=all_bad,
        all_good=all_good,
        middle_tier=middle,
        patterns=patterns,
        suggested_root_cause=root_cause,
        status=AuditStatus.FAILED if is_inverse else AuditStatus.PASSED,
    )
