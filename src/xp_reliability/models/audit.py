"""
Inverse-signal audit schemas.

The audit checks whether reviewers classified as "bad" score *higher* on
accuracy than "good" ones, and tries to explain why.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class TrendDirection(str, Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    WORSENING = "WORSENING"


class RootCause(str, Enum):
    SLOW_BUT_THOUGHTFUL = "SLOW_BUT_THOUGHTFUL"
    CONSENSUS_BIAS = "CONSENSUS_BIAS"
    CALCULATION_BUG = "CALCULATION_BUG"
    SAMPLE_SIZE_ARTIFACT = "SAMPLE_SIZE_ARTIFACT"
    POLARIZED_FAST_REVIEWERS = "POLARIZED_FAST_REVIEWERS"
    UNKNOWN = "UNKNOWN"


class AuditStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    PASSED = "PASSED"
    FAILED = "FAILED"
    ACKNOWLEDGED = "ACKNOWLEDGED"


class RootCauseDescription(BaseModel):
    title: str
    description: str
    action: str
    severity: str  # low / medium / high / critical


ROOT_CAUSE_DESCRIPTIONS: Dict[RootCause, RootCauseDescription] = {
    RootCause.SLOW_BUT_THOUGHTFUL: RootCauseDescription(
        title="Slow but Thoughtful Reviewers",
        description="Late reviewers take more time and produce more accurate judgments.",
        action="Reduce timeliness weight from current value to 10-15%",
        severity="medium",
    ),
    RootCause.CONSENSUS_BIAS: RootCauseDescription(
        title="Fast Reviewer Consensus Bias",
        description='Fast reviewers dominate the consensus, making slow reviewers appear "inaccurate".',
        action="This is a platform design issue. Consider time-weighted consensus.",
        severity="high",
    ),
    RootCause.CALCULATION_BUG: RootCauseDescription(
        title="Accuracy Calculation Bug",
        description="The average deviation formula may be inverted (high deviation = high accuracy).",
        action="Audit the accuracy calculation in the metrics calculator.",
        severity="critical",
    ),
    RootCause.SAMPLE_SIZE_ARTIFACT: RootCauseDescription(
        title="Statistical Artifact",
        description="Sample size too small to draw conclusions. Difference may be random noise.",
        action="Proceed with caution. Monitor closely in Shadow Mode.",
        severity="low",
    ),
    RootCause.POLARIZED_FAST_REVIEWERS: RootCauseDescription(
        title="Polarized Fast Reviewers",
        description="Fast reviewers give extreme scores (0 or 100), increasing their average deviation.",
        action='Add a "score polarization" penalty to the formula.',
        severity="medium",
    ),
    RootCause.UNKNOWN: RootCauseDescription(
        title="Unknown Root Cause",
        description="No clear pattern detected. Manual investigation recommended.",
        action="Review the listed reviewers manually and document findings.",
        severity="high",
    ),
}


class ReviewHistoryItem(BaseModel):
    submission_id: str
    submission_title: str
    reviewer_xp_score: float
    final_consensus: float
    deviation: Optional[float] = None  # None while the submission has no final XP
    was_late: bool
    days_late: int = 0
    review_date: Optional[datetime] = None


class AuditReviewer(BaseModel):
    id: str
    username: str
    email: str = ""

    timeliness: float
    accuracy: float
    penalty_score: float
    review_variance: float
    missed_reviews: int
    total_reviews: int
    missed_penalty: float
    experience: float
    reason: Optional[str] = None

    review_history: List[ReviewHistoryItem] = Field(default_factory=list)

    avg_deviation: float = 0.0
    deviation_trend: TrendDirection = TrendDirection.STABLE
    lateness_trend: TrendDirection = TrendDirection.STABLE


class DetectedPattern(BaseModel):
    id: str
    name: str
    description: str
    confidence: float = Field(ge=0, le=1)
    affected_reviewers: List[str] = Field(default_factory=list)
    suggested_action: str


class InverseSignalAudit(BaseModel):
    is_inverse_signal_detected: bool
    bad_reviewer_avg_accuracy: float
    good_reviewer_avg_accuracy: float
    signal_delta: float  # bad - good; positive means inverse

    all_bad: List[AuditReviewer] = Field(default_factory=list)
    all_good: List[AuditReviewer] = Field(default_factory=list)
    middle_tier: List[AuditReviewer] = Field(default_factory=list)

    patterns: List[DetectedPattern] = Field(default_factory=list)
    suggested_root_cause: Optional[RootCause] = None

    status: AuditStatus = AuditStatus.NOT_STARTED
