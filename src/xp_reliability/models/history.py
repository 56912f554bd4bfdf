"""
Raw review history records consumed by the metrics calculator.

These mirror what the persistence layer hands over for one reviewer: their
peer reviews (with the submission's final consensus XP) and XP transactions.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .metrics import ReviewerMetrics


class PeerReviewRecord(BaseModel):
    """A single peer review left by the reviewer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    xp_score: float
    quality_rating: Optional[float] = None  # 1-5 when rated
    is_late: bool = False
    judgment_status: str = "PENDING"  # VALIDATED / INVALIDATED / PENDING
    created_at: Optional[datetime] = None
    final_xp: Optional[float] = None  # consensus XP of the submission, once finalized
    submission_id: Optional[str] = None
    submission_title: Optional[str] = None


class XpTransaction(BaseModel):
    """XP ledger entry; only PENALTY entries feed the reliability metrics."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    amount: float
    type: str


class RawReviewerData(BaseModel):
    """Everything needed to derive ReviewerMetrics for one reviewer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    username: Optional[str] = None
    email: str = ""
    missed_reviews: int = Field(default=0, ge=0)
    streak_weeks: int = Field(default=0, ge=0)
    peer_reviews: List[PeerReviewRecord] = Field(default_factory=list)
    xp_transactions: List[XpTransaction] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        """Username, else the e-mail local part, else "Unknown"."""
        if self.username:
            return self.username
        local_part = self.email.split("@")[0] if self.email else ""
        return local_part or "Unknown"


class ReliabilityScore(BaseModel):
    """Score of one reviewer under one formula at one point in time."""

    score: float = Field(ge=0, le=1)
    metrics: ReviewerMetrics
    formula_id: str
    timestamp: datetime
