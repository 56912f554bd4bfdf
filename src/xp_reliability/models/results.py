"""
Output schemas for scoring, evaluation, optimization and analysis.

Pure value objects: each is returned by one computation and has no lifecycle
beyond that call.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .metrics import FormulaWeights, ReviewerMetrics, validate_weight_keys


class FormulaBreakdown(BaseModel):
    """Contribution of one component to a reviewer's score."""
    component: str
    raw_value: float
    weight: float
    contribution: float


class FormulaResult(BaseModel):
    """Score of one reviewer with its per-component breakdown."""
    reviewer_id: str
    username: str
    score: float = Field(ge=0, le=1)
    breakdown: List[FormulaBreakdown] = Field(default_factory=list)


class DistributionBucket(BaseModel):
    """Histogram bucket; ``bucket`` is the upper edge (0.1, 0.2 ... 1.0)."""
    bucket: float
    count: int = 0


class ComparisonStats(BaseModel):
    """Summary statistics of a score population."""
    mean: float = 0.0
    std_dev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    median: float = 0.0
    distribution: List[DistributionBucket] = Field(default_factory=list)


class KMeansResult(BaseModel):
    """Result of 1-D k-means: centroids, clustered values and per-value assignment."""
    centroids: List[float] = Field(default_factory=list)
    clusters: List[List[float]] = Field(default_factory=list)
    assignments: List[int] = Field(default_factory=list)


class BadVerdict(BaseModel):
    is_bad: bool
    reasons: List[str] = Field(default_factory=list)


class GoodVerdict(BaseModel):
    is_good: bool
    strengths: List[str] = Field(default_factory=list)


class FlaggedReviewer(BaseModel):
    """A reviewer together with the reasons (or strengths) behind its tier."""
    reviewer: ReviewerMetrics
    notes: List[str] = Field(default_factory=list)


class Classification(BaseModel):
    """Reviewers partitioned into good / middle / bad tiers."""
    good: List[FlaggedReviewer] = Field(default_factory=list)
    middle: List[ReviewerMetrics] = Field(default_factory=list)
    bad: List[FlaggedReviewer] = Field(default_factory=list)

    @property
    def good_reviewers(self) -> List[ReviewerMetrics]:
        return [entry.reviewer for entry in self.good]

    @property
    def bad_reviewers(self) -> List[ReviewerMetrics]:
        return [entry.reviewer for entry in self.bad]


class RankChange(BaseModel):
    """How one reviewer's score and rank move between two formulas."""
    reviewer_id: str
    username: str
    current_score: float
    new_score: float
    score_delta: float
    current_rank: int
    new_rank: int
    rank_delta: int  # positive = moved up


class Recommendation(str, Enum):
    RECOMMENDED = "RECOMMENDED"
    ACCEPTABLE = "ACCEPTABLE"
    NOT_RECOMMENDED = "NOT_RECOMMENDED"


class FormulaEvaluation(BaseModel):
    """Multi-criteria assessment of one weight vector over a reviewer population."""
    formula_id: str
    formula_name: str
    weights: FormulaWeights

    # Criteria (0-1)
    discrimination: float
    discrimination_margin: float = 0.0  # 95% bootstrap margin of the score std dev
    known_bad_accuracy: float
    fairness: float
    stability: float
    overall_score: float

    recommendation: Recommendation
    reasons: List[str] = Field(default_factory=list)
    tradeoffs: List[str] = Field(default_factory=list)


class FlaggedName(BaseModel):
    username: str
    reason: str


class DataInsights(BaseModel):
    accuracy_impact: str
    voting_impact: str
    new_reviewer_fairness: str
    best_distribution: str
    bad_reviewers: List[FlaggedName] = Field(default_factory=list)
    consistency_analysis: str = ""
    experience_impact: str = ""
    penalty_effectiveness: str = ""


class RecommendationData(BaseModel):
    best_formula: Optional[FormulaEvaluation] = None
    evaluations: List[FormulaEvaluation] = Field(default_factory=list)
    insights: DataInsights


class OptimizationConfig(BaseModel):
    """
    Genetic optimizer settings.

    ``mutation_rate`` and ``target_bad_reviewer_accuracy`` are informational:
    the per-gene mutation probability is fixed (see eval.optimizer).
    """
    max_iterations: int = Field(default=100, ge=0)
    population_size: int = Field(default=50, ge=1)
    mutation_rate: float = Field(default=0.15, ge=0, le=1)
    elite_count: int = Field(default=5, ge=0)
    target_bad_reviewer_accuracy: float = Field(default=0.7, ge=0, le=1)
    seed: int = 42
    force_include: List[str] = Field(default_factory=list)

    @field_validator("force_include")
    @classmethod
    def check_force_include(cls, v):
        """Forced metrics must be known weight keys."""
        return validate_weight_keys(v, "force_include")


class OptimizationMetrics(BaseModel):
    discrimination: float
    bad_reviewer_accuracy: float
    fairness: float
    spread: float


class OptimizationResult(BaseModel):
    """Best weight vector found by one optimizer run, with its convergence history."""
    weights: FormulaWeights
    score: float
    iterations: int
    convergence_history: List[float] = Field(default_factory=list)
    metrics: OptimizationMetrics


class ClusterProfile(BaseModel):
    """Per-cluster metric means and z-scores relative to the whole population."""
    name: str
    size: int
    avg_score: float
    metrics: Dict[str, float] = Field(default_factory=dict)
    z_scores: Dict[str, float] = Field(default_factory=dict)


class MetricImportance(BaseModel):
    name: str
    label: str
    importance: float  # 0-100, relative to the most separating metric


class FeatureImportanceMatrix(BaseModel):
    clusters: List[ClusterProfile] = Field(default_factory=list)
    metrics: List[MetricImportance] = Field(default_factory=list)


class CorrelationMatrix(BaseModel):
    metrics: List[str] = Field(default_factory=list)
    matrix: List[List[float]] = Field(default_factory=list)
