"""
Core data models for the reliability formula system.

This package contains:
- Reviewer metrics and formula weight models
- Raw review history records for the metrics calculator
- Scoring, optimization and analysis output schemas
- Inverse-signal audit schemas
"""

from .metrics import (
    WEIGHT_KEYS,
    OPTIONAL_SIGNALS,
    NO_ACCURACY_DATA,
    ReviewerMetrics,
    FormulaWeights,
    FormulaDefinition,
    metric_label,
    validate_weight_keys,
)
from .history import PeerReviewRecord, XpTransaction, RawReviewerData, ReliabilityScore
from .results import (
    FormulaBreakdown,
    FormulaResult,
    DistributionBucket,
    ComparisonStats,
    KMeansResult,
    BadVerdict,
    GoodVerdict,
    FlaggedReviewer,
    Classification,
    RankChange,
    Recommendation,
    FormulaEvaluation,
    FlaggedName,
    DataInsights,
    RecommendationData,
    OptimizationConfig,
    OptimizationMetrics,
    OptimizationResult,
    ClusterProfile,
    MetricImportance,
    FeatureImportanceMatrix,
    CorrelationMatrix,
)
from .audit import (
    TrendDirection,
    RootCause,
    AuditStatus,
    RootCauseDescription,
    ROOT_CAUSE_DESCRIPTIONS,
    ReviewHistoryItem,
    AuditReviewer,
    DetectedPattern,
    InverseSignalAudit,
)

__all__ = [
    # Metrics and weights
    "WEIGHT_KEYS",
    "OPTIONAL_SIGNALS",
    "NO_ACCURACY_DATA",
    "ReviewerMetrics",
    "FormulaWeights",
    "FormulaDefinition",
    "metric_label",
    "validate_weight_keys",

    # Raw history
    "PeerReviewRecord",
    "XpTransaction",
    "RawReviewerData",
    "ReliabilityScore",

    # Results
    "FormulaBreakdown",
    "FormulaResult",
    "DistributionBucket",
    "ComparisonStats",
    "KMeansResult",
    "BadVerdict",
    "GoodVerdict",
    "FlaggedReviewer",
    "Classification",
    "RankChange",
    "Recommendation",
    "FormulaEvaluation",
    "FlaggedName",
    "DataInsights",
    "RecommendationData",
    "OptimizationConfig",
    "OptimizationMetrics",
    "OptimizationResult",
    "ClusterProfile",
    "MetricImportance",
    "FeatureImportanceMatrix",
    "CorrelationMatrix",

    # Audit
    "TrendDirection",
    "RootCause",
    "AuditStatus",
    "RootCauseDescription",
    "ROOT_CAUSE_DESCRIPTIONS",
    "ReviewHistoryItem",
    "AuditReviewer",
    "DetectedPattern",
    "InverseSignalAudit",
]
