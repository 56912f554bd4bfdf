"""
Explainability analysis for reliability formulas.

Provides the feature importance matrix (which metrics separate natural
reviewer clusters) and the pairwise metric correlation matrix. Neither feeds
back into scoring; both explain why a weight vector looks the way it does.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..models.metrics import NO_ACCURACY_DATA, FormulaWeights, ReviewerMetrics, metric_label
from ..models.results import (
    ClusterProfile,
    CorrelationMatrix,
    FeatureImportanceMatrix,
    MetricImportance,
)
from ..scoring.formulas import NEUTRAL_FORMULA, calculate_score
from .classifier import LOW_SIGNAL_KEYS, classify_reviewers, mean_available_signal
from .stats import calculate_correlation, k_means_1d, nearest_centroid


logger = logging.getLogger(__name__)

# The analysed metrics; missed_penalty is left out because it is a hard rule input.
ANALYSIS_KEYS = LOW_SIGNAL_KEYS

NATURAL_CLUSTER_NAMES = ("Natural High Performers", "Natural Middle Tier", "Natural Low Signal")
TIER_NAMES = ("Good Reviewers", "Middle Tier", "Bad Reviewers")

MIN_STD_DEV = 0.001
MIN_IMPORTANCE_VARIANCE = 0.0001


def _global_moments(reviewers: Sequence[ReviewerMetrics]):
    averages: Dict[str, float] = {}
    std_devs: Dict[str, float] = {}
    for key in ANALYSIS_KEYS:
        values = np.array([r.signal(key) for r in reviewers], dtype=float)
        averages[key] = float(values.mean())
        std_devs[key] = float(values.std()) or MIN_STD_DEV
    return averages, std_devs


def _profile(
    name: str,
    members: Sequence[ReviewerMetrics],
    weights: FormulaWeights,
    averages: Dict[str, float],
    std_devs: Dict[str, float],
) -> ClusterProfile:
    avg_score = float(np.mean([calculate_score(r, weights) for r in members])) if members else 0.0
    profile = ClusterProfile(name=name, size=len(members), avg_score=avg_score)
    for key in ANALYSIS_KEYS:
        # Empty clusters sit exactly at the population mean
        avg = float(np.mean([r.signal(key) for r in members])) if members else averages[key]
        profile.metrics[key] = avg
        profile.z_scores[key] = (avg - averages[key]) / std_devs[key]
    return profile


def _natural_clusters(reviewers: Sequence[ReviewerMetrics]) -> List[tuple]:
    signals = [mean_available_signal(r) for r in reviewers]
    centroids = k_means_1d(signals, min(3, len(reviewers))).centroids
    indices = [nearest_centroid(s, centroids) for s in signals]

    order = sorted(range(len(centroids)), key=lambda i: centroids[i], reverse=True)
    groups = []
    for rank, cluster_index in enumerate(order):
        name = NATURAL_CLUSTER_NAMES[rank] if rank < len(NATURAL_CLUSTER_NAMES) else f"Cluster {rank + 1}"
        members = [r for r, i in zip(reviewers, indices) if i == cluster_index]
        groups.append((name, members))
    return groups


def _tier_clusters(reviewers: Sequence[ReviewerMetrics]) -> List[tuple]:
    classification = classify_reviewers(reviewers)
    return list(zip(
        TIER_NAMES,
        (classification.good_reviewers, classification.middle, classification.bad_reviewers),
    ))


def calculate_feature_matrix(
    reviewers: Sequence[ReviewerMetrics],
    weights: Optional[FormulaWeights] = None,
    by_classification: bool = False,
) -> FeatureImportanceMatrix:
    """
    Profile reviewer clusters and rank metrics by how well they separate them.

    Reviewers are grouped into up to three natural clusters (1-D k-means over
    each reviewer's mean available signal), or into the rule-based
    good/middle/bad tiers when ``by_classification`` is set. Each cluster
    gets per-metric means and z-scores against the population; a metric's
    importance is the variance of its cluster means, scaled so the most
    separating metric scores 100.

    Args:
        reviewers: Reviewer population
        weights: Weights used for each cluster's average score (neutral preset by default)
        by_classification: Use rule-based tiers instead of natural clusters

    Returns:
        FeatureImportanceMatrix with metrics sorted by importance, descending
    """
    if not reviewers:
        return FeatureImportanceMatrix()

    weights = weights or NEUTRAL_FORMULA.weights
    averages, std_devs = _global_moments(reviewers)
    groups = _tier_clusters(reviewers) if by_classification else _natural_clusters(reviewers)
    profiles = [_profile(name, members, weights, averages, std_devs) for name, members in groups]

    variances = {
        key: float(np.var([p.metrics[key] for p in profiles]))
        for key in ANALYSIS_KEYS
    }
    max_variance = max(max(variances.values()), MIN_IMPORTANCE_VARIANCE)

    importance = [
        MetricImportance(name=key, label=metric_label(key), importance=variances[key] / max_variance * 100)
        for key in ANALYSIS_KEYS
    ]
    importance.sort(key=lambda m: m.importance, reverse=True)

    return FeatureImportanceMatrix(clusters=profiles, metrics=importance)


def _metric_has_data(reviewers: Sequence[ReviewerMetrics], key: str) -> bool:
    if key == "quality":
        return any(r.has_quality_data for r in reviewers)
    if key == "accuracy":
        return any(r.accuracy != NO_ACCURACY_DATA for r in reviewers)
    return any(r.signal(key) != 0 for r in reviewers)


def calculate_correlation_matrix(reviewers: Sequence[ReviewerMetrics]) -> CorrelationMatrix:
    """
    Pairwise Pearson correlation across the low-signal metrics.

    Covers the eight ANALYSIS_KEYS. ``missed_penalty`` is left out: it is a
    hard input of the bad-reviewer rules, so correlating it against the other
    signals would only restate the classification. Metrics no reviewer has
    data for are dropped from both axes.
    """
    active = [key for key in ANALYSIS_KEYS if _metric_has_data(reviewers, key)]
    columns = {key: [r.signal(key) for r in reviewers] for key in active}

    matrix = []
    for i, first in enumerate(active):
        row = []
        for j, second in enumerate(active):
            row.append(1.0 if i == j else calculate_correlation(columns[first], columns[second]))
        matrix.append(row)

    return CorrelationMatrix(metrics=[metric_label(key) for key in active], matrix=matrix)
