"""
Statistics helpers for score populations.

Every helper fails soft: empty or zero-variance input yields neutral values
(0 correlation, empty stats) instead of NaN or an exception.
"""

import logging
import math
from typing import List, Sequence

import numpy as np
from scipy.stats import pearsonr

from ..models.results import ComparisonStats, DistributionBucket, KMeansResult


logger = logging.getLogger(__name__)

HISTOGRAM_BUCKETS = 10
KMEANS_MAX_ITERATIONS = 10
KMEANS_TOLERANCE = 0.001


def calculate_std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.std(values))


def calculate_stats(scores: Sequence[float]) -> ComparisonStats:
    """
    Summarize a score population.

    Args:
        scores: Scores in [0, 1]

    Returns:
        ComparisonStats with population std dev and a 10-bucket histogram
        (bucket i covers [i/10, (i+1)/10), the last bucket includes 1.0)
    """
    if len(scores) == 0:
        return ComparisonStats()

    data = np.asarray(scores, dtype=float)
    distribution = [
        DistributionBucket(bucket=(i + 1) / HISTOGRAM_BUCKETS, count=0)
        for i in range(HISTOGRAM_BUCKETS)
    ]
    for score in data:
        index = min(max(int(math.floor(score * HISTOGRAM_BUCKETS)), 0), HISTOGRAM_BUCKETS - 1)
        distribution[index].count += 1

    return ComparisonStats(
        mean=float(np.mean(data)),
        std_dev=float(np.std(data)),
        min=float(np.min(data)),
        max=float(np.max(data)),
        median=float(np.median(data)),
        distribution=distribution,
    )


def calculate_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Pearson correlation coefficient.

    Returns 0 for mismatched or empty series and when either series has
    zero variance.
    """
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0

    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0

    r, _ = pearsonr(x, y)
    r = float(r)
    return 0.0 if math.isnan(r) else r


def k_means_1d(values: Sequence[float], k: int = 2, max_iterations: int = KMEANS_MAX_ITERATIONS) -> KMeansResult:
    """
    One-dimensional k-means (Lloyd's algorithm).

    Centroids start evenly spaced between the minimum and maximum value, so
    the result is deterministic for a given input. Iteration stops once no
    centroid moves by more than KMEANS_TOLERANCE, or after ``max_iterations``.

    Args:
        values: Points to cluster
        k: Number of clusters (must be >= 1)
        max_iterations: Iteration cap

    Returns:
        KMeansResult with centroids, clustered values and each value's cluster index

    Raises:
        ValueError: if k < 1
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")
    if len(values) == 0:
        return KMeansResult()
    if len(values) < k:
        return KMeansResult(
            centroids=list(values),
            clusters=[[v] for v in values],
            assignments=list(range(len(values))),
        )

    data = np.asarray(values, dtype=float)
    centroids = np.linspace(data.min(), data.max(), k)
    assignments = np.zeros(len(data), dtype=int)

    for _ in range(max_iterations):
        # Ties go to the lower-index centroid
        assignments = np.argmin(np.abs(data[:, None] - centroids[None, :]), axis=1)

        new_centroids = centroids.copy()
        for i in range(k):
            members = data[assignments == i]
            if len(members) > 0:
                new_centroids[i] = members.mean()

        if np.all(np.abs(new_centroids - centroids) < KMEANS_TOLERANCE):
            break
        centroids = new_centroids

    clusters: List[List[float]] = [[] for _ in range(k)]
    for value, cluster in zip(data, assignments):
        clusters[int(cluster)].append(float(value))

    return KMeansResult(
        centroids=[float(c) for c in centroids],
        clusters=clusters,
        assignments=[int(a) for a in assignments],
    )


def nearest_centroid(value: float, centroids: Sequence[float]) -> int:
    """Index of the closest centroid (first one on ties)."""
    best_index = 0
    best_distance = math.inf
    for i, centroid in enumerate(centroids):
        distance = abs(value - centroid)
        if distance < best_distance:
            best_distance = distance
            best_index = i
    return best_index
