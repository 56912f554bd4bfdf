"""Tests for statistics helpers and the seeded generator."""

import pytest

from xp_reliability.eval.prng import LCG_MASK, SeededRandom
from xp_reliability.eval.stats import (
    calculate_correlation,
    calculate_stats,
    calculate_std_dev,
    k_means_1d,
    nearest_centroid,
)


class TestCalculateStats:
    """Test population summaries."""

    def test_empty_scores(self):
        stats = calculate_stats([])
        assert stats.mean == 0.0
        assert stats.std_dev == 0.0
        assert stats.distribution == []

    def test_summary_values(self):
        stats = calculate_stats([0.0, 0.25, 0.5, 1.0])
        assert stats.mean == pytest.approx(0.4375)
        assert stats.median == pytest.approx(0.375)
        assert stats.min == 0.0
        assert stats.max == 1.0
        assert stats.std_dev == pytest.approx(calculate_std_dev([0.0, 0.25, 0.5, 1.0]))

    def test_histogram_buckets(self):
        stats = calculate_stats([0.0, 0.25, 0.5, 1.0])
        counts = [bucket.count for bucket in stats.distribution]
        assert len(counts) == 10
        assert counts == [1, 0, 1, 0, 0, 1, 0, 0, 0, 1]
        assert stats.distribution[-1].bucket == pytest.approx(1.0)
        assert stats.distribution[0].bucket == pytest.approx(0.1)

    def test_std_dev(self):
        assert calculate_std_dev([]) == 0.0
        assert calculate_std_dev([1.0, 3.0]) == pytest.approx(1.0)


class TestCorrelation:
    """Test the guarded Pearson correlation."""

    def test_perfect_positive(self):
        assert calculate_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)

    def test_perfect_negative(self):
        assert calculate_correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_zero_variance_is_zero(self):
        assert calculate_correlation([0.5, 0.5, 0.5], [0.1, 0.2, 0.3]) == 0.0

    def test_mismatched_lengths(self):
        assert calculate_correlation([1, 2, 3], [1, 2]) == 0.0

    def test_too_short(self):
        assert calculate_correlation([], []) == 0.0
        assert calculate_correlation([1], [1]) == 0.0


class TestKMeans:
    """Test 1-D k-means."""

    def test_two_clear_clusters(self):
        result = k_means_1d([0.1, 0.15, 0.8, 0.85, 0.9], 2)
        assert result.centroids == pytest.approx([0.125, 0.85])
        assert result.assignments == [0, 0, 1, 1, 1]
        assert result.clusters[0] == pytest.approx([0.1, 0.15])

    def test_deterministic(self):
        values = [0.3, 0.9, 0.1, 0.5, 0.7, 0.2]
        assert k_means_1d(values, 3) == k_means_1d(values, 3)

    def test_input_order_does_not_change_centroids(self):
        forward = k_means_1d([0.1, 0.15, 0.8, 0.85, 0.9], 2)
        backward = k_means_1d([0.9, 0.85, 0.8, 0.15, 0.1], 2)
        assert forward.centroids == pytest.approx(backward.centroids)

    def test_empty_input(self):
        result = k_means_1d([], 2)
        assert result.centroids == []
        assert result.assignments == []

    def test_fewer_values_than_clusters(self):
        result = k_means_1d([0.3], 2)
        assert result.centroids == [0.3]
        assert result.assignments == [0]

    def test_identical_values(self):
        result = k_means_1d([0.4, 0.4, 0.4], 2)
        assert result.centroids == pytest.approx([0.4, 0.4])
        assert sum(len(c) for c in result.clusters) == 3

    def test_invalid_k(self):
        with pytest.raises(ValueError, match="at least 1"):
            k_means_1d([0.1, 0.2], 0)

    def test_nearest_centroid(self):
        assert nearest_centroid(0.7, [0.1, 0.5, 0.9]) == 1
        assert nearest_centroid(0.3, [0.1, 0.5]) == 0  # tie goes to the first


class TestSeededRandom:
    """Test the linear-congruential generator."""

    def test_first_state_for_seed_42(self):
        rng = SeededRandom(42)
        assert rng.next_state() == 1250496027

    def test_first_value_for_seed_42(self):
        assert SeededRandom(42)() == 1250496027 / LCG_MASK

    def test_same_seed_same_sequence(self):
        first = SeededRandom(7)
        second = SeededRandom(7)
        assert [first() for _ in range(50)] == [second() for _ in range(50)]

    def test_different_seeds_differ(self):
        assert SeededRandom(1)() != SeededRandom(2)()

    def test_values_in_unit_interval(self):
        rng = SeededRandom(123)
        assert all(0.0 <= rng() <= 1.0 for _ in range(1000))

    def test_index_in_range(self):
        rng = SeededRandom(99)
        assert all(0 <= rng.index(10) < 10 for _ in range(1000))

    def test_seed_zero_is_valid(self):
        rng = SeededRandom(0)
        assert rng.next_state() == 12345
