"""Tests for rule-based reviewer classification and label bootstrapping."""

import pytest

from xp_reliability.eval.classifier import (
    LOW_SIGNAL_REASON,
    bootstrap_labels,
    classify_reviewers,
    get_bad_reviewer_reason,
    get_combined_bad_reviewers,
    identify_bad,
    identify_good,
    mean_available_signal,
)


class TestIdentifyBad:
    """Test the bad-reviewer rules."""

    def test_missed_assignments_hard_fail(self, make_reviewer):
        verdict = identify_bad(make_reviewer("r1", missed_penalty=0.70))
        assert verdict.is_bad
        assert verdict.reasons == ["Misses 25%+ of assignments"]

    def test_admin_penalties_hard_fail(self, make_reviewer):
        verdict = identify_bad(make_reviewer("r1", penalty_score=0.79))
        assert verdict.is_bad
        assert verdict.reasons == ["Admin penalties (20+ points)"]

    def test_hard_fail_reports_only_hard_reasons(self, make_reviewer):
        reviewer = make_reviewer(
            "r1", missed_penalty=0.5, penalty_score=0.5, timeliness=0.4, accuracy=0.2, total_reviews=10
        )
        verdict = identify_bad(reviewer)
        assert verdict.reasons == ["Misses 25%+ of assignments", "Admin penalties (20+ points)"]

    def test_two_soft_fails(self, make_reviewer):
        verdict = identify_bad(make_reviewer("r1", timeliness=0.65, accuracy=0.40, total_reviews=10))
        assert verdict.is_bad
        assert verdict.reasons == ["Very late (<70%)", "Very low accuracy (<50%)"]

    def test_single_soft_fail_is_not_bad(self, make_reviewer):
        verdict = identify_bad(make_reviewer("r1", timeliness=0.65))
        assert not verdict.is_bad
        assert verdict.reasons == []

    def test_low_accuracy_needs_enough_reviews(self, make_reviewer):
        verdict = identify_bad(make_reviewer("r1", timeliness=0.65, accuracy=0.40, total_reviews=5))
        assert not verdict.is_bad

    def test_thresholds_are_strict(self, make_reviewer):
        assert not identify_bad(make_reviewer("r1", missed_penalty=0.75, penalty_score=0.80)).is_bad

    def test_reason_string(self, make_reviewer):
        reviewer = make_reviewer("r1", timeliness=0.65, accuracy=0.40, total_reviews=10)
        assert get_bad_reviewer_reason(reviewer) == "Very late (<70%), Very low accuracy (<50%)"
        assert get_bad_reviewer_reason(make_reviewer("r2")) == ""


class TestIdentifyGood:
    """Test the good-reviewer rules."""

    def test_accurate_reviewer_is_good(self, make_reviewer):
        reviewer = make_reviewer(
            "r1", experience=0.6, missed_penalty=0.95, penalty_score=0.95, timeliness=0.9, accuracy=0.72
        )
        verdict = identify_good(reviewer)
        assert verdict.is_good
        assert verdict.strengths == ["Accurate (70%+)", "Good accuracy (65%+)"]

    def test_core_without_strength_is_not_good(self, make_reviewer):
        reviewer = make_reviewer("r1", experience=0.6, timeliness=0.9, accuracy=0.6)
        assert not identify_good(reviewer).is_good

    def test_failing_core_requirement(self, make_reviewer):
        reviewer = make_reviewer("r1", experience=0.4, timeliness=0.99, accuracy=0.9)
        verdict = identify_good(reviewer)
        assert not verdict.is_good
        assert verdict.strengths == []

    def test_veteran_and_punctual(self, make_reviewer):
        reviewer = make_reviewer("r1", experience=1.0, timeliness=0.96, accuracy=0.5)
        assert identify_good(reviewer).strengths == ["Veteran (50+ reviews)", "Very punctual (95%+)"]


class TestClassifyReviewers:
    """Test partitioning of a population."""

    def test_partition(self, population):
        classification = classify_reviewers(population)
        assert {r.id for r in classification.bad_reviewers} == {"late1", "misser", "penalized"}
        assert {r.id for r in classification.good_reviewers} == {"veteran1", "veteran2", "veteran3"}
        assert len(classification.middle) == 5

    def test_tiers_keep_notes(self, population):
        classification = classify_reviewers(population)
        misser = next(e for e in classification.bad if e.reviewer.id == "misser")
        assert misser.notes == ["Misses 25%+ of assignments"]

    def test_empty_population(self):
        classification = classify_reviewers([])
        assert classification.good == [] and classification.middle == [] and classification.bad == []


class TestCombinedBadReviewers:
    """Test rule-based plus natural low-signal flagging."""

    def test_includes_rule_based(self, population):
        flagged = {e.reviewer.id for e in get_combined_bad_reviewers(population)}
        assert {"late1", "misser", "penalized"} <= flagged

    def test_low_signal_reviewers_are_tagged(self, make_reviewer):
        reviewers = [
            make_reviewer("high1", timeliness=1.0, late_percentage=1.0, experience=1.0),
            make_reviewer("high2", timeliness=0.98, late_percentage=0.98, experience=1.0),
            make_reviewer("mid", timeliness=0.85, late_percentage=0.85, experience=0.5),
            make_reviewer("low", timeliness=0.72, late_percentage=0.72, experience=0.0, review_variance=0.2),
        ]
        flagged = get_combined_bad_reviewers(reviewers)
        low = next(e for e in flagged if e.reviewer.id == "low")
        assert low.notes == [LOW_SIGNAL_REASON]
        assert "high1" not in {e.reviewer.id for e in flagged}

    def test_empty_population(self):
        assert get_combined_bad_reviewers([]) == []

    def test_mean_available_signal_skips_missing_data(self, make_reviewer):
        reviewer = make_reviewer("r1", accuracy=0.5, quality=0.0)
        expected = (0.9 + 0.4 + 1.0 + 0.9 + 0.8 + 0.65) / 6
        assert mean_available_signal(reviewer) == pytest.approx(expected)


class TestBootstrapLabels:
    """Test ground-truth label derivation."""

    def test_rule_based_labels(self, population):
        labels = bootstrap_labels(population)
        assert labels.source == "rules"
        assert labels.bad_ids == {"late1", "misser", "penalized"}
        assert {r.id for r in labels.good} == {"veteran1", "veteran2", "veteran3"}

    def test_kmeans_fallback(self, make_reviewer):
        low = [
            make_reviewer(f"low{i}", timeliness=0.72, late_percentage=0.72, experience=0.0,
                          accuracy=0.3, total_reviews=3)
            for i in range(3)
        ]
        high = [
            make_reviewer(f"high{i}", timeliness=1.0, late_percentage=1.0, experience=1.0, accuracy=0.9)
            for i in range(3)
        ]
        labels = bootstrap_labels(low + high)
        assert labels.source == "kmeans"
        assert labels.bad_ids == {"low0", "low1", "low2"}
        assert {r.id for r in labels.good} == {"high0", "high1", "high2"}

    def test_no_separation_means_no_bad(self, make_reviewer):
        reviewers = [make_reviewer(f"r{i}") for i in range(4)]
        labels = bootstrap_labels(reviewers)
        assert labels.source == "none"
        assert labels.bad == []
        assert len(labels.good) == 4

    def test_empty_population(self):
        labels = bootstrap_labels([])
        assert labels.bad == [] and labels.good == []
