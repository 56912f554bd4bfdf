"""
Tests for the metrics calculator.

Tests cover:
- Cold-start reviewers
- Every normalized signal from a small review history
- Penalty and missed-review signals
- Custom normalization and vote parameters
"""

import pytest

from xp_reliability.config import NormalizationConfig, VoteValidationConfig
from xp_reliability.models.history import PeerReviewRecord, RawReviewerData, XpTransaction
from xp_reliability.models.metrics import NO_ACCURACY_DATA
from xp_reliability.scoring.metrics import (
    COLD_START_REVIEW_VARIANCE,
    UNRATED_QUALITY,
    calculate_all_metrics,
    calculate_reviewer_metrics,
)


VOTES = VoteValidationConfig(baseline=0.65, bonus=0.02, penalty=0.05)
CAPS = NormalizationConfig(
    max_reviews_for_experience=50, max_deviation_for_accuracy=100.0, max_std_dev_for_variance=100.0
)


def review(xp, final=None, late=False, rating=None, judgment="PENDING"):
    return PeerReviewRecord(
        xp_score=xp, final_xp=final, is_late=late, quality_rating=rating, judgment_status=judgment
    )


@pytest.fixture
def history():
    return RawReviewerData(
        id="u1",
        username="alice",
        peer_reviews=[
            review(60, final=70, late=True, rating=5, judgment="VALIDATED"),
            review(80, final=70, rating=3, judgment="VALIDATED"),
            review(70, judgment="INVALIDATED"),
            review(90, final=100),
        ],
    )


class TestColdStart:
    """Test reviewers without any review."""

    def test_cold_start_vector(self):
        metrics = calculate_reviewer_metrics(RawReviewerData(id="u1", missed_reviews=1), VOTES, CAPS)
        assert metrics.total_reviews == 0
        assert metrics.timeliness == 0.5
        assert metrics.quality == 0.5
        assert metrics.accuracy == NO_ACCURACY_DATA
        assert metrics.vote_validation == 0.5
        assert metrics.experience == 0.0
        assert metrics.review_variance == COLD_START_REVIEW_VARIANCE
        assert metrics.late_percentage == 0.5
        assert metrics.missed_penalty == pytest.approx(0.75)
        assert not metrics.has_accuracy_data

    def test_penalty_applies_without_reviews(self):
        raw = RawReviewerData(
            id="u1",
            xp_transactions=[XpTransaction(amount=-30, type="PENALTY"), XpTransaction(amount=50, type="BONUS")],
        )
        assert calculate_reviewer_metrics(raw, VOTES, CAPS).penalty_score == pytest.approx(0.7)


class TestSignals:
    """Test signal derivation from review history."""

    def test_all_signals(self, history):
        metrics = calculate_reviewer_metrics(history, VOTES, CAPS)
        assert metrics.total_reviews == 4
        assert metrics.late_reviews == 1
        assert metrics.timeliness == pytest.approx(0.75)
        assert metrics.late_percentage == metrics.timeliness
        assert metrics.avg_quality_rating == pytest.approx(4.0)
        assert metrics.quality == pytest.approx(0.75)
        assert metrics.avg_deviation == pytest.approx(10.0)
        assert metrics.accuracy == pytest.approx(0.9)
        assert metrics.votes_validated == 2
        assert metrics.votes_invalidated == 1
        assert metrics.vote_validation == pytest.approx(0.64)
        assert metrics.experience == pytest.approx(0.08)
        assert metrics.review_variance == pytest.approx(1 - 125 ** 0.5 / 100)
        assert metrics.extreme_miss_count == 0
        assert metrics.penalty_score == 1.0
        assert metrics.missed_penalty == 1.0

    def test_unrated_quality_and_no_consensus(self):
        raw = RawReviewerData(id="u1", peer_reviews=[review(50), review(50)])
        metrics = calculate_reviewer_metrics(raw, VOTES, CAPS)
        assert metrics.quality == UNRATED_QUALITY
        assert metrics.accuracy == NO_ACCURACY_DATA
        assert metrics.review_variance == 1.0
        assert not metrics.has_quality_data

    def test_extreme_misses(self):
        raw = RawReviewerData(id="u1", peer_reviews=[review(10, final=90), review(50, final=60)])
        metrics = calculate_reviewer_metrics(raw, VOTES, CAPS)
        assert metrics.extreme_miss_count == 1
        assert metrics.extreme_miss_rate == pytest.approx(0.5)
        assert metrics.accuracy == pytest.approx(1 - 45 / 100)

    def test_signals_are_clamped(self):
        raw = RawReviewerData(
            id="u1",
            missed_reviews=6,
            peer_reviews=[review(0, final=200, judgment="INVALIDATED") for _ in range(20)],
            xp_transactions=[XpTransaction(amount=-150, type="PENALTY")],
        )
        metrics = calculate_reviewer_metrics(raw, VOTES, CAPS)
        assert metrics.accuracy == 0.0
        assert metrics.vote_validation == 0.0
        assert metrics.missed_penalty == 0.0
        assert metrics.penalty_score == 0.0

    def test_custom_normalization(self, history):
        caps = NormalizationConfig(
            max_reviews_for_experience=4, max_deviation_for_accuracy=20.0, max_std_dev_for_variance=50.0
        )
        metrics = calculate_reviewer_metrics(history, VOTES, caps)
        assert metrics.experience == 1.0
        assert metrics.accuracy == pytest.approx(0.5)
        assert metrics.review_variance == pytest.approx(1 - 125 ** 0.5 / 50)


class TestIdentity:
    """Test display names and raw input parsing."""

    def test_email_fallback(self):
        raw = RawReviewerData(id="u1", email="bob@example.com")
        assert calculate_reviewer_metrics(raw, VOTES, CAPS).username == "bob"

    def test_unknown_fallback(self):
        assert calculate_reviewer_metrics(RawReviewerData(id="u1"), VOTES, CAPS).username == "Unknown"

    def test_camel_case_raw_input(self):
        raw = RawReviewerData.model_validate({
            "id": "u1",
            "missedReviews": 2,
            "peerReviews": [{"xpScore": 70, "finalXp": 80, "isLate": True, "judgmentStatus": "VALIDATED"}],
            "xpTransactions": [{"amount": -10, "type": "PENALTY"}],
        })
        metrics = calculate_reviewer_metrics(raw, VOTES, CAPS)
        assert metrics.timeliness == 0.0
        assert metrics.accuracy == pytest.approx(0.9)
        assert metrics.missed_penalty == pytest.approx(0.5)
        assert metrics.penalty_score == pytest.approx(0.9)

    def test_batch(self, history):
        metrics = calculate_all_metrics([history, RawReviewerData(id="u2")])
        assert [m.id for m in metrics] == ["u1", "u2"]
