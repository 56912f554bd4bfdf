"""Shared fixtures: reviewer factories and a mixed reviewer population."""

import pytest

from xp_reliability.models.metrics import ReviewerMetrics


def build_reviewer(reviewer_id: str, **overrides) -> ReviewerMetrics:
    """An established, unremarkable reviewer; override any field."""
    values = dict(
        id=reviewer_id,
        username=reviewer_id,
        total_reviews=20,
        late_reviews=2,
        timeliness=0.9,
        quality=0.5,
        accuracy=0.7,
        vote_validation=0.65,
        experience=0.4,
        missed_penalty=1.0,
        penalty_score=1.0,
        review_variance=0.8,
        late_percentage=0.9,
        avg_deviation=30.0,
    )
    values.update(overrides)
    return ReviewerMetrics(**values)


@pytest.fixture
def make_reviewer():
    """Factory fixture for reviewers."""
    return build_reviewer


@pytest.fixture
def population():
    """Eleven reviewers covering good, middle, bad, new and cold-start profiles."""
    return [
        build_reviewer(
            "veteran1", experience=1.0, timeliness=0.98, late_percentage=0.98, accuracy=0.85,
            total_reviews=50, quality=0.75, avg_quality_rating=4.0,
            votes_validated=3, vote_validation=0.71,
        ),
        build_reviewer("veteran2", experience=0.8, timeliness=0.92, late_percentage=0.92, accuracy=0.72, total_reviews=40),
        build_reviewer(
            "veteran3", experience=0.6, timeliness=0.88, late_percentage=0.88, accuracy=0.66,
            total_reviews=30, quality=0.5, avg_quality_rating=3.0,
        ),
        build_reviewer("steady1", experience=0.4, timeliness=0.85, late_percentage=0.85, accuracy=0.62),
        build_reviewer(
            "steady2", experience=0.3, timeliness=0.78, late_percentage=0.78, accuracy=0.55,
            review_variance=0.6, votes_invalidated=1, vote_validation=0.6,
        ),
        build_reviewer("late1", timeliness=0.6, late_percentage=0.6, accuracy=0.45, total_reviews=12, experience=0.24),
        build_reviewer("misser", missed_penalty=0.5, missed_reviews=2, timeliness=0.8, late_percentage=0.8),
        build_reviewer("penalized", penalty_score=0.7, experience=0.5, accuracy=0.6),
        build_reviewer(
            "newbie1", total_reviews=2, late_reviews=0, experience=0.04, timeliness=1.0,
            late_percentage=1.0, accuracy=0.5, review_variance=0.9,
        ),
        build_reviewer(
            "newbie2", total_reviews=3, late_reviews=1, experience=0.06, timeliness=0.67,
            late_percentage=0.67, accuracy=0.8,
        ),
        ReviewerMetrics(id="cold", username="cold"),
    ]
