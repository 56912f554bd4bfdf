"""
Reviewer metric and formula weight models.

These are the inputs of the reliability formula:
- ReviewerMetrics: one derived record per reviewer (counts + normalized signals)
- FormulaWeights: the closed set of nine weight coefficients
- FormulaDefinition: a named, immutable preset bundling weights and defaults

All models accept the camelCase field names used by the web application
(``voteValidation``, ``avgQualityRating``...) as well as snake_case names.
"""

from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


# Order matters: scoring sums contributions in this order.
WEIGHT_KEYS: Tuple[str, ...] = (
    "timeliness",
    "quality",
    "accuracy",
    "vote_validation",
    "experience",
    "missed_penalty",
    "penalty_score",
    "review_variance",
    "late_percentage",
)

# Signals whose presence depends on the reviewer's history.
OPTIONAL_SIGNALS: Tuple[str, ...] = ("quality", "accuracy", "vote_validation")

# Sentinel accuracy value meaning "no consensus data".
NO_ACCURACY_DATA = 0.5


def metric_label(key: str) -> str:
    """Human readable label for a weight key ("vote_validation" -> "Vote Validation")."""
    return key.replace("_", " ").title()


class ReviewerMetrics(BaseModel):
    """
    Derived behavioural metrics for one reviewer.

    Defaults describe a cold-start reviewer (no reviews yet), so every
    normalized signal is always defined.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Identity
    id: str
    username: str = ""
    email: str = ""

    # Raw counts
    total_reviews: int = Field(default=0, ge=0)
    late_reviews: int = Field(default=0, ge=0)
    missed_reviews: int = Field(default=0, ge=0)
    streak_weeks: int = Field(default=0, ge=0)
    votes_validated: int = Field(default=0, ge=0)
    votes_invalidated: int = Field(default=0, ge=0)
    extreme_miss_count: int = Field(default=0, ge=0)

    # Normalized signals (0-1, higher is better)
    timeliness: float = Field(default=0.5, ge=0, le=1)
    quality: float = Field(default=0.5, ge=0, le=1)
    accuracy: float = Field(default=NO_ACCURACY_DATA, ge=0, le=1)
    vote_validation: float = Field(default=0.5, ge=0, le=1)
    experience: float = Field(default=0.0, ge=0, le=1)
    missed_penalty: float = Field(default=1.0, ge=0, le=1)
    penalty_score: float = Field(default=1.0, ge=0, le=1)
    review_variance: float = Field(default=0.75, ge=0, le=1)
    late_percentage: float = Field(default=0.5, ge=0, le=1)

    # Diagnostics
    avg_deviation: float = Field(default=0.0, ge=0)
    avg_quality_rating: float = Field(default=0.0, ge=0)
    extreme_miss_rate: float = Field(default=0.0, ge=0, le=1)

    @property
    def has_quality_data(self) -> bool:
        return self.avg_quality_rating > 0

    @property
    def has_accuracy_data(self) -> bool:
        return self.total_reviews > 0 and self.accuracy != NO_ACCURACY_DATA

    @property
    def has_vote_data(self) -> bool:
        return self.votes_validated > 0 or self.votes_invalidated > 0

    def has_data_for(self, key: str) -> bool:
        """Whether the reviewer has real data for a weight key. Always-on signals return True."""
        if key == "quality":
            return self.has_quality_data
        if key == "accuracy":
            return self.has_accuracy_data
        if key == "vote_validation":
            return self.has_vote_data
        return True

    def signal(self, key: str) -> float:
        """Raw normalized value for a weight key."""
        return getattr(self, key)


class FormulaWeights(BaseModel):
    """Nine non-negative weight coefficients. Normalization is soft (see scoring.formulas)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid"
    )

    timeliness: float = Field(default=0.0, ge=0)
    quality: float = Field(default=0.0, ge=0)
    accuracy: float = Field(default=0.0, ge=0)
    vote_validation: float = Field(default=0.0, ge=0)
    experience: float = Field(default=0.0, ge=0)
    missed_penalty: float = Field(default=0.0, ge=0)
    penalty_score: float = Field(default=0.0, ge=0)
    review_variance: float = Field(default=0.0, ge=0)
    late_percentage: float = Field(default=0.0, ge=0)

    @classmethod
    def from_mapping(cls, values: Mapping[str, float]) -> "FormulaWeights":
        """Build weights from a (possibly partial) mapping of weight keys."""
        return cls.model_validate(dict(values))

    def as_dict(self) -> Dict[str, float]:
        return {key: getattr(self, key) for key in WEIGHT_KEYS}

    def total(self) -> float:
        return sum(getattr(self, key) for key in WEIGHT_KEYS)


def validate_weight_keys(keys, field_name: str = "keys"):
    """Raise ValueError if any key is not one of WEIGHT_KEYS."""
    unknown = [k for k in keys if k not in WEIGHT_KEYS]
    if unknown:
        raise ValueError(f"Unknown weight keys in {field_name}: {', '.join(sorted(unknown))}")
    return keys


class FormulaDefinition(BaseModel):
    """Named, versioned preset of weights plus substitutes for missing data."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    description: str = ""
    weights: FormulaWeights
    default_values: Mapping[str, float] = Field(default_factory=dict, validate_default=True)

    @field_validator("default_values")
    @classmethod
    def check_default_keys(cls, v):
        """Substitute values may only name known weight keys; stored read-only."""
        validate_weight_keys(v.keys(), "default_values")
        return MappingProxyType(dict(v))

    @field_serializer("default_values")
    def serialize_default_values(self, v) -> Dict[str, float]:
        return dict(v)
