"""
Reliability scoring service.

Turns reviewer ids into reliability scores under the configured production
formula. The history itself comes from a metrics provider supplied by the
caller (the persistence layer); this service never stores anything.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional, Sequence

from ..config import ReliabilityConfig, settings
from ..models.history import RawReviewerData, ReliabilityScore
from .formulas import calculate_score, get_formula
from .metrics import calculate_reviewer_metrics


logger = logging.getLogger(__name__)

MetricsProvider = Callable[[Sequence[str]], Iterable[RawReviewerData]]


class ReliabilityService:
    """Scores reviewers with the active formula, optionally alongside a shadow formula."""

    def __init__(self, provider: MetricsProvider, config: Optional[ReliabilityConfig] = None):
        """
        Args:
            provider: Returns raw history for the requested reviewer ids
            config: Formula selection (defaults to settings.reliability)
        """
        self.provider = provider
        self.config = config or settings.reliability

    def get_reliability_scores(self, reviewer_ids: Sequence[str]) -> Dict[str, ReliabilityScore]:
        """
        Score every requested reviewer with the active formula.

        Reviewers the provider does not return are absent from the result.
        """
        formula = get_formula(self.config.active_formula)
        weights = formula.weights
        if not self.config.use_vote_validation:
            # The scorer redistributes nothing here; the vector simply loses this term
            weights = weights.model_copy(update={"vote_validation": 0.0})

        results: Dict[str, ReliabilityScore] = {}
        timestamp = datetime.now(timezone.utc)
        for raw in self.provider(reviewer_ids):
            metrics = calculate_reviewer_metrics(raw)
            results[raw.id] = ReliabilityScore(
                score=calculate_score(metrics, weights, formula.default_values),
                metrics=metrics,
                formula_id=formula.id,
                timestamp=timestamp,
            )

        missing = len(set(reviewer_ids) - set(results))
        if missing:
            logger.warning(f"No history returned for {missing} of {len(reviewer_ids)} reviewers")
        return results

    def get_shadow_score(self, reviewer_id: str, shadow_formula_id: Optional[str] = None) -> Optional[ReliabilityScore]:
        """Score one reviewer under the shadow formula without touching production scores."""
        result = self.get_reliability_scores([reviewer_id]).get(reviewer_id)
        if result is None:
            return None

        shadow = get_formula(shadow_formula_id or self.config.shadow_formula)
        return result.model_copy(update={
            "score": calculate_score(result.metrics, shadow.weights, shadow.default_values),
            "formula_id": shadow.id,
        })
