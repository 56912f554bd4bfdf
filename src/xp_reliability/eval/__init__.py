"""
Formula evaluation and optimization.

Provides statistics, rule-based reviewer classification, multi-criteria
fitness evaluation, the seeded genetic weight optimizer, explainability
analysis, formula recommendation and the inverse-signal audit.
"""

from .prng import SeededRandom
from .stats import (
    calculate_stats,
    calculate_std_dev,
    calculate_correlation,
    k_means_1d,
    nearest_centroid,
)
from .classifier import (
    identify_bad,
    identify_good,
    classify_reviewers,
    get_bad_reviewer_reason,
    get_combined_bad_reviewers,
    mean_available_signal,
    bootstrap_labels,
    ReviewerLabels,
)
from .analysis import calculate_feature_matrix, calculate_correlation_matrix
from .fitness import (
    FitnessContext,
    calculate_confidence,
    evaluate_formula,
    evaluate_formula_weights,
    calculate_fitness,
)
from .optimizer import normalize_and_cap, optimize_weights
from .recommend import calculate_rank_changes, generate_data_insights, generate_recommendation
from .audit import (
    build_audit_reviewer,
    detect_patterns,
    infer_root_cause,
    run_inverse_signal_audit,
)


__all__ = [
    # Statistics
    'SeededRandom',
    'calculate_stats',
    'calculate_std_dev',
    'calculate_correlation',
    'k_means_1d',
    'nearest_centroid',

    # Classification
    'identify_bad',
    'identify_good',
    'classify_reviewers',
    'get_bad_reviewer_reason',
    'get_combined_bad_reviewers',
    'mean_available_signal',
    'bootstrap_labels',
    'ReviewerLabels',

    # Evaluation
    'calculate_feature_matrix',
    'calculate_correlation_matrix',
    'FitnessContext',
    'calculate_confidence',
    'evaluate_formula',
    'evaluate_formula_weights',
    'calculate_fitness',

    # Optimization
    'normalize_and_cap',
    'optimize_weights',

    # Recommendation and audit
    'calculate_rank_changes',
    'generate_data_insights',
    'generate_recommendation',
    'build_audit_reviewer',
    'detect_patterns',
    'infer_root_cause',
    'run_inverse_signal_audit',
]
