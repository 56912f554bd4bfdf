"""
Genetic optimizer for formula weights.

Searches the nine-dimensional weight space for the vector with the best
fitness over a reviewer population:

    initialize -> evolve (sort, record best, elitism, crossover + mutation)
               -> converged | max iterations -> finalize

Every run owns its SeededRandom, so identical inputs and seed always give
an identical OptimizationResult.
"""

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..models.metrics import WEIGHT_KEYS, FormulaWeights, ReviewerMetrics
from ..models.results import OptimizationConfig, OptimizationMetrics, OptimizationResult
from ..scoring.formulas import calculate_score, data_coverage
from .classifier import ReviewerLabels, bootstrap_labels, identify_bad
from .fitness import (
    DISCRIMINATION_SCALE,
    FAIRNESS_TOLERANCE,
    NEUTRAL_SCORE,
    NEW_REVIEWER_MAX_REVIEWS,
    FitnessContext,
    calculate_fitness,
)
from .prng import SeededRandom


logger = logging.getLogger(__name__)

# Crossover and mutation
MUTATION_PROBABILITY = 0.1
MUTATION_MAGNITUDE = 0.2
PARENT_POOL_PRIMARY = 10
PARENT_POOL_SECONDARY = 20

# Normalize-and-cap
WEIGHT_CAP = 0.4
FLEXIBLE_MIN = 0.01
MIN_COVERAGE = 0.1
MIN_VOTE_COVERAGE = 0.05
CAP_PASSES = 10
OVERAGE_TOLERANCE = 1e-6

# Plateau detection
CONVERGENCE_MIN_GENERATIONS = 20
CONVERGENCE_WINDOW = 10
CONVERGENCE_EPSILON = 0.001

SPREAD_SCALE = 0.5

# A seed of 0 runs as this seed
DEFAULT_SEED = 42

Individual = Tuple[FormulaWeights, float]


def _min_coverage(key: str) -> float:
    return MIN_VOTE_COVERAGE if key == "vote_validation" else MIN_COVERAGE


def normalize_and_cap(
    raw: Mapping[str, float],
    reviewers: Sequence[ReviewerMetrics] = (),
    force_include: Iterable[str] = (),
    coverage: Optional[Mapping[str, float]] = None,
) -> FormulaWeights:
    """
    Turn a raw weight draft into a valid weight vector.

    1. Keys with too little data coverage are zeroed unless forced.
    2. Negative weights are floored at 0.
    3. Up to CAP_PASSES times: normalize, cap each weight at WEIGHT_CAP and
       share the overage equally among the flexible weights
       (strictly between FLEXIBLE_MIN and WEIGHT_CAP).
    4. A final normalization.

    An all-zero draft stays all zero. With fewer than three usable keys the
    cap cannot be met and the final normalization wins.

    Args:
        raw: Draft weights by key (missing keys count as 0)
        reviewers: Population the coverage gate is measured on
        force_include: Keys exempt from the coverage gate
        coverage: Precomputed ``data_coverage(reviewers)``

    Returns:
        FormulaWeights summing to 1 (or all zero)
    """
    coverage = coverage if coverage is not None else data_coverage(reviewers)
    forced = set(force_include)

    weights = {}
    for key in WEIGHT_KEYS:
        if coverage[key] < _min_coverage(key) and key not in forced:
            weights[key] = 0.0
        else:
            weights[key] = max(0.0, raw.get(key, 0.0) or 0.0)

    for _ in range(CAP_PASSES):
        total = sum(weights.values()) or 1
        overage = 0.0
        flexible = []
        for key in WEIGHT_KEYS:
            weights[key] /= total
            if weights[key] > WEIGHT_CAP:
                overage += weights[key] - WEIGHT_CAP
                weights[key] = WEIGHT_CAP
            elif FLEXIBLE_MIN < weights[key] < WEIGHT_CAP:
                flexible.append(key)

        if overage <= OVERAGE_TOLERANCE:
            break
        if flexible:
            share = overage / len(flexible)
            for key in flexible:
                weights[key] += share

    total = sum(weights.values())
    if total == 0:
        logger.warning("Weight draft has no usable weight; returning an all-zero vector")
        total = 1
    return FormulaWeights(**{key: value / total for key, value in weights.items()})


def _random_draft(rng: SeededRandom) -> dict:
    return {key: rng() for key in WEIGHT_KEYS}


def _crossover(parent1: FormulaWeights, parent2: FormulaWeights, rng: SeededRandom) -> dict:
    child = {}
    for key in WEIGHT_KEYS:
        blend = rng()
        child[key] = getattr(parent1, key) * blend + getattr(parent2, key) * (1 - blend)
        if rng() < MUTATION_PROBABILITY:
            child[key] += (rng() - 0.5) * MUTATION_MAGNITUDE
    return child


def _has_plateaued(history: List[float], generation: int) -> bool:
    return (
        generation > CONVERGENCE_MIN_GENERATIONS
        and history[generation] - history[generation - CONVERGENCE_WINDOW] < CONVERGENCE_EPSILON
    )


def _final_metrics(
    reviewers: Sequence[ReviewerMetrics], weights: FormulaWeights, labels: ReviewerLabels
) -> OptimizationMetrics:
    scores = [calculate_score(r, weights) for r in reviewers]
    if not scores:
        return OptimizationMetrics(discrimination=0.0, bad_reviewer_accuracy=1.0, fairness=1.0, spread=0.0)

    # N comes from the bootstrapped labels; only rule-classified bad reviewers count as hits
    ordered = sorted(scores)
    bad_count = len(labels.bad)
    threshold = ordered[max(0, min(len(ordered) - 1, bad_count - 1))] or NEUTRAL_SCORE
    bad_in_bottom = sum(1 for r, s in zip(reviewers, scores) if identify_bad(r).is_bad and s <= threshold)

    new_scores = [s for r, s in zip(reviewers, scores) if r.total_reviews < NEW_REVIEWER_MAX_REVIEWS]
    new_avg = float(np.mean(new_scores)) if new_scores else NEUTRAL_SCORE

    return OptimizationMetrics(
        discrimination=min(1.0, float(np.std(scores)) / DISCRIMINATION_SCALE),
        bad_reviewer_accuracy=bad_in_bottom / bad_count if bad_count else 1.0,
        fairness=max(0.0, 1 - abs(new_avg - NEUTRAL_SCORE) / FAIRNESS_TOLERANCE),
        spread=(max(scores) - min(scores)) / SPREAD_SCALE,
    )


def optimize_weights(
    reviewers: Sequence[ReviewerMetrics],
    config: Optional[Union[OptimizationConfig, Mapping]] = None,
) -> OptimizationResult:
    """
    Search for the weight vector with the best fitness.

    Args:
        reviewers: Reviewer population (read-only)
        config: OptimizationConfig, or a partial mapping of its fields.
            A seed of 0 is treated as DEFAULT_SEED.

    Returns:
        OptimizationResult with the best weights, their fitness, the number of
        generations run and the best fitness per generation

    Raises:
        pydantic.ValidationError: if a config mapping is invalid
    """
    if config is None:
        config = OptimizationConfig()
    elif not isinstance(config, OptimizationConfig):
        config = OptimizationConfig.model_validate(dict(config))

    reviewers = list(reviewers)
    if not reviewers:
        logger.warning("Optimizing over an empty reviewer population")

    seed = config.seed or DEFAULT_SEED
    rng = SeededRandom(seed)
    labels = bootstrap_labels(reviewers)
    context = FitnessContext(reviewers, labels=labels)
    coverage = data_coverage(reviewers)
    force_include = tuple(config.force_include)

    logger.info(
        f"Optimizing weights over {len(reviewers)} reviewers "
        f"(population {config.population_size}, max {config.max_iterations} generations, "
        f"seed {seed}, {len(labels.bad)} bad via {labels.source})"
    )

    def individual(draft: Mapping[str, float]) -> Individual:
        weights = normalize_and_cap(draft, force_include=force_include, coverage=coverage)
        return weights, calculate_fitness(context, weights, force_include)

    population: List[Individual] = [individual(_random_draft(rng)) for _ in range(config.population_size)]

    primary_pool = min(PARENT_POOL_PRIMARY, len(population))
    secondary_pool = min(PARENT_POOL_SECONDARY, len(population))
    if secondary_pool < PARENT_POOL_SECONDARY:
        logger.warning(f"Population of {len(population)} is smaller than the parent pools; pools clamped")

    history: List[float] = []
    for generation in range(config.max_iterations):
        # Stable sort: ties keep their previous order
        population.sort(key=lambda ind: ind[1], reverse=True)
        history.append(population[0][1])
        logger.debug(f"Generation {generation}: best fitness {history[-1]:.4f}")

        if _has_plateaued(history, generation):
            logger.info(f"Converged after {generation + 1} generations")
            break

        next_generation = population[:config.elite_count]
        while len(next_generation) < config.population_size:
            parent1 = population[rng.index(primary_pool)][0]
            parent2 = population[rng.index(secondary_pool)][0]
            next_generation.append(individual(_crossover(parent1, parent2, rng)))
        population = next_generation

    population.sort(key=lambda ind: ind[1], reverse=True)
    best_weights, best_fitness = population[0]

    logger.info(f"Optimization finished: fitness {best_fitness:.4f} after {len(history)} generations")

    return OptimizationResult(
        weights=best_weights,
        score=best_fitness,
        iterations=len(history),
        convergence_history=history,
        metrics=_final_metrics(reviewers, best_weights, labels),
    )
