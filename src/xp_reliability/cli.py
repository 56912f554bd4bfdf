"""Command-line interface for the reliability formula system."""

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import load_optimization_config, settings
from .models.history import RawReviewerData
from .models.metrics import WEIGHT_KEYS, ReviewerMetrics
from .models.results import OptimizationConfig
from .scoring.formulas import (
    COMPONENT_LABELS,
    FORMULA_PRESETS,
    calculate_score_with_breakdown,
    find_preset,
)
from .scoring.metrics import calculate_reviewer_metrics

app = typer.Typer(
    name="xp-reliability",
    help="XP Reliability - Reviewer reliability scoring and formula optimization",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)

RAW_HISTORY_KEYS = ("peerReviews", "peer_reviews")


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to XP_APP_LOG_LEVEL)"
    )
):
    """Configure logging for every command."""
    level = (log_level or settings.app.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_records(path: Path) -> List[dict]:
    """
    Read reviewer records from a JSON or JSONL file.

    JSON files may hold a list of records or an object with a "reviewers" list.

    Raises:
        ValueError: if the file is missing or malformed
    """
    if not path.exists():
        raise ValueError(f"Input file not found: {path}")

    text = path.read_text()
    if path.suffix == ".jsonl":
        records = [json.loads(line) for line in text.splitlines() if line.strip()]
    else:
        data = json.loads(text)
        records = data.get("reviewers", []) if isinstance(data, dict) else data

    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise ValueError(f"Expected a list of reviewer objects in {path}")
    return records


def load_reviewers(path: Path) -> List[ReviewerMetrics]:
    """Load reviewer metrics, deriving them first when the file holds raw review history."""
    metrics = []
    for record in load_records(path):
        if any(key in record for key in RAW_HISTORY_KEYS):
            metrics.append(calculate_reviewer_metrics(RawReviewerData.model_validate(record)))
        else:
            metrics.append(ReviewerMetrics.model_validate(record))
    return metrics


def fail(message: str):
    console.print(f"[red]❌ {message}[/red]")
    raise typer.Exit(code=1)


def weights_table(title: str, weights) -> Table:
    table = Table(title=title)
    table.add_column("Component")
    table.add_column("Weight", justify="right")
    for key in WEIGHT_KEYS:
        value = getattr(weights, key)
        if value > 0:
            table.add_row(COMPONENT_LABELS[key], f"{value:.1%}")
    return table


@app.command()
def version():
    """Show version information."""
    from xp_reliability import __version__

    console.print(Panel.fit(
        f"[bold blue]XP Reliability[/bold blue]\n"
        f"Version: [green]{__version__}[/green]",
        title="Version Info"
    ))


@app.command()
def presets():
    """List the built-in formula presets."""
    table = Table(title="Formula Presets")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Weights")

    for preset in FORMULA_PRESETS:
        weights = ", ".join(
            f"{COMPONENT_LABELS[key]} {value:.0%}"
            for key, value in preset.weights.as_dict().items()
            if value > 0
        )
        table.add_row(preset.id, preset.name, weights)

    console.print(table)


@app.command()
def score(
    path: Path = typer.Argument(..., help="JSON/JSONL file of reviewer metrics or raw history"),
    formula: Optional[str] = typer.Option(
        None,
        "--formula",
        "-f",
        help="Preset id (defaults to the active production formula)"
    ),
    breakdown: bool = typer.Option(False, "--breakdown", "-b", help="Show per-component contributions"),
):
    """Score reviewers under a formula preset."""
    formula_id = (formula or settings.reliability.active_formula).upper()
    preset = find_preset(formula_id)
    if preset is None:
        fail(f"Unknown formula: {formula_id}")

    try:
        reviewers = load_reviewers(path)
    except (ValueError, ValidationError) as e:
        fail(f"Failed to load reviewers: {e}")

    results = [
        calculate_score_with_breakdown(r, preset.weights, preset.default_values)
        for r in reviewers
    ]
    results.sort(key=lambda result: result.score, reverse=True)

    table = Table(title=f"{preset.name} ({len(results)} reviewers)")
    table.add_column("Reviewer", style="cyan")
    table.add_column("Score", justify="right")
    if breakdown:
        table.add_column("Breakdown")

    for result in results:
        row = [result.username or result.reviewer_id, f"{result.score:.3f}"]
        if breakdown:
            row.append(", ".join(
                f"{part.component} {part.raw_value:.2f}×{part.weight:.2f}"
                for part in result.breakdown
            ))
        table.add_row(*row)

    console.print(table)


@app.command()
def optimize(
    path: Path = typer.Argument(..., help="JSON/JSONL file of reviewer metrics or raw history"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML optimizer config"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="PRNG seed"),
    iterations: Optional[int] = typer.Option(None, "--iterations", "-i", help="Maximum generations"),
    population: Optional[int] = typer.Option(None, "--population", "-p", help="Population size"),
    force_include: Optional[List[str]] = typer.Option(
        None,
        "--force-include",
        "-f",
        help="Weight key to keep active regardless of data coverage (repeatable)"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result as JSON"),
):
    """Search for the best formula weights with the genetic optimizer."""
    from .eval.optimizer import optimize_weights

    overrides = {
        "seed": seed,
        "max_iterations": iterations,
        "population_size": population,
        "force_include": force_include or None,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    try:
        if config_file:
            base = load_optimization_config(config_file, settings.optimizer)
            config = OptimizationConfig.model_validate({**base.model_dump(), **overrides})
        else:
            config = settings.optimizer.to_config(**overrides)
        reviewers = load_reviewers(path)
    except (ValueError, ValidationError) as e:
        fail(str(e))

    with console.status(f"[yellow]Optimizing over {len(reviewers)} reviewers...[/yellow]"):
        result = optimize_weights(reviewers, config)

    console.print(weights_table("Optimized Weights", result.weights))
    console.print(Panel.fit(
        f"Fitness: [green]{result.score:.4f}[/green]\n"
        f"Generations: {result.iterations}\n"
        f"Discrimination: {result.metrics.discrimination:.3f}\n"
        f"Bad reviewer accuracy: {result.metrics.bad_reviewer_accuracy:.1%}\n"
        f"Fairness: {result.metrics.fairness:.3f}\n"
        f"Spread: {result.metrics.spread:.3f}",
        title="Optimization Result"
    ))

    if output:
        output.write_text(result.model_dump_json(indent=2))
        console.print(f"[green]✅ Result written to {output}[/green]")


@app.command()
def evaluate(
    path: Path = typer.Argument(..., help="JSON/JSONL file of reviewer metrics or raw history"),
    formulas: Optional[List[str]] = typer.Option(
        None,
        "--formula",
        "-f",
        help="Preset id to evaluate (repeatable, defaults to all presets)"
    ),
):
    """Evaluate formula presets and recommend the best one."""
    from .eval.recommend import generate_recommendation

    try:
        reviewers = load_reviewers(path)
    except (ValueError, ValidationError) as e:
        fail(f"Failed to load reviewers: {e}")

    formula_ids = [f.upper() for f in formulas] if formulas else [p.id for p in FORMULA_PRESETS]
    report = generate_recommendation(reviewers, formula_ids)

    table = Table(title="Formula Evaluation")
    table.add_column("Formula", style="cyan")
    table.add_column("Overall", justify="right")
    table.add_column("Discrim.", justify="right")
    table.add_column("Bad Acc.", justify="right")
    table.add_column("Fairness", justify="right")
    table.add_column("Stability", justify="right")
    table.add_column("Recommendation")

    for evaluation in report.evaluations:
        table.add_row(
            evaluation.formula_id,
            f"{evaluation.overall_score:.3f}",
            f"{evaluation.discrimination:.2f} ± {evaluation.discrimination_margin:.2f}",
            f"{evaluation.known_bad_accuracy:.0%}",
            f"{evaluation.fairness:.2f}",
            f"{evaluation.stability:.2f}",
            evaluation.recommendation.value,
        )
    console.print(table)

    insights = report.insights
    console.print(Panel.fit(
        f"Accuracy: {insights.accuracy_impact}\n"
        f"Voting: {insights.voting_impact}\n"
        f"New reviewers: {insights.new_reviewer_fairness}\n"
        f"Coverage: {insights.best_distribution}\n"
        f"Flagged reviewers: {len(insights.bad_reviewers)}",
        title="Data Insights"
    ))


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="JSON/JSONL file of reviewer metrics or raw history"),
    by_classification: bool = typer.Option(
        False,
        "--by-classification",
        help="Group by rule-based tiers instead of natural clusters"
    ),
):
    """Show feature importance and metric correlations."""
    from .eval.analysis import calculate_correlation_matrix, calculate_feature_matrix

    try:
        reviewers = load_reviewers(path)
    except (ValueError, ValidationError) as e:
        fail(f"Failed to load reviewers: {e}")

    matrix = calculate_feature_matrix(reviewers, by_classification=by_classification)

    clusters = Table(title="Clusters")
    clusters.add_column("Cluster", style="cyan")
    clusters.add_column("Size", justify="right")
    clusters.add_column("Avg Score", justify="right")
    for profile in matrix.clusters:
        clusters.add_row(profile.name, str(profile.size), f"{profile.avg_score:.3f}")
    console.print(clusters)

    importance = Table(title="Feature Importance")
    importance.add_column("Metric", style="cyan")
    importance.add_column("Importance", justify="right")
    for metric in matrix.metrics:
        importance.add_row(metric.label, f"{metric.importance:.1f}")
    console.print(importance)

    correlations = calculate_correlation_matrix(reviewers)
    table = Table(title="Correlation Matrix")
    table.add_column("")
    for label in correlations.metrics:
        table.add_column(label, justify="right")
    for label, row in zip(correlations.metrics, correlations.matrix):
        table.add_row(label, *(f"{value:+.2f}" for value in row))
    console.print(table)


@app.command()
def audit(
    path: Path = typer.Argument(..., help="JSON/JSONL file of raw reviewer history"),
):
    """Check whether bad reviewers look more accurate than good ones."""
    from .eval.audit import run_inverse_signal_audit
    from .models.audit import ROOT_CAUSE_DESCRIPTIONS, AuditStatus

    try:
        raw_reviewers = [RawReviewerData.model_validate(r) for r in load_records(path)]
    except (ValueError, ValidationError) as e:
        fail(f"Failed to load reviewers: {e}")

    result = run_inverse_signal_audit(raw_reviewers)
    status_style = "red" if result.status == AuditStatus.FAILED else "green"

    lines = [
        f"Status: [{status_style}]{result.status.value}[/{status_style}]",
        f"Bad reviewer accuracy: {result.bad_reviewer_avg_accuracy:.1%} ({len(result.all_bad)} reviewers)",
        f"Good reviewer accuracy: {result.good_reviewer_avg_accuracy:.1%} ({len(result.all_good)} reviewers)",
    ]
    if result.suggested_root_cause is not None:
        cause = ROOT_CAUSE_DESCRIPTIONS[result.suggested_root_cause]
        lines.append(f"Root cause: {cause.title} ({cause.severity})")
        lines.append(f"Action: {cause.action}")
    for pattern in result.patterns:
        lines.append(f"Pattern: {pattern.name} ({pattern.confidence:.0%})")

    console.print(Panel.fit("\n".join(lines), title="Inverse Signal Audit"))


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
