"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from xp_reliability import __version__
from xp_reliability.cli import app, load_records, load_reviewers
from xp_reliability.models.results import OptimizationResult


runner = CliRunner()


@pytest.fixture
def metrics_file(tmp_path, population):
    path = tmp_path / "reviewers.json"
    path.write_text(json.dumps({"reviewers": [r.model_dump() for r in population]}))
    return path


@pytest.fixture
def raw_file(tmp_path):
    path = tmp_path / "history.jsonl"
    records = [
        {
            "id": "u1",
            "username": "alice",
            "peerReviews": [{"xpScore": 60, "finalXp": 70, "isLate": True}, {"xpScore": 80, "finalXp": 80}],
        },
        {"id": "u2", "email": "bob@example.com", "missedReviews": 2, "peerReviews": []},
    ]
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n")
    return path


class TestLoading:
    """Test reviewer file loading."""

    def test_metrics_records(self, metrics_file, population):
        reviewers = load_reviewers(metrics_file)
        assert [r.id for r in reviewers] == [r.id for r in population]

    def test_raw_records_are_derived(self, raw_file):
        reviewers = load_reviewers(raw_file)
        assert reviewers[0].timeliness == pytest.approx(0.5)
        assert reviewers[1].username == "bob"
        assert reviewers[1].missed_penalty == pytest.approx(0.5)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_records(tmp_path / "nope.json")

    def test_malformed_records(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([1, 2, 3]))
        with pytest.raises(ValueError, match="Expected a list"):
            load_records(path)


class TestCommands:
    """Test the CLI commands end to end."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_presets(self):
        result = runner.invoke(app, ["presets"])
        assert result.exit_code == 0
        assert "Formula Presets" in result.output
        assert "LEGACY" in result.output

    def test_score(self, metrics_file):
        result = runner.invoke(app, ["score", str(metrics_file), "--formula", "balanced", "--breakdown"])
        assert result.exit_code == 0
        assert "veteran1" in result.output

    def test_score_unknown_formula(self, metrics_file):
        result = runner.invoke(app, ["score", str(metrics_file), "--formula", "NOPE"])
        assert result.exit_code == 1
        assert "Unknown formula" in result.output

    def test_score_missing_file(self, tmp_path):
        result = runner.invoke(app, ["score", str(tmp_path / "nope.json")])
        assert result.exit_code == 1

    def test_optimize_writes_result(self, metrics_file, tmp_path):
        output = tmp_path / "result.json"
        result = runner.invoke(app, [
            "optimize", str(metrics_file), "-i", "3", "-p", "4", "-s", "7", "-o", str(output),
        ])
        assert result.exit_code == 0
        assert "Optimization Result" in result.output
        optimized = OptimizationResult.model_validate_json(output.read_text())
        assert optimized.iterations <= 3
        assert optimized.weights.total() == pytest.approx(1.0)

    def test_optimize_with_yaml_config(self, metrics_file, tmp_path):
        config = tmp_path / "optimizer.yaml"
        config.write_text("max_iterations: 2\npopulation_size: 3\n")
        output = tmp_path / "result.json"
        result = runner.invoke(app, [
            "optimize", str(metrics_file), "-c", str(config), "-f", "accuracy", "-o", str(output),
        ])
        assert result.exit_code == 0
        assert OptimizationResult.model_validate_json(output.read_text()).iterations <= 2

    def test_optimize_invalid_force_include(self, metrics_file):
        result = runner.invoke(app, ["optimize", str(metrics_file), "-i", "1", "-f", "speed"])
        assert result.exit_code == 1

    def test_evaluate(self, metrics_file):
        result = runner.invoke(app, ["evaluate", str(metrics_file), "-f", "legacy", "-f", "balanced"])
        assert result.exit_code == 0
        assert "Formula Evaluation" in result.output
        assert "Data Insights" in result.output

    def test_analyze(self, metrics_file):
        result = runner.invoke(app, ["analyze", str(metrics_file), "--by-classification"])
        assert result.exit_code == 0
        assert "Feature Importance" in result.output
        assert "Correlation Matrix" in result.output

    def test_audit(self, raw_file):
        result = runner.invoke(app, ["audit", str(raw_file)])
        assert result.exit_code == 0
        assert "Inverse Signal Audit" in result.output
        # The unreviewed reviewer keeps the neutral 0.5 accuracy and no one qualifies as good
        assert "FAILED" in result.output
