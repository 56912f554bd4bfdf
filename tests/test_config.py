"""Tests for configuration management."""

import os
import pytest
from unittest.mock import patch

from pydantic import ValidationError

from xp_reliability.config import (
    AppConfig,
    NormalizationConfig,
    OptimizerSettings,
    ReliabilityConfig,
    Settings,
    VoteValidationConfig,
    load_optimization_config,
)


def test_reliability_config_defaults():
    """Test reliability configuration with defaults."""
    config = ReliabilityConfig()
    assert config.active_formula == "LEGACY"
    assert config.shadow_formula == "CUSTOM_V1"
    assert config.use_vote_validation is True
    assert config.enable_shadow_mode is True


def test_reliability_config_from_env():
    """Test formula selection from the environment."""
    with patch.dict(os.environ, {
        "XP_RELIABILITY_ACTIVE_FORMULA": " balanced ",
        "XP_RELIABILITY_USE_VOTE_VALIDATION": "false"
    }):
        config = ReliabilityConfig()
        assert config.active_formula == "BALANCED"
        assert config.use_vote_validation is False


def test_reliability_config_empty_formula():
    """Test empty formula id."""
    with patch.dict(os.environ, {
        "XP_RELIABILITY_SHADOW_FORMULA": "   "
    }):
        with pytest.raises(ValueError, match="non-empty"):
            ReliabilityConfig()


def test_vote_validation_config():
    """Test vote validation parameters."""
    config = VoteValidationConfig()
    assert config.baseline == 0.65
    assert config.bonus == 0.02
    assert config.penalty == 0.05

    with patch.dict(os.environ, {"XP_VOTE_VALIDATION_BASELINE": "1.5"}):
        with pytest.raises(ValidationError):
            VoteValidationConfig()


def test_normalization_config():
    """Test normalization caps."""
    with patch.dict(os.environ, {"XP_NORMALIZATION_MAX_REVIEWS_FOR_EXPERIENCE": "25"}):
        config = NormalizationConfig()
        assert config.max_reviews_for_experience == 25
        assert config.max_deviation_for_accuracy == 100.0

    with patch.dict(os.environ, {"XP_NORMALIZATION_MAX_STD_DEV_FOR_VARIANCE": "0"}):
        with pytest.raises(ValidationError):
            NormalizationConfig()


def test_app_config_defaults():
    """Test app configuration with defaults."""
    config = AppConfig()
    assert config.name == "xp-reliability"
    assert config.version == "0.1.0"
    assert config.log_level == "INFO"
    assert config.debug is False


def test_app_config_log_level():
    """Test log level validation."""
    with patch.dict(os.environ, {"XP_APP_LOG_LEVEL": "debug"}):
        assert AppConfig().log_level == "DEBUG"

    with patch.dict(os.environ, {"XP_APP_LOG_LEVEL": "LOUD"}):
        with pytest.raises(ValueError, match="Invalid log level"):
            AppConfig()


def test_settings_sections():
    """Test the main settings aggregate."""
    settings = Settings.load()
    assert isinstance(settings.reliability, ReliabilityConfig)
    assert isinstance(settings.optimizer, OptimizerSettings)
    assert settings.optimizer.seed == 42


def test_optimizer_settings_to_config():
    """Test explicit overrides winning over settings."""
    with patch.dict(os.environ, {"XP_OPTIMIZER_POPULATION_SIZE": "20"}):
        config = OptimizerSettings().to_config(seed=7, max_iterations=None)
        assert config.population_size == 20
        assert config.seed == 7
        assert config.max_iterations == 100


def test_load_optimization_config(tmp_path):
    """Test loading optimizer settings from YAML."""
    path = tmp_path / "optimizer.yaml"
    path.write_text(
        "optimizer:\n"
        "  max_iterations: 30\n"
        "  seed: 3\n"
        "  force_include:\n"
        "    - accuracy\n"
    )
    config = load_optimization_config(path)
    assert config.max_iterations == 30
    assert config.seed == 3
    assert config.population_size == 50
    assert config.force_include == ["accuracy"]


def test_load_optimization_config_top_level(tmp_path):
    """Test YAML without an optimizer section."""
    path = tmp_path / "optimizer.yaml"
    path.write_text("population_size: 12\n")
    config = load_optimization_config(path, OptimizerSettings(seed=9))
    assert config.population_size == 12
    assert config.seed == 9


def test_load_optimization_config_errors(tmp_path):
    """Test invalid optimizer config files."""
    with pytest.raises(ValueError, match="not found"):
        load_optimization_config(tmp_path / "missing.yaml")

    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError, match="must be a mapping"):
        load_optimization_config(listing)

    unknown = tmp_path / "unknown.yaml"
    unknown.write_text("force_include: [speed]\n")
    with pytest.raises(ValidationError):
        load_optimization_config(unknown)
