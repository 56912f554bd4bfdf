"""Configuration management for the reliability formula system."""

from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.results import OptimizationConfig


class ReliabilityConfig(BaseSettings):
    """Which formula drives production consensus weighting."""

    model_config = SettingsConfigDict(env_prefix="XP_RELIABILITY_", env_file=".env", extra="ignore")

    active_formula: str = "LEGACY"
    use_vote_validation: bool = True
    # Shadow mode scores the shadow formula alongside without affecting consensus
    enable_shadow_mode: bool = True
    shadow_formula: str = "CUSTOM_V1"

    @field_validator("active_formula", "shadow_formula")
    @classmethod
    def validate_formula_id(cls, v):
        """Formula ids are upper-case preset identifiers."""
        if not v or not v.strip():
            raise ValueError("Formula id must be a non-empty string")
        return v.strip().upper()


class VoteValidationConfig(BaseSettings):
    """Parameters of max(0, min(1, baseline + validated*bonus - invalidated*penalty))."""

    model_config = SettingsConfigDict(env_prefix="XP_VOTE_VALIDATION_", env_file=".env", extra="ignore")

    baseline: float = Field(0.65, ge=0, le=1)
    bonus: float = Field(0.02, ge=0)
    penalty: float = Field(0.05, ge=0)


class NormalizationConfig(BaseSettings):
    """Caps used to map raw counts onto [0, 1]."""

    model_config = SettingsConfigDict(env_prefix="XP_NORMALIZATION_", env_file=".env", extra="ignore")

    max_reviews_for_experience: int = Field(50, gt=0)
    max_deviation_for_accuracy: float = Field(100.0, gt=0)
    max_std_dev_for_variance: float = Field(100.0, gt=0)


class OptimizerSettings(BaseSettings):
    """Defaults for optimizer runs started from the CLI."""

    model_config = SettingsConfigDict(env_prefix="XP_OPTIMIZER_", env_file=".env", extra="ignore")

    max_iterations: int = Field(100, ge=0)
    population_size: int = Field(50, ge=1)
    mutation_rate: float = Field(0.15, ge=0, le=1)
    elite_count: int = Field(5, ge=0)
    target_bad_reviewer_accuracy: float = Field(0.7, ge=0, le=1)
    seed: int = 42

    def to_config(self, **overrides) -> OptimizationConfig:
        """Build an OptimizationConfig, letting explicit overrides win."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return OptimizationConfig(**values)


class AppConfig(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(env_prefix="XP_APP_", env_file=".env", extra="ignore")

    name: str = "xp-reliability"
    version: str = "0.1.0"
    log_level: str = "INFO"
    debug: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Only standard logging level names are accepted."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    reliability: ReliabilityConfig = Field(default_factory=ReliabilityConfig)
    vote_validation: VoteValidationConfig = Field(default_factory=VoteValidationConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    optimizer: OptimizerSettings = Field(default_factory=OptimizerSettings)
    app: AppConfig = Field(default_factory=AppConfig)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment."""
        return cls()


def load_optimization_config(path: Union[str, Path], base: Optional[OptimizerSettings] = None) -> OptimizationConfig:
    """
    Load optimizer settings from a YAML file.

    Keys missing from the file fall back to ``base`` (or the environment
    defaults). The file may either hold the keys at top level or under an
    ``optimizer:`` section.

    Raises:
        ValueError: if the file does not exist or does not contain a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Optimizer config not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Optimizer config must be a mapping, got {type(data).__name__}")
    data = data.get("optimizer", data)

    force_include: List[str] = data.pop("force_include", None) or []
    return (base or OptimizerSettings()).to_config(force_include=force_include, **data)


# Global settings instance
settings = Settings.load()
