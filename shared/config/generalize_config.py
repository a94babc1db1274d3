"""Configuration for trial-to-population generalization analyses."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from .base import BaseConfiguration, Environment


class GeneralizeConfig(BaseConfiguration):
    """Defaults used by ``generalize`` and ``assess``.

    Every field can be overridden with a ``GENERALIZE_``-prefixed
    environment variable, e.g. ``GENERALIZE_DEFAULT_SEED=42``.
    """

    model_config = SettingsConfigDict(
        env_prefix="GENERALIZE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Reproducibility
    default_seed: int = Field(
        default=13783, description="Seed used when the caller does not pass one"
    )

    # Inference
    confidence_level: float = Field(
        default=0.95, description="Confidence level for SATE/TATE intervals"
    )

    # Participation models
    rf_n_estimators: int = Field(
        default=500, description="Number of trees in the random forest model"
    )
    lasso_cv_folds: int = Field(
        default=10, description="Cross-validation folds for the lasso penalty"
    )
    lasso_n_penalties: int = Field(
        default=20, description="Number of penalty values searched for lasso"
    )
    lasso_max_iter: int = Field(
        default=5000, description="Maximum solver iterations for lasso"
    )

    # Generalizability index
    index_grid_size: int = Field(
        default=2048, description="Minimum grid points for the index integral"
    )
    near_disjoint_threshold: float = Field(
        default=0.1,
        description="Index value below which trial and population are near-disjoint",
    )

    # BART sampler
    bart_n_trees: int = Field(default=50, description="Number of BART trees")
    bart_draws: int = Field(default=1000, description="Posterior draws per chain")
    bart_tune: int = Field(default=1000, description="Tuning steps per chain")
    bart_chains: int = Field(default=2, description="Number of MCMC chains")

    # Logging
    log_level: str | None = Field(
        default=None,
        description="Root log level; derived from the environment when unset",
    )

    @field_validator("confidence_level")
    @classmethod
    def validate_confidence_level(cls, v: float) -> float:
        if not 0 < v < 1:
            raise ValueError("Confidence level must be between 0 and 1")
        return v

    @field_validator(
        "rf_n_estimators",
        "lasso_n_penalties",
        "lasso_max_iter",
        "index_grid_size",
        "bart_n_trees",
        "bart_draws",
        "bart_tune",
        "bart_chains",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be a positive integer")
        return v

    @field_validator("lasso_cv_folds")
    @classmethod
    def validate_cv_folds(cls, v: int) -> int:
        if v < 2:
            raise ValueError("Lasso cross-validation needs at least 2 folds")
        return v

    @field_validator("near_disjoint_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError("Near-disjoint threshold must be between 0 and 1")
        return v

    def validate_configuration(self) -> list[str]:
        """Validate generalization specific configuration."""
        issues = super().validate_configuration()

        if self.environment == Environment.PRODUCTION and self.rf_n_estimators < 100:
            issues.append("Fewer than 100 random forest trees gives noisy probabilities")

        if self.bart_draws < 500:
            issues.append("Fewer than 500 BART draws may understate posterior spread")

        if self.lasso_cv_folds > 20:
            issues.append("More than 20 lasso folds is slow with little benefit")

        return issues


@lru_cache(maxsize=1)
def get_config() -> GeneralizeConfig:
    """Return the process-wide configuration, read once from the environment."""
    return GeneralizeConfig()
