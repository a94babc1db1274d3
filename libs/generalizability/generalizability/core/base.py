"""Base classes and interfaces for trial generalization.

This module provides the exception hierarchy, the effect estimate value
object and the abstract interface shared by every TATE estimation back-end.
"""

from __future__ import annotations

import abc
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field, field_validator
from scipy import stats


class GeneralizabilityError(Exception):
    """Base exception class for generalizability specific errors."""

    pass


class InputValidationError(GeneralizabilityError, ValueError):
    """Raised when input data or options fail validation."""

    pass


class ModelFittingError(GeneralizabilityError):
    """Raised when an underlying model back-end fails to fit."""

    pass


class DegenerateWeightError(GeneralizabilityError):
    """Raised when a participation probability yields an undefined weight."""

    pass


class ComputationWarning(UserWarning):
    """Non-fatal warning about the reliability of a computed quantity."""

    pass


def critical_value(confidence_level: float = 0.95) -> float:
    """Two-sided normal critical value for a confidence level.

    The conventional 1.96 is used at the 95% level so intervals match the
    usual ``estimate +/- 1.96 * se`` reporting.
    """
    if not 0 < confidence_level < 1:
        raise InputValidationError("Confidence level must be between 0 and 1")
    if np.isclose(confidence_level, 0.95):
        return 1.96
    return float(stats.norm.ppf(0.5 + confidence_level / 2))


@dataclass(frozen=True)
class EffectEstimate:
    """Point estimate, standard error and confidence interval of an effect.

    Used identically for the SATE and the TATE.
    """

    estimate: float
    se: float
    ci_lower: float
    ci_upper: float

    def __post_init__(self) -> None:
        """Validate the interval after initialization."""
        if self.ci_lower > self.ci_upper:
            raise ValueError("Lower confidence bound cannot exceed upper bound")

    @classmethod
    def from_coefficient(
        cls, estimate: float, se: float, confidence_level: float = 0.95
    ) -> EffectEstimate:
        """Build a normal-approximation interval around a coefficient."""
        z = critical_value(confidence_level)
        return cls(
            estimate=float(estimate),
            se=float(se),
            ci_lower=float(estimate - z * se),
            ci_upper=float(estimate + z * se),
        )

    @property
    def confidence_interval(self) -> tuple[float, float]:
        """Get confidence interval as a tuple."""
        return (self.ci_lower, self.ci_upper)

    @property
    def is_significant(self) -> bool:
        """Check whether the interval excludes zero."""
        return self.ci_lower > 0 or self.ci_upper < 0

    def as_dict(self) -> dict[str, float]:
        """Return the estimate as a plain dictionary."""
        return asdict(self)


class StudyColumns(BaseModel):
    """Names of the fields that make up a stacked trial/population dataset."""

    trial: str = Field(..., description="Binary trial membership indicator")
    selection_covariates: tuple[str, ...] = Field(
        ..., description="Covariates that predict trial participation"
    )
    outcome: str | None = Field(default=None, description="Outcome variable")
    treatment: str | None = Field(
        default=None, description="Binary treatment assignment variable"
    )

    model_config = {"frozen": True}

    @field_validator("selection_covariates", mode="before")
    @classmethod
    def validate_selection_covariates(cls, v: Any) -> tuple[str, ...]:
        """Accept a single name or a sequence of names."""
        if isinstance(v, str):
            v = (v,)
        v = tuple(v)
        if len(v) == 0:
            raise ValueError("At least one selection covariate is required")
        if len(set(v)) != len(v):
            raise ValueError("Selection covariates must not repeat")
        return v

    @property
    def analysis_columns(self) -> list[str]:
        """Columns kept in the analysis dataset, in output order."""
        columns = [self.outcome, self.treatment, self.trial]
        return [c for c in columns if c is not None] + list(self.selection_covariates)


class TATEEstimator(abc.ABC):
    """Abstract base class for target average treatment effect back-ends.

    Every back-end consumes the same stacked dataset and study columns and
    returns an ``EffectEstimate``, so the orchestrator can swap them without
    changing how results are assembled.
    """

    method: str = "unknown"

    def __init__(
        self,
        random_state: int | None = None,
        confidence_level: float = 0.95,
    ) -> None:
        """Initialize the estimator.

        Args:
            random_state: Seed for any stochastic step of the back-end
            confidence_level: Confidence level of the reported interval
        """
        self.random_state = random_state
        self.confidence_level = confidence_level

    @abc.abstractmethod
    def estimate_tate(
        self, data: pd.DataFrame, columns: StudyColumns
    ) -> EffectEstimate:
        """Estimate the TATE from stacked trial and population data.

        Args:
            data: Complete-case stacked dataset
            columns: Names of the outcome, treatment, trial and covariates

        Returns:
            EffectEstimate for the target population
        """
        pass

    def _require_outcome_columns(self, columns: StudyColumns) -> tuple[str, str]:
        """Return the outcome and treatment names, which TATE estimation needs."""
        if columns.outcome is None or columns.treatment is None:
            raise InputValidationError(
                f"{self.__class__.__name__} requires outcome and treatment columns"
            )
        return columns.outcome, columns.treatment
