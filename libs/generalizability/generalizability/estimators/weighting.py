"""Participation weighting of trial members towards the target population."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from ..core.base import (
    DegenerateWeightError,
    EffectEstimate,
    StudyColumns,
    TATEEstimator,
)
from ..diagnostics.balance import covariate_table
from ..participation.models import ParticipationEstimate
from .regression import estimate_treatment_effect

logger = logging.getLogger(__name__)


@dataclass
class WeightingResult:
    """Weights for trial members and their diagnostics.

    Attributes:
        weights: Weight per trial row, indexed like the analysis data
        is_data_disjoint: Whether odds weights were used
        effective_sample_size: Kish effective sample size of the weights
        max_weight: Largest weight
    """

    weights: pd.Series
    is_data_disjoint: bool
    effective_sample_size: float
    max_weight: float

    @property
    def relative_efficiency(self) -> float:
        """Effective sample size relative to the number of trial rows."""
        return self.effective_sample_size / len(self.weights)


def compute_trial_weights(
    participation: ParticipationEstimate, is_data_disjoint: bool = True
) -> pd.Series:
    """Weights for trial members from their participation probabilities.

    ``(1 - p) / p`` when trial and population are disjoint samples (the odds
    of being in the population), ``1 / p`` when the trial is nested in the
    population. Population rows receive no weight.

    Raises:
        DegenerateWeightError: If a trial probability is 0, 1 or not finite
    """
    p = participation.trial.astype(float)

    degenerate = ~np.isfinite(p) | (p <= 0) | (p >= 1)
    if degenerate.any():
        raise DegenerateWeightError(
            f"{int(degenerate.sum())} trial participation probabilities are 0, 1 or "
            "not finite; weights are undefined. Consider trim_pop=True or a "
            "different selection_method"
        )

    if is_data_disjoint:
        weights = (1 - p) / p
    else:
        weights = 1 / p
    return weights.rename("weight")


class WeightingEstimator(TATEEstimator):
    """TATE by weighted regression of outcome on treatment among trial rows.

    Example:
        >>> participation = fit_participation_model("trial", ["age"], data)
        >>> estimator = WeightingEstimator(participation, is_data_disjoint=True)
        >>> tate = estimator.estimate_tate(data, columns)
    """

    method = "weighting"

    def __init__(
        self,
        participation: ParticipationEstimate,
        is_data_disjoint: bool = True,
        random_state: Optional[int] = None,
        confidence_level: float = 0.95,
    ) -> None:
        """Initialize the weighting estimator.

        Args:
            participation: Fitted participation probabilities for the data
            is_data_disjoint: Whether trial and population are disjoint samples
            random_state: Unused; weighting is deterministic
            confidence_level: Confidence level of the reported interval
        """
        super().__init__(random_state=random_state, confidence_level=confidence_level)
        self.participation = participation
        self.is_data_disjoint = is_data_disjoint

        self.weighting_result_: Optional[WeightingResult] = None

    def fit_weights(self) -> WeightingResult:
        """Compute trial weights and their diagnostics."""
        weights = compute_trial_weights(self.participation, self.is_data_disjoint)
        w = weights.to_numpy()
        self.weighting_result_ = WeightingResult(
            weights=weights,
            is_data_disjoint=self.is_data_disjoint,
            effective_sample_size=float(np.sum(w) ** 2 / np.sum(w**2)),
            max_weight=float(np.max(w)),
        )
        logger.debug(
            "Trial weights: effective sample size %.1f of %d, max weight %.3f",
            self.weighting_result_.effective_sample_size,
            len(w),
            self.weighting_result_.max_weight,
        )
        return self.weighting_result_

    def estimate_tate(self, data: pd.DataFrame, columns: StudyColumns) -> EffectEstimate:
        """Weighted least squares of outcome on treatment over trial rows."""
        outcome, treatment = self._require_outcome_columns(columns)
        result = self.weighting_result_ or self.fit_weights()

        trial_rows = data.loc[data[columns.trial] == 1]
        return estimate_treatment_effect(
            trial_rows,
            outcome,
            treatment,
            weights=result.weights,
            confidence_level=self.confidence_level,
        )

    def weighted_covariate_table(
        self, data: pd.DataFrame, columns: StudyColumns
    ) -> pd.DataFrame:
        """Covariate table with trial means weighted by the trial weights."""
        result = self.weighting_result_ or self.fit_weights()
        return covariate_table(
            columns.trial, columns.selection_covariates, data, weights=result.weights
        )

    def diagnostics(self) -> dict[str, Any]:
        """Summary statistics of the fitted weights."""
        result = self.weighting_result_ or self.fit_weights()
        w = result.weights
        return {
            "weight_mean": float(w.mean()),
            "weight_std": float(w.std()),
            "max_weight": result.max_weight,
            "effective_sample_size": result.effective_sample_size,
            "relative_efficiency": result.relative_efficiency,
        }
