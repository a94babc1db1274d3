"""Bayesian additive regression trees estimator of the TATE.

The outcome surface is modelled with a BART sum-of-trees prior among trial
rows and then predicted for every population row with treatment switched
on and off. Requires the ``bart`` extra (pymc and pymc-bart).
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Optional

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm  # type: ignore[import-untyped]
import pymc_bart as pmb  # type: ignore[import-untyped]
from numpy.typing import NDArray

from ..core.base import (
    EffectEstimate,
    ModelFittingError,
    StudyColumns,
    TATEEstimator,
    critical_value,
)
from ..data.design import build_design_matrix
from ..data.validation import treatment_indicator

logger = logging.getLogger(__name__)

warnings.filterwarnings(
    "ignore",
    message=".*does not provide a compiled.*",
    category=UserWarning,
    module="pymc",
)


class BartEstimator(TATEEstimator):
    """TATE from the posterior of a BART outcome model."""

    method = "bart"

    def __init__(
        self,
        n_trees: int = 50,
        draws: int = 1000,
        tune: int = 1000,
        chains: int = 2,
        random_state: Optional[int] = None,
        confidence_level: float = 0.95,
        progressbar: bool = False,
    ) -> None:
        """Initialize the BART estimator.

        Args:
            n_trees: Number of trees in the sum-of-trees model
            draws: Posterior draws per chain
            tune: Tuning steps per chain
            chains: Number of chains
            random_state: Seed for the sampler and predictive draws
            confidence_level: Confidence level of the reported interval
            progressbar: Show the sampler progress bar
        """
        super().__init__(random_state=random_state, confidence_level=confidence_level)
        self.n_trees = n_trees
        self.draws = draws
        self.tune = tune
        self.chains = chains
        self.progressbar = progressbar

        # Fitted state
        self.model_: Optional[pm.Model] = None
        self.trace_: Optional[az.InferenceData] = None
        self.posterior_effects_: Optional[NDArray[Any]] = None

    def estimate_tate(self, data: pd.DataFrame, columns: StudyColumns) -> EffectEstimate:
        """Posterior mean and sd of the population-averaged effect."""
        outcome, treatment = self._require_outcome_columns(columns)

        is_trial = data[columns.trial] == 1
        trial_rows = data.loc[is_trial].dropna(subset=[outcome, treatment])
        population_rows = data.loc[~is_trial]
        if len(trial_rows) < 3 or len(population_rows) == 0:
            raise ModelFittingError(
                "BART needs at least 3 complete trial rows and one population row"
            )

        covariates = list(columns.selection_covariates)
        W = build_design_matrix(
            pd.concat([trial_rows[covariates], population_rows[covariates]]),
            drop_first=True,
        ).to_numpy(dtype=np.float64)
        W_trial, W_population = W[: len(trial_rows)], W[len(trial_rows) :]

        A = treatment_indicator(trial_rows[treatment]).to_numpy(dtype=np.float64)
        Y = trial_rows[outcome].to_numpy(dtype=np.float64)
        X_trial = np.column_stack([A, W_trial])

        try:
            self._fit_model(X_trial, Y)
            mu1 = self._predict_surface(np.column_stack([np.ones(len(W_population)), W_population]))
            mu0 = self._predict_surface(np.column_stack([np.zeros(len(W_population)), W_population]))
        except Exception as e:
            raise ModelFittingError(f"BART sampling failed: {str(e)}") from e

        # Average over population rows, one value per posterior draw
        effects = (mu1 - mu0).mean(axis=-1).reshape(-1)
        self.posterior_effects_ = effects

        estimate = float(np.mean(effects))
        se = float(np.std(effects, ddof=1))
        z = critical_value(self.confidence_level)

        logger.debug(
            "BART: TATE %.4f (posterior sd %.4f) from %d draws",
            estimate,
            se,
            len(effects),
        )
        return EffectEstimate(
            estimate=estimate, se=se, ci_lower=estimate - z * se, ci_upper=estimate + z * se
        )

    def _fit_model(self, X: NDArray[Any], Y: NDArray[Any]) -> None:
        with pm.Model() as model:
            X_data = pm.Data("X", X)
            mu = pmb.BART("mu", X_data, Y, m=self.n_trees)
            sigma = pm.HalfNormal("sigma", sigma=float(np.std(Y)) or 1.0)
            pm.Normal("y_obs", mu=mu, sigma=sigma, observed=Y, shape=mu.shape)

        self.model_ = model
        logger.debug(
            "Sampling BART with %d trees: %d chains x %d draws",
            self.n_trees,
            self.chains,
            self.draws,
        )
        with model:
            self.trace_ = pm.sample(
                draws=self.draws,
                tune=self.tune,
                chains=self.chains,
                random_seed=self.random_state,
                progressbar=self.progressbar,
                return_inferencedata=True,
            )

    def _predict_surface(self, X_new: NDArray[Any]) -> NDArray[Any]:
        """Posterior draws of the outcome surface at ``X_new``.

        Both counterfactual surfaces are drawn with the same seed so each
        draw uses the same trees for treated and untreated predictions.
        """
        assert self.model_ is not None and self.trace_ is not None
        with self.model_:
            pm.set_data({"X": X_new})
            predictive = pm.sample_posterior_predictive(
                self.trace_,
                var_names=["mu"],
                random_seed=self.random_state,
                progressbar=False,
            )
        return np.asarray(predictive.posterior_predictive["mu"])
