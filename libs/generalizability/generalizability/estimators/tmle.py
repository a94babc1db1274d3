"""Targeted maximum likelihood estimation of the TATE.

Transport TMLE combines an outcome model fitted in the trial with the
treatment and participation mechanisms, then averages the targeted outcome
predictions over the target population.

Key components:
1. Outcome model Q(A, W) = E[Y | A, W, S=1]
2. Treatment mechanism g(W) = P(A=1 | W, S=1)
3. Participation mechanism p(W) = P(S=1 | W)
4. Clever covariate H = (A/g - (1-A)/(1-g)) * (1-p)/p
5. One-step fluctuation of Q along H
6. Influence-function standard error
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from numpy.typing import NDArray
from scipy.special import expit, logit
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler

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


class TransportTMLEEstimator(TATEEstimator):
    """Transport TMLE for the population average treatment effect.

    Expects population data already trimmed to the trial's covariate
    support; the orchestrator enforces this.
    """

    method = "tmle"

    def __init__(
        self,
        bound: float = 0.01,
        random_state: Optional[int] = None,
        confidence_level: float = 0.95,
    ) -> None:
        """Initialize the TMLE estimator.

        Args:
            bound: g and p are truncated to [bound, 1 - bound]
            random_state: Random seed for the nuisance model solvers
            confidence_level: Confidence level of the reported interval
        """
        super().__init__(random_state=random_state, confidence_level=confidence_level)
        self.bound = bound

        # Fitted state
        self.epsilon_: Optional[float] = None
        self.nuisance_estimates_: dict[str, NDArray[Any]] = {}
        self.influence_function_: Optional[NDArray[Any]] = None

    def estimate_tate(self, data: pd.DataFrame, columns: StudyColumns) -> EffectEstimate:
        """Estimate the TATE by transport TMLE."""
        outcome, treatment = self._require_outcome_columns(columns)

        is_trial = data[columns.trial] == 1
        usable = ~is_trial | data[[outcome, treatment]].notna().all(axis=1)
        frame = data.loc[usable]
        is_trial = (frame[columns.trial] == 1).to_numpy()
        if is_trial.sum() < 3 or (~is_trial).sum() == 0:
            raise ModelFittingError(
                "TMLE needs at least 3 complete trial rows and one population row"
            )

        W = build_design_matrix(frame[list(columns.selection_covariates)], drop_first=True)
        W = W.to_numpy(dtype=np.float64)
        S = is_trial.astype(float)
        A = np.zeros(len(frame))
        A[is_trial] = treatment_indicator(frame.loc[is_trial, treatment]).to_numpy()
        Y = np.zeros(len(frame))
        Y[is_trial] = frame.loc[is_trial, outcome].to_numpy(dtype=np.float64)

        try:
            p = self._fit_participation(W, S)
            g = self._fit_treatment(W[is_trial], A[is_trial], W)
            Q1W, Q0W, binary = self._fit_outcome(W[is_trial], A[is_trial], Y[is_trial], W)
        except ModelFittingError:
            raise
        except Exception as e:
            raise ModelFittingError(f"TMLE nuisance model failed: {str(e)}") from e

        odds = (1 - p) / p
        H1W = odds / g
        H0W = -odds / (1 - g)
        H_AW = A * H1W + (1 - A) * H0W

        Q1W_star, Q0W_star = self._one_step_targeting(
            Y[is_trial], A[is_trial], Q1W, Q0W, H_AW[is_trial], H1W, H0W, is_trial, binary
        )

        population = ~is_trial
        psi = float(np.mean(Q1W_star[population] - Q0W_star[population]))

        QAW_star = A * Q1W_star + (1 - A) * Q0W_star
        p_population = population.mean()
        D = (
            S * H_AW * (Y - QAW_star) / p_population
            + (1 - S) * (Q1W_star - Q0W_star - psi) / p_population
        )
        self.influence_function_ = D
        se = float(np.std(D, ddof=1) / np.sqrt(len(D)))

        self.nuisance_estimates_ = {
            "participation": p,
            "treatment": g,
            "Q1W": Q1W,
            "Q0W": Q0W,
            "Q1W_targeted": Q1W_star,
            "Q0W_targeted": Q0W_star,
        }
        logger.debug(
            "TMLE: epsilon %.5f, TATE %.4f (se %.4f) over %d population rows",
            self.epsilon_,
            psi,
            se,
            int(population.sum()),
        )

        z = critical_value(self.confidence_level)
        return EffectEstimate(
            estimate=psi, se=se, ci_lower=psi - z * se, ci_upper=psi + z * se
        )

    def _logistic(self) -> Any:
        return make_pipeline(
            StandardScaler(),
            LogisticRegression(max_iter=1000, random_state=self.random_state),
        )

    def _fit_participation(self, W: NDArray[Any], S: NDArray[Any]) -> NDArray[Any]:
        model = self._logistic().fit(W, S)
        p = model.predict_proba(W)[:, 1]
        return np.clip(p, self.bound, 1 - self.bound)

    def _fit_treatment(
        self, W_trial: NDArray[Any], A_trial: NDArray[Any], W: NDArray[Any]
    ) -> NDArray[Any]:
        model = self._logistic().fit(W_trial, A_trial)
        g = model.predict_proba(W)[:, 1]
        return np.clip(g, self.bound, 1 - self.bound)

    def _fit_outcome(
        self,
        W_trial: NDArray[Any],
        A_trial: NDArray[Any],
        Y_trial: NDArray[Any],
        W: NDArray[Any],
    ) -> tuple[NDArray[Any], NDArray[Any], bool]:
        """Fit Q on trial rows and predict Q(1, W) and Q(0, W) for all rows."""
        binary = len(np.unique(Y_trial)) == 2 and set(np.unique(Y_trial)).issubset({0, 1})
        X_trial = np.column_stack([A_trial, W_trial])
        X1 = np.column_stack([np.ones(len(W)), W])
        X0 = np.column_stack([np.zeros(len(W)), W])

        if binary:
            model = self._logistic().fit(X_trial, Y_trial.astype(int))
            return model.predict_proba(X1)[:, 1], model.predict_proba(X0)[:, 1], True

        model = LinearRegression().fit(X_trial, Y_trial)
        return model.predict(X1), model.predict(X0), False

    def _one_step_targeting(
        self,
        Y: NDArray[Any],
        A: NDArray[Any],
        Q1W: NDArray[Any],
        Q0W: NDArray[Any],
        H_AW: NDArray[Any],
        H1W: NDArray[Any],
        H0W: NDArray[Any],
        is_trial: NDArray[Any],
        binary: bool,
    ) -> tuple[NDArray[Any], NDArray[Any]]:
        """Fluctuate Q along the clever covariate using the trial rows."""
        Q_AW = A * Q1W[is_trial] + (1 - A) * Q0W[is_trial]

        if binary:
            # Logistic fluctuation with the initial fit as offset
            Q_AW = np.clip(Q_AW, 0.005, 0.995)
            fluctuation = sm.GLM(
                Y,
                H_AW.reshape(-1, 1),
                family=sm.families.Binomial(),
                offset=logit(Q_AW),
            ).fit()
            epsilon = float(fluctuation.params[0])

            Q1W_targeted = expit(logit(np.clip(Q1W, 0.005, 0.995)) + epsilon * H1W)
            Q0W_targeted = expit(logit(np.clip(Q0W, 0.005, 0.995)) + epsilon * H0W)
        else:
            residuals = Y - Q_AW
            targeting_model = LinearRegression(fit_intercept=False)
            targeting_model.fit(H_AW.reshape(-1, 1), residuals)
            epsilon = float(targeting_model.coef_[0])

            Q1W_targeted = Q1W + epsilon * H1W
            Q0W_targeted = Q0W + epsilon * H0W

        if not np.isfinite(epsilon):
            raise ModelFittingError("TMLE fluctuation did not converge")

        self.epsilon_ = epsilon
        return Q1W_targeted, Q0W_targeted
