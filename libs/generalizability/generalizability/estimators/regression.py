"""Treatment effect coefficients from (weighted) least squares."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm

from ..core.base import EffectEstimate, ModelFittingError

logger = logging.getLogger(__name__)


def estimate_treatment_effect(
    data: pd.DataFrame,
    outcome: str,
    treatment: str,
    weights: Optional[pd.Series] = None,
    confidence_level: float = 0.95,
) -> EffectEstimate:
    """Regress outcome on treatment and report the treatment coefficient.

    Ordinary least squares without weights, weighted least squares with
    them. The standard error is the model-based one.

    Args:
        data: Trial rows with outcome and treatment
        outcome: Outcome column
        treatment: Treatment column, used as coded
        weights: Optional weights indexed like ``data``
        confidence_level: Confidence level of the interval

    Returns:
        EffectEstimate of the treatment coefficient

    Raises:
        ModelFittingError: If the regression cannot be fit
    """
    frame = data[[outcome, treatment]].dropna()
    if len(frame) < 3:
        raise ModelFittingError(
            f"Need at least 3 trial rows with outcome and treatment, got {len(frame)}"
        )
    if frame[treatment].nunique() < 2:
        raise ModelFittingError("Treatment takes a single value among trial rows")

    y = frame[outcome].astype(float)
    exog = sm.add_constant(frame[[treatment]].astype(float), has_constant="add")

    try:
        if weights is None:
            result = sm.OLS(y, exog).fit()
        else:
            w = weights.reindex(frame.index).to_numpy(dtype=np.float64)
            if np.isnan(w).any():
                raise ModelFittingError("Weights must be supplied for every trial row")
            result = sm.WLS(y, exog, weights=w).fit()
    except np.linalg.LinAlgError as e:
        raise ModelFittingError(f"Treatment effect regression failed: {str(e)}") from e

    estimate = float(result.params[treatment])
    se = float(result.bse[treatment])
    if not np.isfinite(se):
        raise ModelFittingError("Treatment effect standard error is not finite")

    logger.debug(
        "%s treatment effect %.4f (se %.4f) on %d rows",
        "Weighted" if weights is not None else "Unweighted",
        estimate,
        se,
        len(frame),
    )
    return EffectEstimate.from_coefficient(estimate, se, confidence_level)
