"""Covariate distributions of the trial versus the target population.

This module summarizes how far the trial's covariate profile is from the
population's, before and after weighting trial members.
"""

from __future__ import annotations

from typing import Any, Optional, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ..core.base import InputValidationError
from ..data.design import build_design_matrix

TABLE_COLUMNS = ["trial", "population", "ASMD"]


def calculate_absolute_smd(
    trial_mean: float,
    population_values: Union[NDArray[Any], pd.Series],
) -> float:
    """Calculate the absolute standardized mean difference of a covariate.

    ASMD = |mean_trial - mean_population| / sd_population

    Args:
        trial_mean: Mean (possibly weighted) of the covariate in the trial
        population_values: Covariate values in the population

    Returns:
        Absolute standardized mean difference, 0 when the population
        standard deviation is 0
    """
    population_values = np.asarray(population_values, dtype=np.float64)
    population_values = population_values[~np.isnan(population_values)]

    if len(population_values) == 0:
        return np.nan

    pop_sd = np.std(population_values, ddof=1) if len(population_values) > 1 else 0

    if pop_sd == 0:
        return 0.0

    return float(abs(trial_mean - np.mean(population_values)) / pop_sd)


def covariate_table(
    trial: str,
    selection_covariates: list[str] | tuple[str, ...],
    data: pd.DataFrame,
    weights: Optional[pd.Series] = None,
) -> pd.DataFrame:
    """Compare covariate means between trial and population.

    Categorical covariates are expanded to one indicator per level, so their
    rows show proportions.

    Args:
        trial: Name of the trial membership indicator
        selection_covariates: Covariates to summarize
        data: Stacked trial and population data
        weights: Optional trial-unit weights indexed like the trial rows of
            ``data``; when given, trial means are weighted

    Returns:
        DataFrame indexed by expanded covariate with columns
        ``trial``, ``population`` and ``ASMD``
    """
    covariates = list(selection_covariates)
    complete = data.loc[data[[trial, *covariates]].notna().all(axis=1)]
    design = build_design_matrix(complete[covariates])

    is_trial = complete[trial] == 1
    trial_design = design.loc[is_trial]
    pop_design = design.loc[~is_trial]

    if len(trial_design) == 0 or len(pop_design) == 0:
        raise InputValidationError(
            "Covariate table requires both trial and population rows"
        )

    trial_weights = None
    if weights is not None:
        trial_weights = weights.reindex(trial_design.index).to_numpy(dtype=np.float64)
        if np.isnan(trial_weights).any():
            raise InputValidationError("Weights must be supplied for every trial row")

    rows = {}
    for column in design.columns:
        trial_values = trial_design[column].to_numpy()
        if trial_weights is None:
            trial_mean = float(np.mean(trial_values))
        else:
            trial_mean = float(np.average(trial_values, weights=trial_weights))

        pop_values = pop_design[column].to_numpy()
        rows[column] = {
            "trial": trial_mean,
            "population": float(np.mean(pop_values)),
            "ASMD": calculate_absolute_smd(trial_mean, pop_values),
        }

    return pd.DataFrame.from_dict(rows, orient="index", columns=TABLE_COLUMNS)
