"""Trimming of population data to the covariate support of the trial.

Generalizing outside the range of covariates observed in the trial means
extrapolating the trial's outcome model. Trimming removes the population
members that would require it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from ..data.design import is_categorical

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CovariateBounds:
    """Support of the selection covariates observed among trial rows.

    Attributes:
        numeric: Inclusive ``(min, max)`` per numeric covariate
        categorical: Observed levels per categorical covariate
    """

    numeric: dict[str, tuple[float, float]] = field(default_factory=dict)
    categorical: dict[str, frozenset] = field(default_factory=dict)

    def contains(self, data: pd.DataFrame) -> pd.Series:
        """Boolean mask of rows inside every bound simultaneously.

        Rows with a missing value in any bounded covariate are outside.
        """
        mask = pd.Series(True, index=data.index)
        for name, (lower, upper) in self.numeric.items():
            mask &= data[name].between(lower, upper, inclusive="both")
        for name, levels in self.categorical.items():
            mask &= data[name].isin(levels)
        return mask


@dataclass(frozen=True)
class TrimResult:
    """Outcome of trimming a population to trial covariate support.

    Attributes:
        trimmed_data: Trial rows plus retained population rows, in the
            original order and with the original index
        n_excluded: Number of population rows removed
        n_population: Number of population rows before trimming
        bounds: Covariate bounds the population was trimmed to
    """

    trimmed_data: pd.DataFrame
    n_excluded: int
    n_population: int
    bounds: CovariateBounds

    @property
    def n_retained_population(self) -> int:
        """Number of population rows kept."""
        return self.n_population - self.n_excluded


def covariate_bounds(
    trial: str, selection_covariates: list[str] | tuple[str, ...], data: pd.DataFrame
) -> CovariateBounds:
    """Compute per-covariate bounds from trial rows only.

    Args:
        trial: Name of the trial membership indicator
        selection_covariates: Covariates to bound
        data: Stacked trial and population data

    Returns:
        CovariateBounds with min/max for numeric covariates and the
        observed level set for categorical ones
    """
    trial_rows = data.loc[data[trial] == 1, list(selection_covariates)]

    numeric: dict[str, tuple[float, float]] = {}
    categorical: dict[str, frozenset] = {}
    for name in selection_covariates:
        values = trial_rows[name]
        if is_categorical(data[name]):
            categorical[name] = frozenset(values.dropna().unique().tolist())
        else:
            numeric[name] = (float(values.min()), float(values.max()))

    return CovariateBounds(numeric=numeric, categorical=categorical)


def trim_population(
    trial: str,
    selection_covariates: list[str] | tuple[str, ...],
    data: pd.DataFrame,
) -> TrimResult:
    """Restrict population rows to the covariate support of the trial.

    Trial rows are always retained. A population row is retained only if
    every numeric covariate lies within the trial's ``[min, max]`` and
    every categorical covariate takes a level observed in the trial. Rows
    with a missing trial indicator belong to neither sample and are dropped.
    The input is never modified.

    Args:
        trial: Name of the trial membership indicator (1 = trial, 0 = population)
        selection_covariates: Covariates that define the support
        data: Stacked trial and population data

    Returns:
        TrimResult with the trimmed copy and the number of excluded
        population rows
    """
    bounds = covariate_bounds(trial, selection_covariates, data)

    is_trial = data[trial] == 1
    is_population = data[trial] == 0
    keep_population = is_population & bounds.contains(data)

    n_population = int(is_population.sum())
    n_excluded = int(n_population - keep_population.sum())

    trimmed = data.loc[is_trial | keep_population].copy()
    logger.debug(
        "Trimmed population to trial covariate support: excluded %d of %d rows",
        n_excluded,
        n_population,
    )

    return TrimResult(
        trimmed_data=trimmed,
        n_excluded=n_excluded,
        n_population=n_population,
        bounds=bounds,
    )
