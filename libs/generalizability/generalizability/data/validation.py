"""Validation and filtering of stacked trial/population datasets.

Checks run in a fixed order and raise ``InputValidationError`` naming the
offending field, so callers see the first problem before any model is fit.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import pandas as pd

from ..core.base import InputValidationError, StudyColumns

logger = logging.getLogger(__name__)


def observed_levels(values: pd.Series) -> list[Any]:
    """Distinct non-missing values of a column, sorted when possible."""
    levels = pd.unique(values.dropna())
    try:
        return sorted(levels.tolist())
    except TypeError:
        return levels.tolist()


def _is_zero_one(levels: list[Any]) -> bool:
    """Whether the two observed levels read as 0 and 1, text included."""
    try:
        return {float(level) for level in levels} == {0.0, 1.0}
    except (TypeError, ValueError):
        return False


def validate_study_data(
    data: Any,
    columns: StudyColumns,
    require_outcome: bool = True,
) -> None:
    """Validate a stacked trial/population dataset.

    Args:
        data: Candidate dataset, expected to be a pandas DataFrame
        columns: Names of the study fields
        require_outcome: Whether outcome and treatment must be present

    Raises:
        InputValidationError: On the first failed check
    """
    if not isinstance(data, pd.DataFrame):
        raise InputValidationError(
            f"Data must be a pandas DataFrame, got {type(data).__name__}"
        )

    names = set(data.columns)

    if require_outcome:
        if columns.outcome is None or columns.outcome not in names:
            raise InputValidationError(
                f"Outcome {columns.outcome!r} is not a variable in the data provided"
            )
        if columns.treatment is None or columns.treatment not in names:
            raise InputValidationError(
                f"Treatment {columns.treatment!r} is not a variable in the data provided"
            )

    missing_covariates = [c for c in columns.selection_covariates if c not in names]
    if missing_covariates:
        raise InputValidationError(
            "Not all selection covariates are variables in the data provided; "
            f"missing: {missing_covariates}"
        )

    if columns.trial not in names:
        raise InputValidationError(
            f"Trial membership {columns.trial!r} is not a variable in the data provided"
        )

    trial_levels = observed_levels(data[columns.trial])
    if len(trial_levels) != 2:
        raise InputValidationError(
            f"Trial membership variable {columns.trial!r} is not binary; "
            f"found {len(trial_levels)} distinct values"
        )
    if not _is_zero_one(trial_levels):
        raise InputValidationError(
            f"Trial membership variable {columns.trial!r} must be coded 0 "
            f"(not in trial) or 1 (in trial); found {trial_levels}"
        )

    if require_outcome:
        treatment_levels = observed_levels(data[columns.treatment])
        if len(treatment_levels) != 2:
            raise InputValidationError(
                f"Treatment variable {columns.treatment!r} is not binary; "
                f"found {len(treatment_levels)} distinct values"
            )


def complete_cases(data: pd.DataFrame, columns: StudyColumns) -> pd.DataFrame:
    """Keep rows with a known trial indicator and every selection covariate.

    Missing outcome or treatment is tolerated, since population rows
    legitimately lack both. The result holds only the analysis columns,
    keeps the original index, and codes the trial indicator as integers.
    """
    required = [columns.trial, *columns.selection_covariates]
    mask = data[required].notna().all(axis=1)
    n_dropped = int((~mask).sum())
    if n_dropped:
        logger.debug("Dropped %d rows with missing trial or covariate values", n_dropped)

    filtered = data.loc[mask, columns.analysis_columns].copy()
    filtered[columns.trial] = pd.to_numeric(filtered[columns.trial]).astype(int)
    return filtered


def treatment_indicator(values: pd.Series) -> pd.Series:
    """Code a two-level treatment as 1 for the higher level, 0 otherwise.

    Missing treatment stays missing.
    """
    levels = observed_levels(values)
    if len(levels) != 2:
        raise InputValidationError(
            f"Treatment must have exactly two levels, found {len(levels)}"
        )
    indicator = (values == levels[1]).astype(float)
    return indicator.where(values.notna(), np.nan)
