"""Steps shared by the ``generalize`` and ``assess`` entry points."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from ..core.base import InputValidationError, StudyColumns
from ..core.options import SelectionMethod
from ..data.validation import complete_cases
from ..diagnostics.trimming import trim_population

logger = logging.getLogger(__name__)


def build_study_columns(
    trial: str,
    selection_covariates: str | Sequence[str],
    outcome: Optional[str] = None,
    treatment: Optional[str] = None,
) -> StudyColumns:
    """Collect field names, reporting malformed arguments as input errors."""
    try:
        return StudyColumns(
            trial=trial,
            selection_covariates=selection_covariates,
            outcome=outcome,
            treatment=treatment,
        )
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise InputValidationError(f"Invalid field names ({fields}): {e}") from e


def prepare_analysis_data(
    data: pd.DataFrame, columns: StudyColumns, trim_pop: bool
) -> tuple[pd.DataFrame, Optional[int]]:
    """Optionally trim, then keep complete cases on trial and covariates.

    Returns:
        The analysis dataset and the number of population rows removed by
        trimming (None when not trimming)
    """
    if not data.index.is_unique:
        # Weights and probabilities are aligned by index label
        data = data.reset_index(drop=True)

    # Text-coded "0"/"1" membership is compared numerically from here on
    data = data.assign(**{columns.trial: pd.to_numeric(data[columns.trial])})

    n_excluded: Optional[int] = None
    if trim_pop:
        trimmed = trim_population(columns.trial, columns.selection_covariates, data)
        data = trimmed.trimmed_data
        n_excluded = trimmed.n_excluded

    covariates = list(columns.selection_covariates)
    trial_missing = (data[columns.trial] == 1) & data[covariates].isna().any(axis=1)
    if trial_missing.any():
        logger.warning(
            "Dropping %d trial rows with missing selection covariates",
            int(trial_missing.sum()),
        )

    return complete_cases(data, columns), n_excluded


def participation_model_settings(
    selection_method: SelectionMethod, config: Any
) -> dict[str, Any]:
    """Back-end settings for a participation model taken from the config."""
    if selection_method is SelectionMethod.RF:
        return {"n_estimators": config.rf_n_estimators}
    if selection_method is SelectionMethod.LASSO:
        return {
            "cv_folds": config.lasso_cv_folds,
            "n_penalties": config.lasso_n_penalties,
            "max_iter": config.lasso_max_iter,
        }
    return {}


def sample_sizes(data: pd.DataFrame, trial: str) -> tuple[int, int]:
    """Number of trial and population rows in the analysis dataset."""
    n_trial = int((data[trial] == 1).sum())
    return n_trial, int(len(data) - n_trial)
