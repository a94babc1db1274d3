"""Design matrices from possibly categorical covariates."""

from __future__ import annotations

import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from ..core.base import InputValidationError


def is_categorical(values: pd.Series) -> bool:
    """Whether a covariate is treated as categorical rather than numeric."""
    return is_bool_dtype(values) or not is_numeric_dtype(values)


def build_design_matrix(
    covariates: pd.DataFrame, drop_first: bool = False
) -> pd.DataFrame:
    """Expand covariates into an all-numeric design matrix.

    Numeric columns pass through; categorical columns become one indicator
    column per level (minus the first level when ``drop_first``), named
    ``<covariate>_<level>``.

    Args:
        covariates: Covariate columns, without missing values
        drop_first: Drop the reference level of each categorical covariate

    Returns:
        Float design matrix with the same index as ``covariates``

    Raises:
        InputValidationError: If a column has missing values
    """
    if covariates.isna().any().any():
        bad = covariates.columns[covariates.isna().any()].tolist()
        raise InputValidationError(f"Covariates contain missing values: {bad}")

    categorical = [c for c in covariates.columns if is_categorical(covariates[c])]
    if not categorical:
        return covariates.astype(float)

    expanded = pd.get_dummies(
        covariates,
        columns=categorical,
        drop_first=drop_first,
        prefix_sep="_",
        dtype=float,
    )
    return expanded.astype(float)
