"""Diagnostics comparing a trial sample with its target population.

This module provides:
- Covariate tables with absolute standardized mean differences
- Trimming of population data to the trial's covariate support
- The Tipton generalizability index
"""

from .balance import calculate_absolute_smd, covariate_table
from .generalizability_index import (
    generalizability_index,
    interpret_generalizability_index,
    kernel_bandwidth,
)
from .trimming import CovariateBounds, TrimResult, covariate_bounds, trim_population

__all__ = [
    # Covariate tables
    "calculate_absolute_smd",
    "covariate_table",
    # Generalizability index
    "generalizability_index",
    "interpret_generalizability_index",
    "kernel_bandwidth",
    # Trimming
    "CovariateBounds",
    "TrimResult",
    "covariate_bounds",
    "trim_population",
]
