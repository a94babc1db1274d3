"""Dataset validation, encoding and synthetic data for generalization.

This module provides:
- Ordered validation of stacked trial/population datasets
- Complete-case filtering that tolerates missing outcome and treatment
- Design matrices from possibly categorical covariates
- Synthetic trial/population data for testing and examples
"""

from .design import build_design_matrix, is_categorical
from .synthetic import (
    SyntheticStudy,
    TrialPopulationGenerator,
    generate_trial_population,
)
from .validation import (
    complete_cases,
    observed_levels,
    treatment_indicator,
    validate_study_data,
)

__all__ = [
    # Validation and filtering
    "validate_study_data",
    "complete_cases",
    "observed_levels",
    "treatment_indicator",
    # Design matrices
    "build_design_matrix",
    "is_categorical",
    # Synthetic data generation
    "SyntheticStudy",
    "TrialPopulationGenerator",
    "generate_trial_population",
]
