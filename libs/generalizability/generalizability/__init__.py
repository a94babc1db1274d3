"""Generalizing randomized trial results to target populations.

Assess how well a trial sample represents a target population and
estimate the population average treatment effect from stacked trial and
population data.
"""

__version__ = "0.1.0"

from .api import AssessResult, GeneralizeResult, assess, generalize
from .core import (
    ComputationWarning,
    DegenerateWeightError,
    EffectEstimate,
    GeneralizabilityError,
    InputValidationError,
    ModelFittingError,
    SelectionMethod,
    TATEMethod,
)
from .diagnostics import (
    covariate_table,
    generalizability_index,
    interpret_generalizability_index,
    trim_population,
)
from .participation import fit_participation_model

__all__ = [
    "__version__",
    # Entry points
    "assess",
    "generalize",
    "AssessResult",
    "GeneralizeResult",
    "EffectEstimate",
    # Options
    "TATEMethod",
    "SelectionMethod",
    # Building blocks
    "covariate_table",
    "fit_participation_model",
    "generalizability_index",
    "interpret_generalizability_index",
    "trim_population",
    # Errors
    "GeneralizabilityError",
    "InputValidationError",
    "ModelFittingError",
    "DegenerateWeightError",
    "ComputationWarning",
]
