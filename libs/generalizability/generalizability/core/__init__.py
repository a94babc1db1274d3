"""Core types, errors and options for trial generalization."""

from .base import (
    ComputationWarning,
    DegenerateWeightError,
    EffectEstimate,
    GeneralizabilityError,
    InputValidationError,
    ModelFittingError,
    StudyColumns,
    TATEEstimator,
    critical_value,
)
from .options import AnalysisOptions, SelectionMethod, TATEMethod, parse_seed

__all__ = [
    "AnalysisOptions",
    "ComputationWarning",
    "DegenerateWeightError",
    "EffectEstimate",
    "GeneralizabilityError",
    "InputValidationError",
    "ModelFittingError",
    "SelectionMethod",
    "StudyColumns",
    "TATEEstimator",
    "TATEMethod",
    "critical_value",
    "parse_seed",
]
