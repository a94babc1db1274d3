"""Public entry points."""

from .assess import AssessResult, assess
from .generalize import GeneralizeResult, generalize

__all__ = ["assess", "AssessResult", "generalize", "GeneralizeResult"]
