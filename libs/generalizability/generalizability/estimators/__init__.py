"""Treatment effect estimators.

The BART estimator needs the optional ``bart`` extra and is imported from
``generalizability.estimators.bart`` on demand.
"""

from .regression import estimate_treatment_effect
from .tmle import TransportTMLEEstimator
from .weighting import WeightingEstimator, WeightingResult, compute_trial_weights

__all__ = [
    "estimate_treatment_effect",
    "compute_trial_weights",
    "WeightingEstimator",
    "WeightingResult",
    "TransportTMLEEstimator",
]
