"""Trial participation models.

Classes:
- LogisticParticipationModel: Unpenalized logistic regression ("lr").
- RandomForestParticipationModel: Out-of-bag random forest votes ("rf").
- LassoParticipationModel: L1 logistic regression with a CV penalty ("lasso").
"""

from .models import (
    LassoParticipationModel,
    LogisticParticipationModel,
    ParticipationEstimate,
    ParticipationModel,
    RandomForestParticipationModel,
    create_participation_model,
    fit_participation_model,
)

__all__ = [
    "ParticipationModel",
    "LogisticParticipationModel",
    "RandomForestParticipationModel",
    "LassoParticipationModel",
    "ParticipationEstimate",
    "create_participation_model",
    "fit_participation_model",
]
