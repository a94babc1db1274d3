"""Models for the probability of trial participation.

Each model discriminates trial members (1) from population members (0)
using only the selection covariates, and reports in-sample participation
probabilities for every row.
"""

from __future__ import annotations

import logging
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from numpy.typing import NDArray
from sklearn.base import clone
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.pipeline import Pipeline, make_pipeline
from sklearn.preprocessing import StandardScaler
from statsmodels.tools.sm_exceptions import (
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from ..core.base import GeneralizabilityError, InputValidationError, ModelFittingError
from ..core.options import SelectionMethod
from ..data.design import build_design_matrix

logger = logging.getLogger(__name__)


class ParticipationModel(ABC):
    """Abstract base class for trial participation models."""

    method: SelectionMethod

    def __init__(self, random_state: Optional[int] = None) -> None:
        """Initialize the participation model.

        Args:
            random_state: Random seed for reproducibility
        """
        self.random_state = random_state

        # Fitted state
        self.is_fitted = False
        self.model_: Any = None
        self.feature_names_: list[str] = []
        self.probabilities_: Optional[pd.Series] = None

    @abstractmethod
    def _build_design(self, covariates: pd.DataFrame) -> pd.DataFrame:
        """Encode covariates for this back-end."""
        pass

    @abstractmethod
    def _fit_implementation(
        self, design: pd.DataFrame, membership: NDArray[Any]
    ) -> NDArray[Any]:
        """Fit the back-end and return in-sample participation probabilities."""
        pass

    def fit(self, covariates: pd.DataFrame, membership: pd.Series) -> ParticipationModel:
        """Fit the participation model.

        Args:
            covariates: Selection covariates, without missing values
            membership: Trial indicator aligned with ``covariates``

        Returns:
            self: The fitted model

        Raises:
            InputValidationError: If membership is not a 0/1 indicator
            ModelFittingError: If the back-end fails
        """
        y = np.asarray(membership, dtype=np.float64)
        if len(y) != len(covariates):
            raise InputValidationError(
                f"Covariates ({len(covariates)}) and membership ({len(y)}) "
                "must have the same number of rows"
            )
        if set(np.unique(y)) != {0.0, 1.0}:
            raise InputValidationError(
                "Participation models need both trial (1) and population (0) rows"
            )

        design = self._build_design(covariates)
        self.feature_names_ = list(design.columns)

        try:
            probabilities = self._fit_implementation(design, y.astype(int))
        except GeneralizabilityError:
            raise
        except Exception as e:
            raise ModelFittingError(
                f"Failed to fit {self.method.value} participation model: {str(e)}"
            ) from e

        if not np.all(np.isfinite(probabilities)):
            raise ModelFittingError(
                f"{self.method.value} participation model produced non-finite probabilities"
            )

        self.probabilities_ = pd.Series(
            np.asarray(probabilities, dtype=np.float64),
            index=covariates.index,
            name="participation_probability",
        )
        self.is_fitted = True

        n_degenerate = int(((self.probabilities_ <= 0) | (self.probabilities_ >= 1)).sum())
        if n_degenerate:
            logger.warning(
                "%s participation model produced %d probabilities of exactly 0 or 1; "
                "trial and population may be separable",
                self.method.value,
                n_degenerate,
            )

        logger.debug(
            "Fitted %s participation model on %d rows with %d features",
            self.method.value,
            len(design),
            len(self.feature_names_),
        )
        return self

    def predict_proba(self) -> pd.Series:
        """In-sample participation probabilities of the fitted rows."""
        if not self.is_fitted or self.probabilities_ is None:
            raise ModelFittingError("Participation model must be fitted first")
        return self.probabilities_


class LogisticParticipationModel(ParticipationModel):
    """Unpenalized logistic regression of trial membership on covariates."""

    method = SelectionMethod.LR

    def __init__(self, max_iter: int = 100, random_state: Optional[int] = None) -> None:
        """Initialize the logistic model.

        Args:
            max_iter: Maximum Newton iterations
            random_state: Unused; logistic regression is deterministic
        """
        super().__init__(random_state=random_state)
        self.max_iter = max_iter

    def _build_design(self, covariates: pd.DataFrame) -> pd.DataFrame:
        design = build_design_matrix(covariates, drop_first=True)
        return sm.add_constant(design, has_constant="add")

    def _fit_implementation(
        self, design: pd.DataFrame, membership: NDArray[Any]
    ) -> NDArray[Any]:
        exog = design.to_numpy(dtype=np.float64)
        rank = np.linalg.matrix_rank(exog)
        if rank < exog.shape[1]:
            raise ModelFittingError(
                f"Logistic participation model design is rank deficient "
                f"(rank {rank} for {exog.shape[1]} columns); a selection covariate "
                "is constant or collinear with the others"
            )

        with warnings.catch_warnings():
            warnings.simplefilter("error", PerfectSeparationWarning)
            try:
                result = sm.Logit(membership, design).fit(disp=0, maxiter=self.max_iter)
            except (PerfectSeparationError, PerfectSeparationWarning) as e:
                raise ModelFittingError(
                    "Logistic participation model failed: the selection covariates "
                    "perfectly separate trial and population"
                ) from e
            except np.linalg.LinAlgError as e:
                raise ModelFittingError(
                    f"Logistic participation model failed: {str(e)}"
                ) from e

        probabilities = np.asarray(result.predict(design), dtype=np.float64)
        # A linear predictor that classifies every row means no finite MLE
        if np.all((probabilities > 0.5) == (membership == 1)):
            raise ModelFittingError(
                "Logistic participation model failed: the selection covariates "
                "perfectly separate trial and population"
            )

        self.model_ = result
        return probabilities


class RandomForestParticipationModel(ParticipationModel):
    """Random forest classifier scored by tree votes.

    Each row's probability is the fraction of trees voting for trial
    membership, taken over the whole forest on the fitting rows.
    """

    method = SelectionMethod.RF

    def __init__(
        self,
        n_estimators: int = 500,
        min_samples_leaf: int = 1,
        random_state: Optional[int] = None,
    ) -> None:
        """Initialize the random forest model.

        Args:
            n_estimators: Number of trees
            min_samples_leaf: Minimum samples per leaf
            random_state: Random seed for bootstrap samples and splits
        """
        super().__init__(random_state=random_state)
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf

    def _build_design(self, covariates: pd.DataFrame) -> pd.DataFrame:
        return build_design_matrix(covariates, drop_first=False)

    def _fit_implementation(
        self, design: pd.DataFrame, membership: NDArray[Any]
    ) -> NDArray[Any]:
        x = design.to_numpy(dtype=np.float64)
        forest = RandomForestClassifier(
            n_estimators=self.n_estimators,
            min_samples_leaf=self.min_samples_leaf,
            bootstrap=True,
            random_state=self.random_state,
        )
        forest.fit(x, membership)

        self.model_ = forest
        trial_column = list(forest.classes_).index(1)
        return np.asarray(forest.predict_proba(x)[:, trial_column], dtype=np.float64)


class LassoParticipationModel(ParticipationModel):
    """L1-penalized logistic regression with a cross-validated penalty.

    The penalty follows the one-standard-error rule: the strongest penalty
    whose mean cross-validated log-loss is within one standard error of the
    best one.
    """

    method = SelectionMethod.LASSO

    def __init__(
        self,
        cv_folds: int = 10,
        n_penalties: int = 20,
        max_iter: int = 5000,
        random_state: Optional[int] = None,
    ) -> None:
        """Initialize the lasso model.

        Args:
            cv_folds: Number of cross-validation folds
            n_penalties: Number of inverse-penalty values searched
            max_iter: Maximum solver iterations
            random_state: Random seed for fold assignment and the solver
        """
        super().__init__(random_state=random_state)
        self.cv_folds = cv_folds
        self.n_penalties = n_penalties
        self.max_iter = max_iter

        self.selected_c_: Optional[float] = None
        self.cv_results_: Optional[dict[str, Any]] = None

    def _build_design(self, covariates: pd.DataFrame) -> pd.DataFrame:
        return build_design_matrix(covariates, drop_first=False)

    def _make_pipeline(self) -> Pipeline:
        return make_pipeline(
            StandardScaler(),
            LogisticRegression(
                l1_ratio=1.0,
                solver="saga",
                max_iter=self.max_iter,
                random_state=self.random_state,
            ),
        )

    def _fit_implementation(
        self, design: pd.DataFrame, membership: NDArray[Any]
    ) -> NDArray[Any]:
        x = design.to_numpy(dtype=np.float64)
        c_grid = np.logspace(-3, 2, self.n_penalties)

        folds = StratifiedKFold(
            n_splits=self.cv_folds, shuffle=True, random_state=self.random_state
        )
        search = GridSearchCV(
            self._make_pipeline(),
            param_grid={"logisticregression__C": c_grid},
            cv=folds,
            scoring="neg_log_loss",
            refit=False,
            error_score="raise",
        )
        search.fit(x, membership)

        self.cv_results_ = search.cv_results_
        self.selected_c_ = self._one_standard_error_c(
            c_grid,
            np.asarray(search.cv_results_["mean_test_score"]),
            np.asarray(search.cv_results_["std_test_score"]),
        )
        logger.debug("Lasso participation model selected C=%.5g", self.selected_c_)

        final = clone(self._make_pipeline())
        final.set_params(logisticregression__C=self.selected_c_)
        final.fit(x, membership)

        self.model_ = final
        trial_column = list(final.classes_).index(1)
        return final.predict_proba(x)[:, trial_column]

    def _one_standard_error_c(
        self,
        c_grid: NDArray[Any],
        mean_scores: NDArray[Any],
        std_scores: NDArray[Any],
    ) -> float:
        """Smallest C (strongest penalty) within one SE of the best score."""
        best = int(np.argmax(mean_scores))
        threshold = mean_scores[best] - std_scores[best] / np.sqrt(self.cv_folds)
        eligible = c_grid[mean_scores >= threshold]
        return float(np.min(eligible))


@dataclass(frozen=True)
class ParticipationEstimate:
    """Per-row participation probabilities split by sample.

    Attributes:
        probabilities: Probability of trial membership for every analysed
            row, indexed like the analysis dataset
        membership: Trial indicator for the same rows
        method: Participation model that produced the probabilities
        model: The fitted participation model
    """

    probabilities: pd.Series
    membership: pd.Series
    method: SelectionMethod
    model: ParticipationModel

    @property
    def trial(self) -> pd.Series:
        """Participation probabilities of trial members."""
        return self.probabilities[self.membership == 1]

    @property
    def population(self) -> pd.Series:
        """Participation probabilities of population members."""
        return self.probabilities[self.membership == 0]


_MODEL_REGISTRY: dict[SelectionMethod, type[ParticipationModel]] = {
    SelectionMethod.LR: LogisticParticipationModel,
    SelectionMethod.RF: RandomForestParticipationModel,
    SelectionMethod.LASSO: LassoParticipationModel,
}


def create_participation_model(
    method: SelectionMethod | str,
    random_state: Optional[int] = None,
    **model_kwargs: Any,
) -> ParticipationModel:
    """Create the participation model for a selection method.

    Args:
        method: Selection method name or enum
        random_state: Random seed passed to the model
        **model_kwargs: Model-specific settings

    Returns:
        Unfitted ParticipationModel
    """
    selection = SelectionMethod.parse(method)
    return _MODEL_REGISTRY[selection](random_state=random_state, **model_kwargs)


def fit_participation_model(
    trial: str,
    selection_covariates: list[str] | tuple[str, ...],
    data: pd.DataFrame,
    method: SelectionMethod | str = SelectionMethod.LR,
    random_state: Optional[int] = None,
    **model_kwargs: Any,
) -> ParticipationEstimate:
    """Fit a participation model on complete-case stacked data.

    Args:
        trial: Name of the trial membership indicator
        selection_covariates: Covariates used by the model
        data: Stacked data without missing trial or covariate values
        method: Selection method ("lr", "rf" or "lasso")
        random_state: Random seed for stochastic back-ends
        **model_kwargs: Model-specific settings

    Returns:
        ParticipationEstimate aligned with the rows of ``data``
    """
    model = create_participation_model(method, random_state=random_state, **model_kwargs)
    membership = data[trial].astype(int)
    model.fit(data[list(selection_covariates)], membership)

    return ParticipationEstimate(
        probabilities=model.predict_proba(),
        membership=membership,
        method=model.method,
        model=model,
    )
