"""The ``generalize`` entry point: SATE and TATE from stacked data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import pandas as pd

from shared.config import GeneralizeConfig, get_config

from ..core.base import (
    EffectEstimate,
    GeneralizabilityError,
    StudyColumns,
    TATEEstimator,
)
from ..core.options import AnalysisOptions, SelectionMethod, TATEMethod
from ..data.validation import validate_study_data
from ..diagnostics.generalizability_index import generalizability_index
from ..estimators.regression import estimate_treatment_effect
from ..estimators.tmle import TransportTMLEEstimator
from ..estimators.weighting import WeightingEstimator
from ..participation.models import ParticipationEstimate, fit_participation_model
from .common import (
    build_study_columns,
    participation_model_settings,
    prepare_analysis_data,
    sample_sizes,
)

logger = logging.getLogger(__name__)

RESULTS_TABLE_COLUMNS = ["Estimate", "Std. Error", "95% CI Lower", "95% CI Upper"]


@dataclass(frozen=True)
class GeneralizeResult:
    """Sample and target average treatment effects with their metadata.

    Attributes:
        SATE: Unweighted treatment effect within the trial
        TATE: Treatment effect in the target population
        g_index: Tipton generalizability index
        n_trial: Trial rows analysed
        n_pop: Population rows analysed, after any trimming
        n_excluded: Population rows removed by trimming, None when not trimming
        weighted_covariate_table: Covariate table with weighted trial means
            (weighting method only)
        data: The analysis dataset
        participation: Participation probabilities and the fitted model
        weights: Trial-unit weights (weighting method only)
    """

    SATE: EffectEstimate
    TATE: EffectEstimate
    outcome: str
    treatment: str
    trial: str
    method: TATEMethod
    selection_method: SelectionMethod
    g_index: float
    n_trial: int
    n_pop: int
    trim_pop: bool
    n_excluded: Optional[int]
    selection_covariates: tuple[str, ...]
    weighted_covariate_table: Optional[pd.DataFrame]
    data: pd.DataFrame
    is_data_disjoint: bool
    participation: ParticipationEstimate
    weights: Optional[pd.Series] = None

    def results_table(self) -> pd.DataFrame:
        """SATE and TATE estimates with standard errors and intervals."""
        rows = {
            "SATE": [self.SATE.estimate, self.SATE.se, self.SATE.ci_lower, self.SATE.ci_upper],
            "TATE": [self.TATE.estimate, self.TATE.se, self.TATE.ci_lower, self.TATE.ci_upper],
        }
        return pd.DataFrame.from_dict(rows, orient="index", columns=RESULTS_TABLE_COLUMNS)


def _create_tate_estimator(
    options: AnalysisOptions,
    participation: ParticipationEstimate,
    config: GeneralizeConfig,
) -> TATEEstimator:
    """Create the TATE back-end for the resolved method."""
    if options.method is TATEMethod.WEIGHTING:
        return WeightingEstimator(
            participation,
            is_data_disjoint=options.is_data_disjoint,
            random_state=options.seed,
            confidence_level=config.confidence_level,
        )
    elif options.method is TATEMethod.TMLE:
        return TransportTMLEEstimator(
            random_state=options.seed, confidence_level=config.confidence_level
        )
    else:
        try:
            from ..estimators.bart import BartEstimator
        except ImportError as e:
            raise GeneralizabilityError(
                "method='bart' needs pymc and pymc-bart; install the 'bart' extra"
            ) from e
        return BartEstimator(
            n_trees=config.bart_n_trees,
            draws=config.bart_draws,
            tune=config.bart_tune,
            chains=config.bart_chains,
            random_state=options.seed,
            confidence_level=config.confidence_level,
        )


def generalize(
    outcome: str,
    treatment: str,
    trial: str,
    selection_covariates: str | Sequence[str],
    data: Any,
    method: TATEMethod | str = "weighting",
    selection_method: SelectionMethod | str = "lr",
    is_data_disjoint: bool = True,
    trim_pop: bool = False,
    seed: Any = None,
    config: Optional[GeneralizeConfig] = None,
) -> GeneralizeResult:
    """Generalize a trial's average treatment effect to a target population.

    Args:
        outcome: Outcome variable
        treatment: Binary treatment variable
        trial: Trial membership indicator, coded 1 (trial) and 0 (population)
        selection_covariates: Covariates that predict trial participation
        data: Stacked trial and population DataFrame
        method: TATE back-end: "weighting", "bart" or "tmle"
        selection_method: Participation model: "lr", "rf" or "lasso"
        is_data_disjoint: Whether trial and population are separate samples
        trim_pop: Trim the population to the trial's covariate support;
            always on for "tmle"
        seed: Seed for stochastic back-ends, default from the config
        config: Settings, default ``get_config()``

    Returns:
        GeneralizeResult

    Raises:
        InputValidationError: If the data or options are invalid
        ModelFittingError: If a model back-end fails
        DegenerateWeightError: If a trial participation probability is 0 or 1
    """
    config = config or get_config()
    columns: StudyColumns = build_study_columns(
        trial, selection_covariates, outcome=outcome, treatment=treatment
    )

    validate_study_data(data, columns, require_outcome=True)
    options = AnalysisOptions.resolve(
        method=method,
        selection_method=selection_method,
        is_data_disjoint=is_data_disjoint,
        trim_pop=trim_pop,
        seed=seed,
        default_seed=config.default_seed,
    )
    if options.trim_pop and not trim_pop:
        logger.debug("Population trimming enabled for method=%s", options.method.value)

    analysis, n_excluded = prepare_analysis_data(data, columns, options.trim_pop)
    n_trial, n_pop = sample_sizes(analysis, trial)

    participation = fit_participation_model(
        trial,
        columns.selection_covariates,
        analysis,
        method=options.selection_method,
        random_state=options.seed,
        **participation_model_settings(options.selection_method, config),
    )

    estimator = _create_tate_estimator(options, participation, config)
    tate = estimator.estimate_tate(analysis, columns)

    weights = None
    weighted_table = None
    if isinstance(estimator, WeightingEstimator):
        assert estimator.weighting_result_ is not None
        weights = estimator.weighting_result_.weights
        weighted_table = estimator.weighted_covariate_table(analysis, columns)

    sate = estimate_treatment_effect(
        analysis.loc[analysis[trial] == 1],
        outcome,
        treatment,
        confidence_level=config.confidence_level,
    )

    g_index = generalizability_index(
        participation.trial.to_numpy(),
        participation.population.to_numpy(),
        grid_size=config.index_grid_size,
        near_disjoint_threshold=config.near_disjoint_threshold,
    )

    logger.info(
        "generalize: method=%s selection_method=%s n_trial=%d n_pop=%d n_excluded=%s "
        "g_index=%.3f TATE=%.4f",
        options.method.value,
        options.selection_method.value,
        n_trial,
        n_pop,
        n_excluded,
        g_index,
        tate.estimate,
    )

    return GeneralizeResult(
        SATE=sate,
        TATE=tate,
        outcome=outcome,
        treatment=treatment,
        trial=trial,
        method=options.method,
        selection_method=options.selection_method,
        g_index=g_index,
        n_trial=n_trial,
        n_pop=n_pop,
        trim_pop=options.trim_pop,
        n_excluded=n_excluded,
        selection_covariates=columns.selection_covariates,
        weighted_covariate_table=weighted_table,
        data=analysis,
        is_data_disjoint=options.is_data_disjoint,
        participation=participation,
        weights=weights,
    )
