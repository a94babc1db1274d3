"""The ``assess`` entry point: how well a trial represents a population."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import pandas as pd

from shared.config import GeneralizeConfig, get_config

from ..core.options import AnalysisOptions, SelectionMethod
from ..data.validation import validate_study_data
from ..diagnostics.balance import covariate_table
from ..diagnostics.generalizability_index import generalizability_index
from ..participation.models import ParticipationEstimate, fit_participation_model
from .common import (
    build_study_columns,
    participation_model_settings,
    prepare_analysis_data,
    sample_sizes,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssessResult:
    """Generalizability diagnostics, without any treatment effect."""

    g_index: float
    selection_method: SelectionMethod
    selection_covariates: tuple[str, ...]
    trial: str
    n_trial: int
    n_pop: int
    trim_pop: bool
    n_excluded: Optional[int]
    participation: ParticipationEstimate
    covariate_table: pd.DataFrame
    data: pd.DataFrame

    def participation_summary(self) -> pd.DataFrame:
        """Distribution of participation probabilities by sample."""
        stats = ["min", "25%", "50%", "mean", "75%", "max"]
        return pd.DataFrame(
            {
                "trial": self.participation.trial.describe()[stats],
                "population": self.participation.population.describe()[stats],
            }
        ).T


def assess(
    trial: str,
    selection_covariates: str | Sequence[str],
    data: Any,
    selection_method: SelectionMethod | str = "lr",
    trim_pop: bool = False,
    seed: Any = None,
    config: Optional[GeneralizeConfig] = None,
) -> AssessResult:
    """Assess the generalizability of a trial to a target population.

    Args:
        trial: Trial membership indicator, coded 1 (trial) and 0 (population)
        selection_covariates: Covariates that predict trial participation
        data: Stacked trial and population DataFrame
        selection_method: Participation model: "lr", "rf" or "lasso"
        trim_pop: Trim the population to the trial's covariate support
        seed: Seed for stochastic back-ends, default from the config
        config: Settings, default ``get_config()``

    Returns:
        AssessResult
    """
    config = config or get_config()
    columns = build_study_columns(trial, selection_covariates)

    validate_study_data(data, columns, require_outcome=False)
    options = AnalysisOptions.resolve(
        selection_method=selection_method,
        trim_pop=trim_pop,
        seed=seed,
        default_seed=config.default_seed,
    )

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

    g_index = generalizability_index(
        participation.trial.to_numpy(),
        participation.population.to_numpy(),
        grid_size=config.index_grid_size,
        near_disjoint_threshold=config.near_disjoint_threshold,
    )

    logger.info(
        "assess: selection_method=%s n_trial=%d n_pop=%d n_excluded=%s g_index=%.3f",
        options.selection_method.value,
        n_trial,
        n_pop,
        n_excluded,
        g_index,
    )

    return AssessResult(
        g_index=g_index,
        selection_method=options.selection_method,
        selection_covariates=columns.selection_covariates,
        trial=trial,
        n_trial=n_trial,
        n_pop=n_pop,
        trim_pop=options.trim_pop,
        n_excluded=n_excluded,
        participation=participation,
        covariate_table=covariate_table(trial, columns.selection_covariates, analysis),
        data=analysis,
    )
