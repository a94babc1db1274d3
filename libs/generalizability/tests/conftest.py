"""Shared test fixtures for the generalizability library.

This module provides reusable stacked trial/population datasets and a
configuration with small model settings so tests run quickly.
"""

import numpy as np
import pandas as pd
import pytest

from generalizability.data.synthetic import (
    TrialPopulationGenerator,
    generate_trial_population,
)
from shared.config import GeneralizeConfig


@pytest.fixture
def random_state():
    """Provide a consistent random state for reproducible tests."""
    return 42


@pytest.fixture
def fast_config():
    """Configuration with small model settings for quick tests."""
    return GeneralizeConfig(
        _env_file=None,
        rf_n_estimators=300,
        lasso_cv_folds=5,
        lasso_n_penalties=8,
        lasso_max_iter=2000,
        bart_n_trees=20,
        bart_draws=200,
        bart_tune=200,
        bart_chains=1,
    )


@pytest.fixture
def synthetic_study(random_state):
    """Trial of 200 and population of 2000 with age, female and region."""
    return generate_trial_population(n_trial=200, n_pop=2000, random_state=random_state)


@pytest.fixture
def stacked_data(synthetic_study):
    """Stacked DataFrame of the synthetic study."""
    return synthetic_study.data


@pytest.fixture
def shifted_study(random_state):
    """Study whose participation odds are log-linear in the covariates.

    Trial and population ages share a standard deviation, so a logistic
    participation model is correctly specified.
    """
    generator = TrialPopulationGenerator(random_state=random_state)
    return generator.generate(
        n_trial=1000,
        n_pop=5000,
        effect_modification=2.0,
        trial_age=(45.0, 8.0),
        pop_age=(50.0, 8.0),
        include_region=False,
    )


@pytest.fixture
def age_only_data(random_state):
    """200 trial rows aged 30-60 and 10,000 population rows aged 18-85."""
    rng = np.random.default_rng(random_state)
    n_trial, n_pop = 200, 10_000

    trial_age = rng.uniform(30, 60, n_trial)
    treatment = np.repeat([0.0, 1.0], n_trial // 2)
    outcome = 0.1 * trial_age + 1.5 * treatment + rng.normal(0, 1, n_trial)

    trial = pd.DataFrame(
        {"outcome": outcome, "treatment": treatment, "trial": 1, "age": trial_age}
    )
    population = pd.DataFrame(
        {
            "outcome": np.nan,
            "treatment": np.nan,
            "trial": 0,
            "age": rng.uniform(18, 85, n_pop),
        }
    )
    return pd.concat([trial, population], ignore_index=True)


@pytest.fixture
def small_stacked_data():
    """Tiny hand-built dataset for validation and filtering tests."""
    return pd.DataFrame(
        {
            "outcome": [1.0, 2.0, 3.0, 4.0, np.nan, np.nan, np.nan, np.nan],
            "treatment": [0, 1, 0, 1, np.nan, np.nan, np.nan, np.nan],
            "trial": [1, 1, 1, 1, 0, 0, 0, 0],
            "age": [30.0, 40.0, 50.0, 60.0, 20.0, 35.0, 55.0, 70.0],
            "region": ["a", "b", "a", "b", "a", "c", "b", "a"],
        }
    )


@pytest.fixture
def overlapping_study(random_state):
    """Equal-sized trial and population drawn from the same covariate law.

    Every selection method gives comparable fits here, which keeps the SATE
    invariance checks quick.
    """
    generator = TrialPopulationGenerator(random_state=random_state)
    return generator.generate(
        n_trial=300,
        n_pop=300,
        trial_age=(50.0, 10.0),
        pop_age=(50.0, 10.0),
        trial_female_share=0.5,
        pop_female_share=0.5,
        include_region=False,
    )
