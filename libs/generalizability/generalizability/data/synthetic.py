"""Synthetic stacked trial/population data for tests and examples.

The trial sample has randomized, balanced treatment and an observed
outcome; the population sample has shifted covariates and no treatment or
outcome. The treatment effect grows with age, so the population effect
differs from the trial effect whenever the age distributions differ.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

REGIONS = ("north", "south", "west")


@dataclass(frozen=True)
class SyntheticStudy:
    """A generated dataset together with its true effects."""

    data: pd.DataFrame
    true_sate: float
    true_tate: float


class TrialPopulationGenerator:
    """Generator for stacked trial and target population datasets."""

    def __init__(self, random_state: int | None = None):
        """Initialize the generator.

        Args:
            random_state: Seed for the generator's own random stream
        """
        self.random_state = random_state
        self.rng = np.random.default_rng(random_state)

    def generate(
        self,
        n_trial: int = 200,
        n_pop: int = 2000,
        treatment_effect: float = 2.0,
        effect_modification: float = 1.0,
        trial_age: tuple[float, float] = (45.0, 6.0),
        pop_age: tuple[float, float] = (50.0, 12.0),
        trial_female_share: float = 0.5,
        pop_female_share: float = 0.6,
        noise_std: float = 1.0,
        include_region: bool = True,
    ) -> SyntheticStudy:
        """Generate a stacked dataset.

        Args:
            n_trial: Number of trial participants
            n_pop: Number of population members
            treatment_effect: Effect at age 50
            effect_modification: Change in effect per 10 years of age
            trial_age: Mean and sd of age in the trial
            pop_age: Mean and sd of age in the population
            trial_female_share: Share of ``female == 1`` in the trial
            pop_female_share: Share of ``female == 1`` in the population
            noise_std: Outcome noise standard deviation
            include_region: Add a three-level categorical ``region`` covariate

        Returns:
            SyntheticStudy with the data and the true SATE and TATE
        """
        trial = self._sample_covariates(
            n_trial, trial_age, trial_female_share, include_region, [0.4, 0.3, 0.3]
        )
        population = self._sample_covariates(
            n_pop, pop_age, pop_female_share, include_region, [0.2, 0.3, 0.5]
        )

        # Balanced randomization within the trial
        treatment = np.zeros(n_trial, dtype=int)
        treatment[self.rng.permutation(n_trial)[: n_trial // 2]] = 1

        trial_effects = self._unit_effects(
            trial["age"].to_numpy(), treatment_effect, effect_modification
        )
        outcome = (
            1.0
            + 0.05 * trial["age"].to_numpy()
            + 0.5 * trial["female"].to_numpy()
            + treatment * trial_effects
            + self.rng.normal(0, noise_std, n_trial)
        )

        trial.insert(0, "trial", 1)
        trial.insert(0, "treatment", treatment.astype(float))
        trial.insert(0, "outcome", outcome)

        population.insert(0, "trial", 0)
        population.insert(0, "treatment", np.nan)
        population.insert(0, "outcome", np.nan)

        data = pd.concat([trial, population], ignore_index=True)

        pop_effects = self._unit_effects(
            population["age"].to_numpy(), treatment_effect, effect_modification
        )
        return SyntheticStudy(
            data=data,
            true_sate=float(np.mean(trial_effects)),
            true_tate=float(np.mean(pop_effects)),
        )

    def _sample_covariates(
        self,
        n: int,
        age: tuple[float, float],
        female_share: float,
        include_region: bool,
        region_probs: list[float],
    ) -> pd.DataFrame:
        frame = pd.DataFrame(
            {
                "age": np.round(self.rng.normal(age[0], age[1], n), 1),
                "female": self.rng.binomial(1, female_share, n),
            }
        )
        if include_region:
            frame["region"] = self.rng.choice(REGIONS, size=n, p=region_probs)
        return frame

    @staticmethod
    def _unit_effects(
        age: np.ndarray, treatment_effect: float, effect_modification: float
    ) -> np.ndarray:
        return treatment_effect + effect_modification * (age - 50.0) / 10.0


def generate_trial_population(
    n_trial: int = 200,
    n_pop: int = 2000,
    treatment_effect: float = 2.0,
    effect_modification: float = 1.0,
    include_region: bool = True,
    random_state: int | None = None,
) -> SyntheticStudy:
    """Generate a stacked trial/population dataset with default shifts.

    Args:
        n_trial: Number of trial participants
        n_pop: Number of population members
        treatment_effect: Effect at age 50
        effect_modification: Change in effect per 10 years of age
        include_region: Add a categorical ``region`` covariate
        random_state: Random seed

    Returns:
        SyntheticStudy with the data and the true SATE and TATE
    """
    generator = TrialPopulationGenerator(random_state=random_state)
    return generator.generate(
        n_trial=n_trial,
        n_pop=n_pop,
        treatment_effect=treatment_effect,
        effect_modification=effect_modification,
        include_region=include_region,
    )
