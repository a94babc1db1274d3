"""Tests for population trimming."""

import numpy as np
import pandas as pd
import pytest

from generalizability.diagnostics.trimming import covariate_bounds, trim_population


class TestCovariateBounds:
    """Test suite for covariate bounds."""

    def test_numeric_and_categorical_bounds(self, small_stacked_data):
        """Test that bounds come from trial rows only."""
        bounds = covariate_bounds("trial", ["age", "region"], small_stacked_data)
        assert bounds.numeric == {"age": (30.0, 60.0)}
        assert bounds.categorical == {"region": frozenset({"a", "b"})}

    def test_contains(self, small_stacked_data):
        """Test the row mask of in-bound rows."""
        bounds = covariate_bounds("trial", ["age", "region"], small_stacked_data)
        mask = bounds.contains(small_stacked_data)
        # Population: 20 (too young), 35/c (unseen level), 55/b (in), 70 (too old)
        assert mask.tolist() == [True, True, True, True, False, False, True, False]


class TestTrimPopulation:
    """Test suite for trim_population."""

    def test_excluded_count(self, small_stacked_data):
        """Test exclusion of out-of-support population rows."""
        result = trim_population("trial", ["age", "region"], small_stacked_data)
        assert result.n_excluded == 3
        assert result.n_population == 4
        assert result.n_retained_population == 1
        assert list(result.trimmed_data.index) == [0, 1, 2, 3, 6]

    def test_trial_rows_never_removed(self, stacked_data):
        """Test that every trial row is retained."""
        result = trim_population("trial", ["age", "female", "region"], stacked_data)
        trimmed = result.trimmed_data
        assert (trimmed["trial"] == 1).sum() == (stacked_data["trial"] == 1).sum()

    def test_counts_add_up(self, stacked_data):
        """Test that excluded plus retained equals the population size."""
        result = trim_population("trial", ["age", "female", "region"], stacked_data)
        retained = int((result.trimmed_data["trial"] == 0).sum())
        n_population = int((stacked_data["trial"] == 0).sum())
        assert result.n_excluded + retained == n_population

    def test_idempotent(self, stacked_data):
        """Test that trimming trimmed data excludes nothing more."""
        covariates = ["age", "female", "region"]
        first = trim_population("trial", covariates, stacked_data)
        second = trim_population("trial", covariates, first.trimmed_data)
        assert second.n_excluded == 0
        pd.testing.assert_frame_equal(second.trimmed_data, first.trimmed_data)

    def test_interior_rows_retained(self, age_only_data):
        """Test that population rows strictly inside the bounds are kept."""
        result = trim_population("trial", ["age"], age_only_data)
        trial_age = age_only_data.loc[age_only_data["trial"] == 1, "age"]
        population = age_only_data.loc[age_only_data["trial"] == 0]
        interior = population.index[
            (population["age"] > trial_age.min()) & (population["age"] < trial_age.max())
        ]
        assert set(interior).issubset(result.trimmed_data.index)

    def test_bounds_inclusive(self):
        """Test that population values on a bound are retained."""
        data = pd.DataFrame({"trial": [1, 1, 0, 0], "age": [30.0, 40.0, 30.0, 40.0]})
        result = trim_population("trial", ["age"], data)
        assert result.n_excluded == 0

    def test_missing_population_covariate_excluded(self, small_stacked_data):
        """Test that a population row with a missing covariate counts as excluded."""
        data = small_stacked_data.copy()
        data.loc[6, "age"] = np.nan
        result = trim_population("trial", ["age", "region"], data)
        assert result.n_excluded == 4
        assert 6 not in result.trimmed_data.index

    def test_input_not_modified(self, stacked_data):
        """Test that the input data is left unchanged."""
        original = stacked_data.copy()
        result = trim_population("trial", ["age"], stacked_data)
        pd.testing.assert_frame_equal(stacked_data, original)
        assert result.trimmed_data is not stacked_data

    @pytest.mark.parametrize("covariates", [["age"], ["region"], ["age", "female"]])
    def test_retained_population_within_bounds(self, stacked_data, covariates):
        """Test that every retained population row lies within the bounds."""
        result = trim_population("trial", covariates, stacked_data)
        retained = result.trimmed_data[result.trimmed_data["trial"] == 0]
        assert result.bounds.contains(retained).all()
