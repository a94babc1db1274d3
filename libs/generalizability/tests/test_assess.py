"""End-to-end tests for assess."""

import numpy as np
import pytest

from generalizability import assess
from generalizability.api.assess import AssessResult
from generalizability.core.base import InputValidationError
from generalizability.core.options import SelectionMethod
from generalizability.participation.models import LassoParticipationModel

COVARIATES = ["age", "female", "region"]


class TestAssess:
    """Test suite for assess."""

    def test_result_fields(self, stacked_data, fast_config):
        """Test the assembled diagnostics."""
        result = assess("trial", COVARIATES, stacked_data, config=fast_config)

        assert isinstance(result, AssessResult)
        assert result.selection_method is SelectionMethod.LR
        assert result.n_trial == 200
        assert result.n_pop == 2000
        assert result.n_excluded is None
        assert 0 <= result.g_index <= 1
        assert list(result.data.columns) == ["trial", *COVARIATES]

    def test_no_outcome_needed(self, stacked_data, fast_config):
        """Test that assessment works without outcome or treatment fields."""
        data = stacked_data.drop(columns=["outcome", "treatment"])
        result = assess("trial", ["age"], data, config=fast_config)
        assert result.n_trial == 200

    def test_covariate_table(self, stacked_data, fast_config):
        """Test the unweighted covariate table."""
        result = assess("trial", COVARIATES, stacked_data, config=fast_config)
        table = result.covariate_table

        assert list(table.columns) == ["trial", "population", "ASMD"]
        assert {"age", "female", "region_north", "region_south", "region_west"} == set(table.index)
        assert table.loc["age", "population"] > table.loc["age", "trial"]

    def test_participation_split(self, stacked_data, fast_config):
        """Test the participation probabilities by sample."""
        result = assess("trial", COVARIATES, stacked_data, config=fast_config)

        assert len(result.participation.trial) == 200
        assert len(result.participation.population) == 2000
        assert result.participation.model.is_fitted

    def test_participation_summary(self, stacked_data, fast_config):
        """Test the participation summary table."""
        result = assess("trial", COVARIATES, stacked_data, config=fast_config)
        summary = result.participation_summary()

        assert list(summary.index) == ["trial", "population"]
        assert list(summary.columns) == ["min", "25%", "50%", "mean", "75%", "max"]
        assert summary.loc["trial", "mean"] == pytest.approx(result.participation.trial.mean())

    def test_trimming(self, age_only_data, fast_config):
        """Test trimming counts in the assessment."""
        result = assess("trial", "age", age_only_data, trim_pop=True, config=fast_config)

        assert result.trim_pop is True
        assert result.n_excluded > 0
        assert result.n_pop == 10_000 - result.n_excluded

    def test_index_higher_after_trimming(self, age_only_data, fast_config):
        """Test that trimming to trial support raises the index."""
        untrimmed = assess("trial", "age", age_only_data, config=fast_config)
        trimmed = assess("trial", "age", age_only_data, trim_pop=True, config=fast_config)
        assert trimmed.g_index > untrimmed.g_index

    def test_lasso_selection(self, stacked_data, fast_config):
        """Test the lasso participation model through assess."""
        result = assess(
            "trial", COVARIATES, stacked_data, selection_method="Lasso", config=fast_config
        )
        assert result.selection_method is SelectionMethod.LASSO
        assert isinstance(result.participation.model, LassoParticipationModel)
        assert np.isfinite(result.g_index)

    def test_rf_reproducible(self, stacked_data, fast_config):
        """Test that random forest assessments repeat with the same seed."""
        first = assess("trial", COVARIATES, stacked_data, selection_method="rf", seed=5, config=fast_config)
        second = assess("trial", COVARIATES, stacked_data, selection_method="rf", seed=5, config=fast_config)
        assert first.g_index == second.g_index

    def test_invalid_selection_method(self, stacked_data, fast_config):
        """Test that an unknown selection method is rejected."""
        with pytest.raises(InputValidationError, match="selection_method"):
            assess("trial", COVARIATES, stacked_data, selection_method="knn", config=fast_config)

    def test_missing_trial_field(self, stacked_data, fast_config):
        """Test that a missing trial field is named."""
        with pytest.raises(InputValidationError, match="in_trial"):
            assess("in_trial", COVARIATES, stacked_data, config=fast_config)
