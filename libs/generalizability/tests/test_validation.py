"""Tests for dataset validation and row filtering."""

import numpy as np
import pandas as pd
import pytest

from generalizability.core.base import InputValidationError, StudyColumns
from generalizability.data.design import build_design_matrix, is_categorical
from generalizability.data.validation import (
    complete_cases,
    observed_levels,
    treatment_indicator,
    validate_study_data,
)


@pytest.fixture
def columns():
    return StudyColumns(
        trial="trial",
        selection_covariates=["age", "region"],
        outcome="outcome",
        treatment="treatment",
    )


class TestValidateStudyData:
    """Test suite for validate_study_data."""

    def test_valid_data_passes(self, small_stacked_data, columns):
        """Test that a well-formed dataset raises nothing."""
        validate_study_data(small_stacked_data, columns)

    def test_non_dataframe_rejected(self, small_stacked_data, columns):
        """Test that non-tabular input is rejected."""
        with pytest.raises(InputValidationError, match="DataFrame"):
            validate_study_data(small_stacked_data.to_dict(), columns)

    def test_missing_outcome_named(self, small_stacked_data, columns):
        """Test that a missing outcome field is named in the error."""
        data = small_stacked_data.drop(columns="outcome")
        with pytest.raises(InputValidationError, match="Outcome 'outcome'"):
            validate_study_data(data, columns)

    def test_missing_treatment_named(self, small_stacked_data, columns):
        """Test that a missing treatment field is named in the error."""
        data = small_stacked_data.drop(columns="treatment")
        with pytest.raises(InputValidationError, match="Treatment 'treatment'"):
            validate_study_data(data, columns)

    def test_missing_covariate_named(self, small_stacked_data, columns):
        """Test that missing selection covariates are listed."""
        data = small_stacked_data.drop(columns="region")
        with pytest.raises(InputValidationError, match="region"):
            validate_study_data(data, columns)

    def test_missing_trial_named(self, small_stacked_data, columns):
        """Test that a missing trial field is named in the error."""
        data = small_stacked_data.drop(columns="trial")
        with pytest.raises(InputValidationError, match="Trial membership 'trial'"):
            validate_study_data(data, columns)

    def test_trial_with_three_levels(self, small_stacked_data, columns):
        """Test that a trial indicator with three values is rejected."""
        data = small_stacked_data.copy()
        data.loc[0, "trial"] = 2
        with pytest.raises(InputValidationError, match="not binary"):
            validate_study_data(data, columns)

    def test_trial_coded_one_two(self, small_stacked_data, columns):
        """Test that a {1, 2} trial coding is rejected."""
        data = small_stacked_data.copy()
        data["trial"] = data["trial"] + 1
        with pytest.raises(InputValidationError, match="coded 0"):
            validate_study_data(data, columns)

    def test_trial_coded_as_text(self, small_stacked_data, columns):
        """Test that a trial indicator stored as the strings "0" and "1" is accepted."""
        data = small_stacked_data.assign(trial=small_stacked_data["trial"].astype(str))
        validate_study_data(data, columns)

    def test_trial_text_other_than_zero_one(self, small_stacked_data, columns):
        """Test that text levels other than "0" and "1" are rejected."""
        data = small_stacked_data.assign(
            trial=small_stacked_data["trial"].map({1: "yes", 0: "no"})
        )
        with pytest.raises(InputValidationError, match="coded 0"):
            validate_study_data(data, columns)

    def test_trial_missing_values_ignored_for_levels(self, small_stacked_data, columns):
        """Test that missing trial values do not count as a level."""
        data = small_stacked_data.copy()
        data["trial"] = data["trial"].astype(float)
        data.loc[7, "trial"] = np.nan
        validate_study_data(data, columns)

    def test_treatment_single_level(self, small_stacked_data, columns):
        """Test that a treatment with one observed level is rejected."""
        data = small_stacked_data.copy()
        data.loc[data["trial"] == 1, "treatment"] = 1
        with pytest.raises(InputValidationError, match="Treatment variable"):
            validate_study_data(data, columns)

    def test_outcome_checked_before_trial(self, small_stacked_data, columns):
        """Test that checks run in order: a missing outcome is reported first."""
        data = small_stacked_data.drop(columns="outcome")
        data["trial"] = data["trial"] + 1
        with pytest.raises(InputValidationError, match="Outcome"):
            validate_study_data(data, columns)

    def test_outcome_not_required_for_assessment(self, small_stacked_data):
        """Test that assessment columns do not need outcome or treatment."""
        columns = StudyColumns(trial="trial", selection_covariates="age")
        data = small_stacked_data.drop(columns=["outcome", "treatment"])
        validate_study_data(data, columns, require_outcome=False)


class TestCompleteCases:
    """Test suite for complete-case filtering."""

    def test_text_trial_coded_as_integers(self, small_stacked_data, columns):
        """Test that a text-coded trial indicator comes back as integers."""
        data = small_stacked_data.assign(trial=small_stacked_data["trial"].astype(str))
        filtered = complete_cases(data, columns)
        assert filtered["trial"].tolist() == small_stacked_data["trial"].tolist()

    def test_keeps_rows_missing_outcome(self, small_stacked_data, columns):
        """Test that population rows without outcome or treatment are kept."""
        filtered = complete_cases(small_stacked_data, columns)
        assert len(filtered) == len(small_stacked_data)

    def test_drops_rows_missing_covariates(self, small_stacked_data, columns):
        """Test that rows missing a covariate or the trial indicator are dropped."""
        data = small_stacked_data.copy()
        data["trial"] = data["trial"].astype(float)
        data.loc[1, "age"] = np.nan
        data.loc[5, "trial"] = np.nan

        filtered = complete_cases(data, columns)

        assert list(filtered.index) == [0, 2, 3, 4, 6, 7]
        assert filtered["trial"].dtype.kind == "i"

    def test_restricts_to_analysis_columns(self, small_stacked_data, columns):
        """Test that extra columns are removed and order follows the study fields."""
        data = small_stacked_data.assign(extra=1)
        filtered = complete_cases(data, columns)
        assert list(filtered.columns) == ["outcome", "treatment", "trial", "age", "region"]

    def test_input_not_modified(self, small_stacked_data, columns):
        """Test that filtering works on a copy."""
        original = small_stacked_data.copy()
        complete_cases(small_stacked_data, columns)
        pd.testing.assert_frame_equal(small_stacked_data, original)


class TestTreatmentIndicator:
    """Test suite for treatment coding."""

    def test_higher_level_is_treated(self):
        """Test that the higher of two levels is coded 1."""
        values = pd.Series([1, 2, 2, 1, np.nan])
        coded = treatment_indicator(values)
        assert coded.iloc[:4].tolist() == [0.0, 1.0, 1.0, 0.0]
        assert np.isnan(coded.iloc[4])

    def test_string_levels(self):
        """Test that string levels are ordered alphabetically."""
        coded = treatment_indicator(pd.Series(["control", "treated", "control"]))
        assert coded.tolist() == [0.0, 1.0, 0.0]

    def test_three_levels_rejected(self):
        """Test that a non-binary treatment is rejected."""
        with pytest.raises(InputValidationError):
            treatment_indicator(pd.Series([0, 1, 2]))

    def test_observed_levels_sorted(self):
        """Test that observed levels skip missing values."""
        assert observed_levels(pd.Series([3, 1, np.nan, 3])) == [1, 3]


class TestDesignMatrix:
    """Test suite for design matrix construction."""

    def test_categorical_expanded(self, small_stacked_data):
        """Test that every level of a categorical covariate becomes a column."""
        design = build_design_matrix(small_stacked_data[["age", "region"]])
        assert list(design.columns) == ["age", "region_a", "region_b", "region_c"]
        assert design.loc[5, "region_c"] == 1.0

    def test_drop_first(self, small_stacked_data):
        """Test that the reference level is dropped on request."""
        design = build_design_matrix(small_stacked_data[["age", "region"]], drop_first=True)
        assert list(design.columns) == ["age", "region_b", "region_c"]

    def test_missing_values_rejected(self, small_stacked_data):
        """Test that missing covariate values are an input error."""
        data = small_stacked_data[["age"]].copy()
        data.loc[0, "age"] = np.nan
        with pytest.raises(InputValidationError, match="age"):
            build_design_matrix(data)

    def test_is_categorical(self):
        """Test categorical detection by dtype."""
        assert is_categorical(pd.Series(["a", "b"]))
        assert is_categorical(pd.Series([True, False]))
        assert is_categorical(pd.Series(["a", "b"], dtype="category"))
        assert not is_categorical(pd.Series([1.0, 2.0]))
