import numpy as np
import pandas as pd
import pytest

from hrclust.errors import ConfigurationError, DataIntegrityError, InsufficientDataError
from hrclust.preprocessing import EmployeePreprocessor, derive_features, preprocess


def _frame():
    return pd.DataFrame({
        "EmpID": [1, 2, 3, 4, 5, 6],
        "PayRate": [20.0, 30.0, np.nan, 40.0, 50.0, 60.0],
        "Level": [3, 3, 3, 3, 3, 3],
        "Sex": ["M", "F", "F", "M", "F", "M"],
        "Department": ["Sales", "IT", "IT", "Production", "Sales", "IT"],
        "Country": ["US", "US", "US", "US", "US", "US"],
    })


class TestPreprocess:
    def test_rows_align_with_identifiers(self, hr_records):
        df = derive_features(hr_records, reference_date="2020-01-01")
        matrix, ids = preprocess(df, ["PayRate", "Age", "TenureYears", "Sex", "Department"])
        assert matrix.shape[0] == len(ids) == len(df)
        assert ids == df["EmpID"].tolist()

    def test_missing_rows_are_dropped_and_counted(self):
        pre = EmployeePreprocessor(["PayRate", "Sex"])
        result = pre.fit_transform(_frame())
        assert result.n_rows == 5
        assert result.dropped_rows == 1
        assert result.dropped_ids == [3]
        assert pre.dropped_rows_ == 1
        assert 3 not in result.ids

    def test_continuous_columns_are_standardized(self):
        matrix, _ = preprocess(_frame(), ["PayRate"])
        col = matrix[:, 0]
        assert col.mean() == pytest.approx(0.0, abs=1e-12)
        assert col.std() == pytest.approx(1.0)

    def test_constant_column_is_all_zeros(self):
        matrix, _ = preprocess(_frame(), ["PayRate", "Level"])
        assert not np.isnan(matrix).any()
        assert np.all(matrix[:, 1] == 0.0)

    def test_constant_fractional_column_is_exactly_zero(self):
        df = pd.DataFrame({"EmpID": [1, 2, 3], "Rate": [0.1, 0.1, 0.1]})
        matrix, _ = preprocess(df, ["Rate"])
        assert np.all(matrix == 0.0)

    def test_categorical_drops_reference_level(self):
        pre = EmployeePreprocessor(["PayRate", "Department"])
        result = pre.fit_transform(_frame())
        # IT, Production, Sales -> IT is the reference level
        assert result.feature_names == ["PayRate", "Department=Production", "Department=Sales"]
        assert result.matrix.shape == (5, 3)
        dept = _frame().dropna()["Department"].tolist()
        for row, name in zip(result.matrix, dept):
            assert row[1] == (1.0 if name == "Production" else 0.0)
            assert row[2] == (1.0 if name == "Sales" else 0.0)

    def test_single_level_categorical_collapses_to_nothing(self):
        pre = EmployeePreprocessor(["PayRate", "Country"])
        result = pre.fit_transform(_frame())
        assert result.feature_names == ["PayRate"]
        assert result.matrix.shape == (5, 1)
        assert result.categorical_columns == ["Country"]

    def test_identifier_never_enters_matrix(self):
        pre = EmployeePreprocessor(["EmpID", "PayRate"])
        result = pre.fit_transform(_frame())
        assert result.feature_names == ["PayRate"]
        assert result.ids == [1, 2, 4, 5, 6]

    def test_explicit_categorical_for_numeric_codes(self):
        result = EmployeePreprocessor(["PayRate", "Level"], categorical_columns=["Level"]).fit_transform(_frame())
        assert result.continuous_columns == ["PayRate"]
        assert result.categorical_columns == ["Level"]
        assert result.matrix.shape[1] == 1

    def test_input_is_not_mutated(self):
        df = _frame()
        before = df.copy()
        preprocess(df, ["PayRate", "Sex", "Department"])
        pd.testing.assert_frame_equal(df, before)

    def test_unknown_column_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc:
            preprocess(_frame(), ["PayRate", "Salary"])
        assert exc.value.context["columns"] == ["Salary"]
        assert exc.value.stage == "preprocess"

    def test_requires_a_continuous_column(self):
        with pytest.raises(ConfigurationError):
            preprocess(_frame(), ["Sex", "Department"])

    def test_non_numeric_continuous_column(self):
        df = _frame()
        df["Score"] = ["1", "2", "3", "x", "5", "6"]
        with pytest.raises(DataIntegrityError) as exc:
            EmployeePreprocessor(["PayRate", "Score"], categorical_columns=[]).fit_transform(df)
        assert exc.value.context["column"] == "Score"

    def test_no_rows_left(self):
        df = _frame()
        df["PayRate"] = np.nan
        with pytest.raises(InsufficientDataError):
            preprocess(df, ["PayRate"])

    def test_rows_with_missing_identifier_are_dropped(self):
        df = _frame()
        df.loc[0, "EmpID"] = np.nan
        _, ids = preprocess(df, ["PayRate"])
        assert len(ids) == 4


class TestDeriveFeatures:
    def test_age_and_tenure(self):
        df = pd.DataFrame({
            "EmpID": [1, 2],
            "DOB": ["07/10/55", "01/01/90"],
            "DateofHire": ["1/1/2010", "1/1/2018"],
            "DateofTermination": ["1/1/2015", np.nan],
        })
        out = derive_features(df, reference_date="2020-01-01")
        assert 64 < out.loc[0, "Age"] < 65
        assert 29 < out.loc[1, "Age"] < 31
        assert out.loc[0, "TenureYears"] == pytest.approx(5.0, abs=0.01)
        assert out.loc[1, "TenureYears"] == pytest.approx(2.0, abs=0.01)
        assert "Age" not in df.columns

    def test_missing_date_columns_are_skipped(self):
        df = pd.DataFrame({"EmpID": [1], "PayRate": [10.0]})
        out = derive_features(df, reference_date="2020-01-01")
        assert list(out.columns) == ["EmpID", "PayRate"]
