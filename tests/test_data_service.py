import numpy as np
import pandas as pd
import pytest

from hrclust.dataservice import DataService
from hrclust.errors import ConfigurationError


def test_load_records_strips_headers(tmp_path):
    path = tmp_path / "hr.csv"
    path.write_text("EmpID , PayRate,Termd\n1, 20.5,0\n2,31.0,1\n")
    df = DataService.load_records(str(path), id_column="EmpID")
    assert list(df.columns) == ["EmpID", "PayRate", "Termd"]
    assert df["PayRate"].tolist() == [20.5, 31.0]


def test_load_records_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        DataService.load_records(str(tmp_path / "missing.csv"))
    path = tmp_path / "hr.csv"
    path.write_text("ID,PayRate\n1,20\n")
    with pytest.raises(ConfigurationError) as exc:
        DataService.load_records(str(path), id_column="EmpID")
    assert exc.value.context["column"] == "EmpID"


def test_missing_summary():
    df = pd.DataFrame({"a": [1.0, np.nan, np.nan], "b": [1, 2, 3], "c": ["x", None, "z"]})
    out = DataService.missing_summary(df)
    assert out["column"].tolist() == ["a", "c", "b"]
    assert out["missing_count"].tolist() == [2, 1, 0]
    assert out["missing_ratio"].iloc[0] == pytest.approx(2 / 3)
    assert DataService.missing_summary(df, ["b"])["column"].tolist() == ["b"]


@pytest.mark.parametrize("name", ["out/result.csv", "out/result.parquet"])
def test_export_data(tmp_path, name):
    df = pd.DataFrame({"EmpID": [1, 2], "density_cluster": [0, -1], "embed_x": [0.5, 1.5]})
    path = tmp_path / name
    DataService.export_data(df, str(path))
    back = pd.read_parquet(path) if name.endswith(".parquet") else pd.read_csv(path)
    pd.testing.assert_frame_equal(back, df)
