import numpy as np
import pandas as pd
import pytest

from hrclust.configs import AnalysisOptions, DensityOptions, EmbeddingOptions, ExemplarOptions


DEPARTMENTS = ["Production", "IT/IS", "Sales", "Admin Offices"]
POSITIONS = ["Technician I", "Engineer", "Area Sales Manager", "Administrative Assistant"]


@pytest.fixture
def hr_records() -> pd.DataFrame:
    """Small HR extract in the column layout of the HR dataset export."""
    rng = np.random.default_rng(7)
    n = 40
    dept_idx = rng.integers(0, len(DEPARTMENTS), size=n)
    termd = rng.integers(0, 2, size=n)
    hire_years = rng.integers(2008, 2018, size=n)
    birth_years = rng.integers(55, 95, size=n)
    df = pd.DataFrame({
        "Employee_Name": [f"Employee, {i:02d}" for i in range(n)],
        "EmpID": np.arange(10001, 10001 + n),
        "Sex": rng.choice(["M", "F"], size=n),
        "MaritalDesc": rng.choice(["Single", "Married", "Divorced"], size=n),
        "RaceDesc": rng.choice(["White", "Black or African American", "Asian"], size=n),
        "PayRate": np.round(rng.normal(30, 8, size=n).clip(12, 80), 2),
        "Department": [DEPARTMENTS[i] for i in dept_idx],
        "Position": [POSITIONS[i] for i in dept_idx],
        "DOB": [f"{rng.integers(1, 13):02d}/{rng.integers(1, 28):02d}/{y:02d}" for y in birth_years],
        "DateofHire": [f"{rng.integers(1, 13)}/{rng.integers(1, 28)}/{y}" for y in hire_years],
        "DateofTermination": [f"6/15/{y + 2}" if t else np.nan for y, t in zip(hire_years, termd)],
        "Termd": termd,
        "TermReason": ["career change" if t else "N/A-StillEmployed" for t in termd],
    })
    return df


@pytest.fixture
def two_blobs() -> np.ndarray:
    """Ten rows: two tight groups of five, far apart."""
    offsets = np.array([[0.0, 0.0], [0.1, 0.0], [0.0, 0.1], [-0.1, 0.0], [0.0, -0.1]])
    return np.vstack([offsets, offsets + 10.0])


@pytest.fixture
def blob_ids() -> list:
    return [f"E{i:02d}" for i in range(10)]


@pytest.fixture
def small_options() -> AnalysisOptions:
    return AnalysisOptions(
        continuous_columns=["PayRate", "Age", "TenureYears"],
        categorical_columns=["Sex", "Department"],
        parallel=True,
        exemplar=ExemplarOptions(damping=0.9, max_iter=300),
        density=DensityOptions(min_samples=3, eps=2.0),
        embedding=EmbeddingOptions(perplexity=5.0, max_iter=250, tsne_method='exact'),
    )
