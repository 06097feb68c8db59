from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from hrclust.configs.resources import HRResources
from hrclust.errors import ConfigurationError, DataIntegrityError, InsufficientDataError
from hrclust.preprocessing.preprocessor import Preprocessor
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)

DAYS_PER_YEAR = 365.25


@dataclass
class PreprocessResult:
    matrix: np.ndarray
    ids: list
    feature_names: list[str]
    continuous_columns: list[str]
    categorical_columns: list[str]
    dropped_rows: int = 0
    dropped_ids: list = field(default_factory=list)

    @property
    def n_rows(self) -> int:
        return int(self.matrix.shape[0])


class EmployeePreprocessor(Preprocessor):
    """Turn employee records into a standardized, dummy-encoded feature matrix.

    Rows with a missing value in any selected column (or in the identifier) are
    dropped, continuous columns are standardized on the surviving rows and each
    categorical column becomes ``k - 1`` indicator columns (first sorted level is
    the reference). The identifier column never enters the matrix.
    """

    def __init__(self, features: Sequence[str], id_column: str = HRResources.ID_COLUMN,
                 categorical_columns: Optional[Sequence[str]] = None):
        super().__init__([f for f in features if f != id_column], id_column)
        self.categorical_columns = list(categorical_columns) if categorical_columns is not None else None
        self.feature_names_: list[str] = []
        self.dropped_rows_: int = 0

    def split_feature_kinds(self, df: pd.DataFrame) -> tuple[list[str], list[str]]:
        if self.categorical_columns is not None:
            cat = [c for c in self.features if c in self.categorical_columns]
            cont = [c for c in self.features if c not in self.categorical_columns]
            return cont, cat
        cont, cat = [], []
        for c in self.features:
            col = df[c]
            if pd.api.types.is_numeric_dtype(col) and not pd.api.types.is_bool_dtype(col):
                cont.append(c)
            else:
                cat.append(c)
        return cont, cat

    def _as_numeric(self, df: pd.DataFrame, column: str) -> np.ndarray:
        col = df[column]
        if pd.api.types.is_bool_dtype(col):
            return col.astype(np.float64).to_numpy()
        coerced = pd.to_numeric(col, errors='coerce')
        bad = coerced.isnull() & col.notnull()
        if bad.any():
            bad_ids = df.loc[bad, self.id_column].tolist()[:5]
            raise DataIntegrityError(
                f"continuous column '{column}' holds non-numeric values (e.g. {col[bad].tolist()[:3]})",
                stage='preprocess', context={'column': column, 'ids': bad_ids})
        return coerced.to_numpy(dtype=np.float64)

    def standardize(self, df: pd.DataFrame) -> np.ndarray:
        values = np.column_stack([self._as_numeric(df, c) for c in self.cont_features])
        scaler = StandardScaler()
        Z = scaler.fit_transform(values)
        # Constant columns map to exactly zero instead of rounding residue
        constant = np.ptp(values, axis=0) == 0
        if constant.any():
            logger.debug(f"[+] Zero-variance columns set to 0: {[c for c, k in zip(self.cont_features, constant) if k]}")
            Z[:, constant] = 0.0
        return Z

    def encode_categorical(self, df: pd.DataFrame) -> tuple[list[np.ndarray], list[str]]:
        blocks: list[np.ndarray] = []
        names: list[str] = []
        for c in self.cat_features:
            values = df[c].astype(str).str.strip()
            categories = sorted(values.unique())
            if len(categories) < 2:
                logger.debug(f"[+] Categorical column '{c}' has a single level, no indicator columns")
                continue
            encoder = OneHotEncoder(categories=[categories], drop='first', sparse_output=False,
                                    dtype=np.float64)
            blocks.append(encoder.fit_transform(values.to_frame()))
            names.extend(f"{c}={cat}" for cat in categories[1:])
        return blocks, names

    def fit_transform(self, records: pd.DataFrame) -> PreprocessResult:
        df = records if isinstance(records, pd.DataFrame) else pd.DataFrame(list(records))
        self.check_columns(df, self.features + [self.id_column])
        self.cont_features, self.cat_features = self.split_feature_kinds(df)
        if not self.cont_features:
            raise ConfigurationError("selected columns must include at least one continuous column",
                                     stage='preprocess', context={'columns': self.features})

        subset = df[[self.id_column] + self.features].reset_index(drop=True)
        if self.check_duplicates(subset, self.id_column):
            logger.warning(f"[!] Identifier column '{self.id_column}' holds duplicated values, "
                           f"results are joined back by occurrence")
        if self.check_missing_and_inf_values(subset):
            kept = self.remove_missing_and_inf_values(subset, [self.id_column] + self.features)
        else:
            kept = subset
        dropped_mask = ~subset.index.isin(kept.index)
        self.dropped_rows_ = int(dropped_mask.sum())
        dropped_ids = subset.loc[dropped_mask, self.id_column].tolist()
        if self.dropped_rows_:
            logger.info(f"[+] Dropped {self.dropped_rows_} / {len(subset)} rows with missing values in selected columns")
        if kept.empty:
            raise InsufficientDataError("no rows left after dropping rows with missing values",
                                        stage='preprocess', context={'dropped_rows': self.dropped_rows_})

        kept = kept.reset_index(drop=True)
        parts = [self.standardize(kept)]
        cat_blocks, cat_names = self.encode_categorical(kept)
        parts.extend(cat_blocks)
        matrix = np.ascontiguousarray(np.hstack(parts), dtype=np.float64)
        self.feature_names_ = list(self.cont_features) + cat_names

        ids = kept[self.id_column].tolist()
        if len(ids) != matrix.shape[0]:
            raise DataIntegrityError(f"identifier count {len(ids)} != matrix rows {matrix.shape[0]}",
                                     stage='preprocess')
        logger.info(f"[+] Feature matrix: rows={matrix.shape[0]}, cols={matrix.shape[1]} "
                    f"(continuous={len(self.cont_features)}, indicators={len(cat_names)})")
        return PreprocessResult(
            matrix=matrix,
            ids=ids,
            feature_names=list(self.feature_names_),
            continuous_columns=list(self.cont_features),
            categorical_columns=list(self.cat_features),
            dropped_rows=self.dropped_rows_,
            dropped_ids=dropped_ids,
        )


def preprocess(records, selected_columns: Sequence[str], categorical_columns: Optional[Sequence[str]] = None,
               id_column: str = HRResources.ID_COLUMN) -> tuple[np.ndarray, list]:
    """Return (feature matrix, identifier list) for the selected columns."""
    result = EmployeePreprocessor(selected_columns, id_column=id_column,
                                  categorical_columns=categorical_columns).fit_transform(records)
    return result.matrix, result.ids


def _years_between(start: pd.Series, end) -> pd.Series:
    return (end - start).dt.days / DAYS_PER_YEAR


def derive_features(records: pd.DataFrame, reference_date=None, resources=HRResources) -> pd.DataFrame:
    """Append Age and TenureYears computed from the record dates to a copy of ``records``."""
    df = records.copy()
    ref = pd.Timestamp(reference_date) if reference_date is not None else pd.Timestamp.today().normalize()

    if resources.DOB_COLUMN in df.columns:
        dob = pd.to_datetime(df[resources.DOB_COLUMN], errors='coerce', format='mixed')
        # Two-digit years such as 07/10/55 parse as 2055
        future = dob > ref
        if future.any():
            dob = dob.where(~future, dob - pd.DateOffset(years=100))
        df[resources.AGE_COLUMN] = _years_between(dob, ref)
    else:
        logger.debug(f"[-] No '{resources.DOB_COLUMN}' column, skipping {resources.AGE_COLUMN}")

    if resources.HIRE_DATE_COLUMN in df.columns:
        hired = pd.to_datetime(df[resources.HIRE_DATE_COLUMN], errors='coerce', format='mixed')
        if resources.TERMINATION_DATE_COLUMN in df.columns:
            ended = pd.to_datetime(df[resources.TERMINATION_DATE_COLUMN], errors='coerce', format='mixed')
            ended = ended.fillna(ref)
        else:
            ended = pd.Series(ref, index=df.index)
        df[resources.TENURE_COLUMN] = _years_between(hired, ended)
    else:
        logger.debug(f"[-] No '{resources.HIRE_DATE_COLUMN}' column, skipping {resources.TENURE_COLUMN}")
    return df
