import pandas as pd
import numpy as np
from hrclust.errors import ConfigurationError
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


class Preprocessor:
    def __init__(self, features: list[str], id_column: str):
        self.features = list(features)
        self.id_column = id_column
        self.cat_features: list[str] = []
        self.cont_features: list[str] = []

    def check_columns(self, df: pd.DataFrame, columns: list[str]) -> None:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise ConfigurationError(f"selected columns not found in records: {missing}",
                                     stage='preprocess', context={'columns': missing})

    def remove_missing_and_inf_values(self, df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
        """Drop all rows holding NaN or infinite values in the given columns"""
        logger.debug(f"[+] Cleaning missing and infinite values from {df.shape[0]} rows")
        subset = df[columns]
        numeric = subset.select_dtypes(include=[np.number])
        bad = subset.isnull().any(axis=1)
        if not numeric.empty:
            bad |= np.isinf(numeric).any(axis=1)
        result_df = df[~bad]
        logger.debug(f"[+] to {result_df.shape[0]} rows")
        return result_df

    def check_missing_and_inf_values(self, df: pd.DataFrame) -> bool:
        """Check if the dataframe contains any missing values (NaN) or infinite values (+inf or -inf)"""
        has_missing = df.isnull().any().any()
        has_inf = np.isinf(df.select_dtypes(include=[np.number])).any().any()
        return bool(has_missing or has_inf)

    def check_duplicates(self, df: pd.DataFrame, column: str) -> bool:
        """Check if a column holds duplicated values"""
        return bool(df[column].duplicated().any())
