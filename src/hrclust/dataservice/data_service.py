import os
import pandas as pd
from hrclust.errors import ConfigurationError
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


class DataService:
    """Static utility class for loading and exporting tabular data"""

    @staticmethod
    def load_records(csv_path: str, id_column: str | None = None) -> pd.DataFrame:
        """Read employee records from a delimited text file."""
        if not os.path.exists(csv_path):
            raise ConfigurationError(f"input file not found: {csv_path}", stage='load',
                                     context={'path': csv_path})
        df = pd.read_csv(csv_path, low_memory=False, skipinitialspace=True)
        # Header cells in HR exports often carry trailing blanks
        df.columns = [str(c).strip() for c in df.columns]
        if id_column is not None and id_column not in df.columns:
            raise ConfigurationError(f"identifier column '{id_column}' not found in {csv_path}",
                                     stage='load', context={'column': id_column})
        logger.info(f"[+] Loaded {len(df)} records with {df.shape[1]} columns from {csv_path}")
        return df

    @staticmethod
    def info_dataset(df: pd.DataFrame = None, attrition_column: str = None):
        logger.info(f"[+] Dataset shape: {df.shape}")
        if attrition_column is not None and attrition_column in df.columns:
            logger.info(f"[+] Attrition distribution: {df[attrition_column].value_counts(dropna=False).to_dict()}")

    @staticmethod
    def missing_summary(df: pd.DataFrame, columns: list[str] | None = None) -> pd.DataFrame:
        """Per-column missing-value counts and ratios, most incomplete first."""
        cols = list(columns) if columns is not None else list(df.columns)
        counts = df[cols].isnull().sum()
        total = max(1, len(df))
        out = pd.DataFrame({
            'column': counts.index,
            'missing_count': counts.values.astype(int),
            'missing_ratio': counts.values / total,
        })
        return out.sort_values(['missing_count', 'column'], ascending=[False, True]).reset_index(drop=True)

    @staticmethod
    def export_data(df: pd.DataFrame, file_path: str):
        """Export dataframe to CSV or parquet depending on the file extension"""
        out_dir = os.path.dirname(file_path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        if file_path.endswith('.parquet'):
            df.to_parquet(file_path, engine='pyarrow', compression='snappy', index=False)
        else:
            df.to_csv(file_path, index=False)
        logger.info(f"[+] Exported {len(df)} rows -> {file_path}")
