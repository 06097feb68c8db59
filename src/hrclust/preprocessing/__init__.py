from .preprocessor import Preprocessor
from .employee_preprocessor import EmployeePreprocessor, PreprocessResult, derive_features, preprocess

__all__ = [
    "Preprocessor",
    "EmployeePreprocessor",
    "PreprocessResult",
    "derive_features",
    "preprocess",
]
