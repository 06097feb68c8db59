import numpy as np

from hrclust.errors import DataIntegrityError, InsufficientDataError


def check_matrix(matrix, stage: str) -> np.ndarray:
    """Validate a feature matrix and return it as a float64 array."""
    X = np.asarray(matrix, dtype=np.float64)
    if X.ndim != 2:
        raise DataIntegrityError(f"feature matrix must be 2-D, got shape {X.shape}", stage=stage)
    if X.shape[0] == 0:
        raise InsufficientDataError("feature matrix has no rows", stage=stage)
    finite = np.isfinite(X).all(axis=1)
    if not finite.all():
        rows = np.where(~finite)[0][:5].tolist()
        raise DataIntegrityError("feature matrix holds non-finite values", stage=stage, context={'rows': rows})
    return X
