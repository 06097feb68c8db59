from typing import Any, Optional

import numpy as np
from sklearn.cluster import DBSCAN

from hrclust.clustering.base import ClusterAssignment, ClusteringAlgorithm
from hrclust.configs.options import DensityOptions
from hrclust.errors import InsufficientDataError
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


class DBSCANClustering(ClusteringAlgorithm):
    """Density clustering over Euclidean distance.

    ``min_samples`` and ``eps`` (the neighborhood radius) come from
    configuration only. Rows that are not density-reachable from a core row get
    ``NOISE_LABEL``.
    """

    name = 'density'
    allows_noise = True

    def __init__(self, min_samples: int = 5, eps: Optional[float] = None):
        self.options = DensityOptions(min_samples=min_samples,
                                      eps=DensityOptions.eps if eps is None else eps)
        self.options.validate()

    def get_params(self) -> dict[str, Any]:
        return {'min_samples': int(self.options.min_samples), 'eps': float(self.options.eps),
                'metric': 'euclidean'}

    def validate(self, X: np.ndarray) -> None:
        if X.shape[0] < self.options.min_samples:
            raise InsufficientDataError(
                f"density clustering needs at least min_samples={self.options.min_samples} rows, got {X.shape[0]}",
                stage='cluster', context={'algorithm': self.name, 'rows': int(X.shape[0]),
                                          'min_samples': int(self.options.min_samples)})

    def _fit(self, X: np.ndarray):
        model = DBSCAN(eps=self.options.eps, min_samples=int(self.options.min_samples), metric='euclidean')
        labels = model.fit_predict(X)
        return np.asarray(labels, dtype=np.int64), [], []


def cluster_density(matrix, min_samples: int, radius: Optional[float] = None) -> ClusterAssignment:
    return DBSCANClustering(min_samples=min_samples, eps=radius).fit_label(matrix)
