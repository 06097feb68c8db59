import warnings
from typing import Any, Optional

import numpy as np
from sklearn.cluster import AffinityPropagation
from sklearn.exceptions import ConvergenceWarning as SklearnConvergenceWarning
from sklearn.metrics import pairwise_distances

from hrclust.clustering.base import ClusterAssignment, ClusteringAlgorithm
from hrclust.configs.options import ExemplarOptions
from hrclust.errors import ConvergenceWarning
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


class AffinityPropagationClustering(ClusteringAlgorithm):
    """Exemplar clustering: the algorithm elects its own exemplars, so the
    cluster count is discovered from the data. Every row gets a non-negative label.
    """

    name = 'exemplar'
    allows_noise = False

    def __init__(self, damping: float = 0.5, max_iter: int = 200, convergence_iter: int = 15,
                 preference: Optional[float] = None, random_state: int = 42):
        self.options = ExemplarOptions(damping=damping, max_iter=max_iter, convergence_iter=convergence_iter,
                                       preference=preference, random_state=random_state)
        self.options.validate()

    def get_params(self) -> dict[str, Any]:
        return {
            'damping': float(self.options.damping),
            'max_iter': int(self.options.max_iter),
            'convergence_iter': int(self.options.convergence_iter),
            'preference': self.options.preference,
            'random_state': int(self.options.random_state),
        }

    @staticmethod
    def _medoid(X: np.ndarray) -> int:
        d2 = pairwise_distances(X, metric='sqeuclidean')
        return int(np.argmin(d2.sum(axis=1)))

    def _fit(self, X: np.ndarray):
        model = AffinityPropagation(
            damping=self.options.damping,
            max_iter=self.options.max_iter,
            convergence_iter=self.options.convergence_iter,
            preference=self.options.preference,
            affinity='euclidean',
            random_state=self.options.random_state,
        )
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always', SklearnConvergenceWarning)
            labels = model.fit_predict(X)

        messages: list[str] = []
        for w in caught:
            if issubclass(w.category, SklearnConvergenceWarning):
                messages.append(f"affinity propagation: {w.message} (n_iter={model.n_iter_}, "
                                f"max_iter={self.options.max_iter})")
            else:
                warnings.warn(w.message, w.category)

        exemplars = [int(i) for i in np.asarray(model.cluster_centers_indices_, dtype=np.int64)]
        labels = np.asarray(labels, dtype=np.int64)
        if not exemplars or (labels < 0).any():
            # No exemplar was elected: best current assignment is one cluster around the medoid
            medoid = self._medoid(X)
            labels = np.zeros(X.shape[0], dtype=np.int64)
            exemplars = [medoid]
            messages.append(f"affinity propagation elected no exemplars; assigned all rows to one cluster "
                            f"around medoid row {medoid}")

        for msg in messages:
            logger.warning(f"[!] {msg}")
            warnings.warn(msg, ConvergenceWarning, stacklevel=2)
        return labels, exemplars, messages


def cluster_exemplar(matrix, damping: float = 0.5, max_iter: int = 200, convergence_iter: int = 15,
                     preference: Optional[float] = None, random_state: int = 42) -> ClusterAssignment:
    return AffinityPropagationClustering(damping=damping, max_iter=max_iter, convergence_iter=convergence_iter,
                                         preference=preference, random_state=random_state).fit_label(matrix)
