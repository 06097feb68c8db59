import time

import numpy as np
import umap

from hrclust.configs.options import EmbeddingOptions, override
from hrclust.embedding.base import Embedder, Embedding2D
from hrclust.errors import InsufficientDataError
from hrclust.utils.logging import get_logger
from hrclust.utils.validation import check_matrix

logger = get_logger(__name__)


class UMAPEmbedder(Embedder):
    name = 'umap'

    def __init__(self, options: EmbeddingOptions | None = None, **params):
        base = options if options is not None else EmbeddingOptions()
        self.options = override(base, **{**params, 'method': self.name})
        self.options.validate()

    def validate(self, X: np.ndarray) -> None:
        if X.shape[0] < 3:
            raise InsufficientDataError(f"UMAP needs at least 3 rows, got {X.shape[0]}", stage='embed',
                                        context={'rows': int(X.shape[0])})

    def fit_embed(self, matrix) -> Embedding2D:
        X = check_matrix(matrix, stage='embed')
        self.validate(X)
        n = X.shape[0]
        n_neighbors = min(int(self.options.n_neighbors), n - 1)
        params = {'n_neighbors': n_neighbors, 'min_dist': float(self.options.min_dist), 'metric': 'euclidean'}
        um = umap.UMAP(
            n_components=self.options.n_components,
            n_neighbors=n_neighbors,
            min_dist=params['min_dist'],
            metric=params['metric'],
            random_state=int(self.options.seed),
        )
        start = time.time()
        Z2 = um.fit_transform(X)
        logger.info(f"[+] UMAP done: shape={Z2.shape} in {time.time() - start:.2f} seconds")
        return Embedding2D(coords=Z2, method=self.name, seed=int(self.options.seed), params=params)
