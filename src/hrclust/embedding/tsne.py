import time
from typing import Any

import numpy as np
from sklearn.manifold import TSNE

from hrclust.configs.options import EmbeddingOptions, override
from hrclust.embedding.base import Embedder, Embedding2D
from hrclust.errors import ConfigurationError, InsufficientDataError
from hrclust.utils.logging import get_logger
from hrclust.utils.validation import check_matrix

logger = get_logger(__name__)


class TSNEEmbedder(Embedder):
    name = 'tsne'

    def __init__(self, options: EmbeddingOptions | None = None, **params):
        base = options if options is not None else EmbeddingOptions()
        self.options = override(base, **{**params, 'method': self.name})
        self.options.validate()

    def _effective_perplexity(self, n_rows: int) -> float:
        perplexity = float(self.options.perplexity)
        if perplexity < n_rows:
            return perplexity
        # TSNE requires perplexity < n_samples
        clamped = max(1.0, (n_rows - 1) / 3.0)
        logger.warning(f"[!] perplexity={perplexity} too large for {n_rows} rows, using {clamped:.2f}")
        return clamped

    def get_params(self, n_rows: int) -> dict[str, Any]:
        return {
            'perplexity': self._effective_perplexity(n_rows),
            'learning_rate': self.options.learning_rate,
            'max_iter': int(self.options.max_iter),
            'method': self.options.tsne_method,
        }

    def validate(self, X: np.ndarray) -> None:
        if X.shape[0] < 2:
            raise InsufficientDataError(f"t-SNE needs at least 2 rows, got {X.shape[0]}", stage='embed',
                                        context={'rows': int(X.shape[0])})

    def fit_embed(self, matrix) -> Embedding2D:
        X = check_matrix(matrix, stage='embed')
        self.validate(X)
        n = X.shape[0]
        params = self.get_params(n)
        tsne = TSNE(
            n_components=self.options.n_components,
            perplexity=params['perplexity'],
            learning_rate=params['learning_rate'],
            max_iter=params['max_iter'],
            init='pca' if X.shape[1] >= 2 else 'random',
            random_state=int(self.options.seed),
            method=params['method'],
            angle=0.5,
            verbose=0,
        )
        start = time.time()
        try:
            Z2 = tsne.fit_transform(X)
        except ValueError as e:
            raise ConfigurationError(f"t-SNE rejected its parameters: {e}", stage='embed') from e
        logger.info(f"[+] t-SNE done: shape={Z2.shape} in {time.time() - start:.2f} seconds")
        return Embedding2D(coords=Z2, method=self.name, seed=int(self.options.seed), params=params)
