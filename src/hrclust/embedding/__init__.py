from .base import Embedder, Embedding2D
from .tsne import TSNEEmbedder
from hrclust.configs.options import EmbeddingOptions
from hrclust.errors import ConfigurationError


def get_embedder(method: str = 'tsne', options: EmbeddingOptions | None = None, **params) -> Embedder:
    """Instantiate an embedding strategy; umap-learn is only imported when asked for."""
    if method == 'tsne':
        return TSNEEmbedder(options, **params)
    if method == 'umap':
        from .umap_embedder import UMAPEmbedder
        return UMAPEmbedder(options, **params)
    raise ConfigurationError(f"unknown embedding method: {method}", stage='config',
                             context={'choices': ['tsne', 'umap']})


def embed_2d(matrix, seed: int = 42, method: str = 'tsne', **params) -> Embedding2D:
    return get_embedder(method, seed=seed, **params).fit_embed(matrix)


__all__ = [
    "Embedder",
    "Embedding2D",
    "TSNEEmbedder",
    "get_embedder",
    "embed_2d",
]
