import json
from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from hrclust.configs.resources import HRResources
from hrclust.errors import ConfigurationError
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


DEFAULT_SEED = 42
TRANSPORTS = ('inprocess', 'process')


@dataclass
class ExemplarOptions:
    damping: float = 0.5
    max_iter: int = 200
    convergence_iter: int = 15
    preference: Optional[float] = None
    random_state: int = DEFAULT_SEED

    def validate(self) -> None:
        if not 0.5 <= self.damping < 1.0:
            raise ConfigurationError(f"damping must be in [0.5, 1.0), got {self.damping}",
                                     stage='config', context={'param': 'damping'})
        if self.max_iter < 1:
            raise ConfigurationError(f"max_iter must be >= 1, got {self.max_iter}",
                                     stage='config', context={'param': 'max_iter'})
        if self.convergence_iter < 1:
            raise ConfigurationError(f"convergence_iter must be >= 1, got {self.convergence_iter}",
                                     stage='config', context={'param': 'convergence_iter'})


@dataclass
class DensityOptions:
    min_samples: int = 5
    eps: float = 0.5

    def validate(self) -> None:
        if isinstance(self.min_samples, bool) or int(self.min_samples) != self.min_samples or self.min_samples < 1:
            raise ConfigurationError(f"min_samples must be a positive integer, got {self.min_samples}",
                                     stage='config', context={'param': 'min_samples'})
        if not self.eps > 0:
            raise ConfigurationError(f"eps (neighborhood radius) must be > 0, got {self.eps}",
                                     stage='config', context={'param': 'eps'})


@dataclass
class EmbeddingOptions:
    method: str = 'tsne'
    n_components: int = 2
    seed: int = DEFAULT_SEED
    perplexity: float = 30.0
    learning_rate: float | str = 'auto'
    max_iter: int = 1000
    tsne_method: str = 'barnes_hut'
    n_neighbors: int = 15
    min_dist: float = 0.1

    def validate(self) -> None:
        if self.n_components != 2:
            raise ConfigurationError(f"embedding must have exactly 2 dimensions, got {self.n_components}",
                                     stage='config', context={'param': 'n_components'})
        if self.method not in ('tsne', 'umap'):
            raise ConfigurationError(f"unknown embedding method: {self.method}",
                                     stage='config', context={'param': 'method'})
        if self.perplexity <= 0:
            raise ConfigurationError(f"perplexity must be > 0, got {self.perplexity}",
                                     stage='config', context={'param': 'perplexity'})
        if self.max_iter < 250:
            # sklearn's TSNE rejects fewer iterations
            raise ConfigurationError(f"max_iter must be >= 250, got {self.max_iter}",
                                     stage='config', context={'param': 'max_iter'})
        if self.tsne_method not in ('barnes_hut', 'exact'):
            raise ConfigurationError(f"unknown t-SNE method: {self.tsne_method}",
                                     stage='config', context={'param': 'tsne_method'})


@dataclass
class AnalysisOptions:
    id_column: str = HRResources.ID_COLUMN
    attrition_column: str = HRResources.ATTRITION_COLUMN
    reason_column: Optional[str] = HRResources.REASON_COLUMN
    continuous_columns: list[str] = field(default_factory=lambda: list(HRResources.CONTINUOUS_FEATURES))
    categorical_columns: list[str] = field(default_factory=lambda: list(HRResources.CATEGORICAL_FEATURES))
    derive_dates: bool = True
    parallel: bool = True
    transport: str = 'inprocess'
    summary_by: str = 'density'
    exemplar: ExemplarOptions = field(default_factory=ExemplarOptions)
    density: DensityOptions = field(default_factory=DensityOptions)
    embedding: EmbeddingOptions = field(default_factory=EmbeddingOptions)

    @property
    def selected_columns(self) -> list[str]:
        return list(self.continuous_columns) + list(self.categorical_columns)

    def validate(self) -> None:
        if not self.continuous_columns:
            raise ConfigurationError("at least one continuous column must be selected",
                                     stage='config', context={'param': 'continuous_columns'})
        overlap = set(self.continuous_columns) & set(self.categorical_columns)
        if overlap:
            raise ConfigurationError(f"columns cannot be both continuous and categorical: {sorted(overlap)}",
                                     stage='config', context={'columns': sorted(overlap)})
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(f"unknown transport: {self.transport}",
                                     stage='config', context={'param': 'transport'})
        if self.summary_by not in ('density', 'exemplar'):
            raise ConfigurationError(f"summary_by must be 'density' or 'exemplar', got {self.summary_by}",
                                     stage='config', context={'param': 'summary_by'})
        self.exemplar.validate()
        self.density.validate()
        self.embedding.validate()


_NESTED = {
    'exemplar': ExemplarOptions,
    'density': DensityOptions,
    'embedding': EmbeddingOptions,
}


def _apply(obj, overrides: dict[str, Any], where: str):
    known = {f.name for f in fields(obj)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigurationError(f"unknown {where} parameters: {unknown}",
                                 stage='config', context={'keys': unknown})
    return replace(obj, **overrides)


def options_from_dict(params: dict[str, Any], base: Optional[AnalysisOptions] = None) -> AnalysisOptions:
    """Build AnalysisOptions from a nested dict (top-level fields + exemplar/density/embedding)."""
    opts = base if base is not None else AnalysisOptions()
    top = {k: v for k, v in params.items() if k not in _NESTED}
    nested = {}
    for key in _NESTED:
        if key in params:
            if not isinstance(params[key], dict):
                raise ConfigurationError(f"'{key}' parameters must be an object",
                                         stage='config', context={'param': key})
            nested[key] = _apply(getattr(opts, key), params[key], key)
    return _apply(opts, {**top, **nested}, 'analysis')


def load_params(path: str, base: Optional[AnalysisOptions] = None) -> AnalysisOptions:
    with open(path, 'r') as f:
        params = json.load(f)
    logger.debug(f"[+] Loaded params from {path}: {sorted(params)}")
    return options_from_dict(params, base=base)


def override(options, **params):
    """Copy an options dataclass with some fields replaced; unknown names are rejected."""
    return _apply(options, params, type(options).__name__)
