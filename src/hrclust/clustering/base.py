from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from hrclust.embedding.base import Embedding2D
from hrclust.errors import ConfigurationError, DataIntegrityError
from hrclust.utils.validation import check_matrix
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)

NOISE_LABEL = -1


@dataclass
class ClusterAssignment:
    """One integer label per feature-matrix row.

    ``NOISE_LABEL`` is only legal when ``allows_noise`` is set (density
    clustering); ``warnings`` holds non-fatal conditions such as convergence
    problems.
    """
    algorithm: str
    labels: np.ndarray
    params: dict[str, Any] = field(default_factory=dict)
    exemplars: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    allows_noise: bool = False

    def __post_init__(self) -> None:
        self.labels = np.asarray(self.labels, dtype=np.int64)
        if self.labels.ndim != 1:
            raise DataIntegrityError(f"labels must be 1-D, got shape {self.labels.shape}",
                                     stage='cluster', context={'algorithm': self.algorithm})
        floor = NOISE_LABEL if self.allows_noise else 0
        if self.labels.size and int(self.labels.min()) < floor:
            raise DataIntegrityError(f"{self.algorithm} produced labels below {floor}",
                                     stage='cluster', context={'algorithm': self.algorithm})

    def __len__(self) -> int:
        return int(self.labels.shape[0])

    @property
    def noise_mask(self) -> np.ndarray:
        return self.labels == NOISE_LABEL

    @property
    def n_noise(self) -> int:
        return int(self.noise_mask.sum())

    @property
    def n_clusters(self) -> int:
        return int(np.unique(self.labels[~self.noise_mask]).size)

    @property
    def converged(self) -> bool:
        return not self.warnings


class ClusteringAlgorithm(ABC):
    """Fit-and-label strategy: one fit over the full matrix, one label per row."""

    name: str = ""
    allows_noise: bool = False

    def validate(self, X: np.ndarray) -> None:
        """Hook for parameter/data checks that must run before fitting."""

    @abstractmethod
    def get_params(self) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def _fit(self, X: np.ndarray) -> tuple[np.ndarray, list[int], list[str]]:
        """Return (labels, exemplar indices, warning messages)."""
        raise NotImplementedError

    def fit_label(self, matrix) -> ClusterAssignment:
        if isinstance(matrix, Embedding2D):
            raise ConfigurationError("embedded coordinates are for visualization only and cannot be clustered",
                                     stage='cluster', context={'algorithm': self.name})
        X = check_matrix(matrix, stage='cluster')
        self.validate(X)
        start = time.time()
        logger.debug(f"[{self.name}] Fitting on rows={X.shape[0]}, cols={X.shape[1]} params={self.get_params()}")
        try:
            labels, exemplars, messages = self._fit(X)
        except ValueError as e:
            raise ConfigurationError(f"{self.name} clustering rejected its parameters: {e}",
                                     stage='cluster', context={'algorithm': self.name}) from e
        assignment = ClusterAssignment(
            algorithm=self.name,
            labels=labels,
            params=self.get_params(),
            exemplars=list(exemplars),
            warnings=list(messages),
            allows_noise=self.allows_noise,
        )
        if len(assignment) != X.shape[0]:
            raise DataIntegrityError(f"{self.name} returned {len(assignment)} labels for {X.shape[0]} rows",
                                     stage='cluster', context={'algorithm': self.name})
        logger.info(f"[{self.name}] clusters={assignment.n_clusters}, noise={assignment.n_noise} "
                    f"in {time.time() - start:.2f} seconds")
        return assignment
