from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from hrclust.errors import DataIntegrityError


@dataclass
class Embedding2D:
    """(x, y) coordinates per feature-matrix row, for plotting only."""
    coords: np.ndarray
    method: str
    seed: int
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.coords = np.asarray(self.coords, dtype=np.float64)
        if self.coords.ndim != 2 or self.coords.shape[1] != 2:
            raise DataIntegrityError(f"embedding must have shape (n, 2), got {self.coords.shape}",
                                     stage='embed', context={'method': self.method})

    def __len__(self) -> int:
        return int(self.coords.shape[0])

    @property
    def x(self) -> np.ndarray:
        return self.coords[:, 0]

    @property
    def y(self) -> np.ndarray:
        return self.coords[:, 1]


class Embedder(ABC):
    """Fit-and-embed strategy projecting a feature matrix onto two dimensions."""

    name: str = ""

    def validate(self, X: np.ndarray) -> None:
        """Row-count checks that must pass before fitting."""

    @abstractmethod
    def fit_embed(self, matrix) -> Embedding2D:
        raise NotImplementedError
