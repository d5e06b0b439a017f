from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .function import require_other


PType = float | int


@dataclass(frozen=True)
class Point2D:
    """A point in the plane, compared by coordinates."""

    x: float
    y: float

    def distance_to(self, other: Point2D) -> float:
        """Euclidean distance to another point."""
        require_other(other)
        return float(np.hypot(self.x - other.x, self.y - other.y))

    def __str__(self) -> str:
        return f"({self.x:.2f}, {self.y:.2f})"


@dataclass(frozen=True)
class VectorPoint:
    """A point in d-dimensional space under the Minkowski distance.

    Attributes
    ----------
    coords:
        Coordinates as a tuple of floats (tuples keep the point hashable).
    p:
        Norm order (p >= 1). Common choices:
        - p=1: Manhattan
        - p=2: Euclidean
    """

    coords: Tuple[float, ...]
    p: PType = 2.0

    def __post_init__(self) -> None:
        if self.p < 1:
            raise ValueError("Minkowski parameter p must satisfy p >= 1.")
        object.__setattr__(self, "coords", tuple(float(c) for c in self.coords))

    @property
    def dimension(self) -> int:
        return len(self.coords)

    def distance_to(self, other: VectorPoint) -> float:
        """Compute the Minkowski distance of order ``self.p`` to `other`."""
        require_other(other)
        if other.dimension != self.dimension:
            raise ValueError(
                f"Dimension mismatch: {self.dimension} != {other.dimension}."
            )

        diff = np.asarray(self.coords, dtype=float) - np.asarray(other.coords, dtype=float)
        if self.p == 1:
            return float(np.sum(np.abs(diff)))
        if self.p == 2:
            return float(np.sqrt(np.sum(diff * diff)))
        abs_p = np.abs(diff) ** self.p
        return float(np.sum(abs_p) ** (1.0 / self.p))


def points_from_array(X: np.ndarray, p: PType = 2.0) -> List[VectorPoint]:
    """Wrap each row of an (n_samples, n_features) array into a VectorPoint."""
    X = np.asarray(X, dtype=float)
    if X.ndim != 2:
        raise ValueError("Expected an array of shape (n_samples, n_features).")
    return [VectorPoint(tuple(row.tolist()), p=p) for row in X]
