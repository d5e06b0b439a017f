
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from distcluster.distances.function import T

from ._shared import (
    ClusterAlgorithm,
    create_empty_clusters,
    find_center_point,
    is_valid_data,
    is_valid_k,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KMeansConfig:
    """Configuration for the medoid-based partition algorithm.

    Attributes
    ----------
    random_state:
        Seed for center initialization. ``None`` gives a non-deterministic run.
    max_iter:
        Maximum number of assign/re-center iterations.
    """

    random_state: int | None = None
    max_iter: int = 100

    def __post_init__(self) -> None:
        if self.max_iter <= 0:
            raise ValueError("max_iter must be positive.")


class KMeansClusterer(ClusterAlgorithm[T]):
    """K-Means-style partitioning over any element exposing ``distance_to``.

    Centers are always members of the dataset: each iteration moves a
    cluster's center to the medoid of its members instead of averaging
    coordinates. This is closer to K-Medoids than to textbook K-Means, and
    works for elements that have no notion of addition.

    The random generator is created once per instance, so repeated calls on a
    seeded instance continue the same stream. Instances are not safe for
    concurrent use.
    """

    def __init__(self, config: KMeansConfig | None = None) -> None:
        if config is None:
            config = KMeansConfig()
        self.config = config
        self._rng = np.random.default_rng(config.random_state)

    def cluster(self, data: Optional[Sequence[T]], k: int) -> List[List[T]]:
        """Partition `data` into `k` clusters.

        Returns ``[]`` for missing/empty data or ``k <= 0``. When ``k`` is at
        least the number of elements, every element becomes its own cluster in
        dataset order. Otherwise exactly ``k`` clusters are returned, some of
        which may be empty.
        """
        if not is_valid_data(data) or not is_valid_k(k):
            return []

        if k >= len(data):
            return [[item] for item in data]

        centers = self._pick_random_centers(data, k)
        clusters: List[List[T]] = []

        for iteration in range(self.config.max_iter):
            clusters = create_empty_clusters(k)
            for item in data:
                clusters[_closest_center(item, centers)].append(item)

            new_centers = [
                centers[j] if not members else find_center_point(members)
                for j, members in enumerate(clusters)
            ]

            if _centers_are_same(centers, new_centers):
                logger.debug("Partition converged after %d iteration(s)", iteration + 1)
                break

            centers = new_centers
        else:
            logger.debug("Partition stopped at max_iter=%d without converging", self.config.max_iter)

        return clusters

    def _pick_random_centers(self, data: Sequence[T], k: int) -> List[T]:
        """Draw k distinct dataset members as initial centers."""
        indices = self._rng.choice(len(data), size=k, replace=False)
        return [data[int(i)] for i in indices]


def _closest_center(item: T, centers: Sequence[T]) -> int:
    """Index of the nearest center (lowest index on ties)."""
    closest = 0
    min_dist = float("inf")
    for i, center in enumerate(centers):
        dist = item.distance_to(center)
        if dist < min_dist:
            min_dist = dist
            closest = i
    return closest


def _centers_are_same(old: Sequence[T], new: Sequence[T]) -> bool:
    if len(old) != len(new):
        return False
    return all(a == b for a, b in zip(old, new))
