
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set

from distcluster.distances.function import T

from ._shared import ClusterAlgorithm, is_valid_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBSCANConfig:
    """Configuration for density-based clustering.

    Attributes
    ----------
    eps:
        Neighborhood radius (inclusive). Must be positive.
    min_pts:
        Minimum neighborhood size, the point itself included, for a point to
        be a core point. Must be positive.
    """

    eps: float
    min_pts: int

    def __post_init__(self) -> None:
        if self.eps <= 0:
            raise ValueError("eps must be positive.")
        if self.min_pts <= 0:
            raise ValueError("min_pts must be positive.")


class DBSCANClusterer(ClusterAlgorithm[T]):
    """DBSCAN-style clustering by expansion from core points.

    Noise points (reachable from no core point) are left out of the result
    entirely.
    """

    def __init__(self, config: DBSCANConfig) -> None:
        self.config = config

    @property
    def eps(self) -> float:
        return self.config.eps

    @property
    def min_pts(self) -> int:
        return self.config.min_pts

    def cluster(self, data: Optional[Sequence[T]], k: int) -> List[List[T]]:
        """Find density-connected clusters in `data`; `k` is ignored."""
        if not is_valid_data(data):
            return []

        clusters: List[List[T]] = []
        visited: Set[T] = set()
        in_cluster: Set[T] = set()

        for point in data:
            if point in visited:
                continue
            visited.add(point)

            neighbors = self.region_query(point, data)
            if len(neighbors) >= self.min_pts:
                clusters.append(self._grow_cluster(point, neighbors, visited, in_cluster, data))

        logger.debug(
            "Found %d cluster(s), %d noise point(s)",
            len(clusters),
            sum(1 for p in data if p not in in_cluster),
        )
        return clusters

    def region_query(self, center: T, data: Sequence[T]) -> List[T]:
        """All members of `data` within eps of `center`, in dataset order."""
        return [p for p in data if center.distance_to(p) <= self.eps]

    def _grow_cluster(
        self,
        seed: T,
        neighbors: List[T],
        visited: Set[T],
        in_cluster: Set[T],
        data: Sequence[T],
    ) -> List[T]:
        cluster = [seed]
        in_cluster.add(seed)

        # The worklist grows while it is walked.
        queued = set(neighbors)
        i = 0
        while i < len(neighbors):
            neighbor = neighbors[i]
            i += 1

            if neighbor not in visited:
                visited.add(neighbor)
                expansion = self.region_query(neighbor, data)
                if len(expansion) >= self.min_pts:
                    for candidate in expansion:
                        if candidate not in queued:
                            queued.add(candidate)
                            neighbors.append(candidate)

            if neighbor not in in_cluster:
                cluster.append(neighbor)
                in_cluster.add(neighbor)

        return cluster
