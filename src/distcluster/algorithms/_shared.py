
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, List, Optional, Sequence

from distcluster.distances.function import T


class ClusterAlgorithm(ABC, Generic[T]):
    """Uniform contract shared by every clustering algorithm."""

    @abstractmethod
    def cluster(self, data: Optional[Sequence[T]], k: int) -> List[List[T]]:
        """Group `data` into clusters.

        Parameters
        ----------
        data:
            Elements to cluster. ``None`` or an empty sequence yields ``[]``.
        k:
            Number of clusters. Only meaningful to partition algorithms.
        """


def is_valid_data(data: Optional[Sequence[T]]) -> bool:
    return data is not None and len(data) > 0


def is_valid_k(k: int) -> bool:
    return k > 0


def create_empty_clusters(k: int) -> List[List[T]]:
    """Return k independent empty clusters."""
    return [[] for _ in range(k)]


def total_distance(point: T, group: Sequence[T]) -> float:
    """Sum of distances from `point` to every member of `group`."""
    total = 0.0
    for other in group:
        total += point.distance_to(other)
    return total


def find_center_point(group: Optional[Sequence[T]]) -> Optional[T]:
    """Return the medoid of `group`: the member with minimum total distance.

    Ties go to the earliest member. Returns ``None`` for an empty group.
    """
    if not group:
        return None

    best = group[0]
    best_total = float("inf")
    for candidate in group:
        candidate_total = total_distance(candidate, group)
        if candidate_total < best_total:
            best_total = candidate_total
            best = candidate
    return best
