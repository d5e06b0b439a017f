from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import List

import numpy as np
import pytest

from distcluster.algorithms import (
    ClusterAlgorithm,
    DBSCANClusterer,
    DBSCANConfig,
    KMeansClusterer,
    KMeansConfig,
)
from distcluster.algorithms._shared import (
    create_empty_clusters,
    find_center_point,
    is_valid_data,
    is_valid_k,
    total_distance,
)
from distcluster.algorithms.kmeans import _closest_center
from distcluster.distances import Point2D, points_from_array


def _three_groups() -> List[Point2D]:
    return [
        Point2D(0, 0), Point2D(1, 1), Point2D(0, 1),
        Point2D(10, 10), Point2D(11, 11), Point2D(10, 11),
        Point2D(100, 100), Point2D(101, 101), Point2D(100, 101),
    ]


def _two_squares() -> List[Point2D]:
    return [
        Point2D(0, 0), Point2D(0, 1), Point2D(1, 0), Point2D(1, 1),
        Point2D(10, 10), Point2D(10, 11), Point2D(11, 10), Point2D(11, 11),
    ]


def _flatten(clusters: List[List[Point2D]]) -> List[Point2D]:
    return [p for c in clusters for p in c]


# Shared helpers


def test_validation_helpers() -> None:
    assert not is_valid_data(None)
    assert not is_valid_data([])
    assert is_valid_data([Point2D(0, 0)])
    assert not is_valid_k(0)
    assert not is_valid_k(-2)
    assert is_valid_k(1)


def test_create_empty_clusters_are_independent() -> None:
    clusters = create_empty_clusters(3)
    clusters[0].append(Point2D(0, 0))
    assert [len(c) for c in clusters] == [1, 0, 0]


def test_total_distance_and_medoid() -> None:
    line = [Point2D(0, 0), Point2D(1, 0), Point2D(2, 0), Point2D(10, 0)]
    assert np.isclose(total_distance(line[0], line), 13.0)
    assert find_center_point(line) == Point2D(1, 0)
    assert find_center_point([]) is None
    assert find_center_point(None) is None


def test_medoid_ties_go_to_first_member() -> None:
    pair = [Point2D(5, 5), Point2D(6, 5)]
    assert find_center_point(pair) == Point2D(5, 5)


# Partition algorithm


def test_kmeans_three_groups() -> None:
    data = _three_groups()
    clusters = KMeansClusterer(KMeansConfig(random_state=42)).cluster(data, 3)

    assert len(clusters) == 3
    assert sum(len(c) for c in clusters) == 9
    assert sorted(_flatten(clusters), key=lambda p: (p.x, p.y)) == sorted(
        data, key=lambda p: (p.x, p.y)
    )


def test_kmeans_edge_cases() -> None:
    algo = KMeansClusterer()
    assert algo.cluster([], 3) == []
    assert algo.cluster(None, 3) == []
    assert algo.cluster([Point2D(1, 1)], 0) == []
    assert algo.cluster([Point2D(1, 1)], -1) == []


def test_kmeans_k_at_least_n_gives_singletons_in_order() -> None:
    data = [Point2D(3, 3), Point2D(1, 1), Point2D(2, 2)]
    for k in (3, 5):
        clusters = KMeansClusterer(KMeansConfig(random_state=0)).cluster(data, k)
        assert clusters == [[Point2D(3, 3)], [Point2D(1, 1)], [Point2D(2, 2)]]


def test_kmeans_partition_properties_on_random_data() -> None:
    rng = np.random.default_rng(7)
    points = points_from_array(rng.normal(size=(40, 2)))

    for k in (1, 2, 4, 7):
        clusters = KMeansClusterer(KMeansConfig(random_state=k)).cluster(points, k)
        assert len(clusters) == k
        assert sum(1 for c in clusters if c) <= k
        members = _flatten(clusters)
        assert len(members) == len(points)
        assert set(members) == set(points)


def test_kmeans_is_deterministic_for_a_seed() -> None:
    rng = np.random.default_rng(3)
    points = points_from_array(rng.normal(size=(30, 3)))

    first = KMeansClusterer(KMeansConfig(random_state=11)).cluster(points, 4)
    second = KMeansClusterer(KMeansConfig(random_state=11)).cluster(points, 4)
    assert first == second


def test_kmeans_max_iter_cap_still_returns_partition() -> None:
    data = _three_groups()
    clusters = KMeansClusterer(KMeansConfig(random_state=1, max_iter=1)).cluster(data, 3)
    assert len(clusters) == 3
    assert sum(len(c) for c in clusters) == len(data)


def test_kmeans_empty_cluster_keeps_its_center_and_ties_go_to_lowest_index() -> None:
    # seed 1 draws both copies of (0,0): every point ties between the two
    # equal centers and lands in cluster 0, cluster 1 stays empty
    a, b = Point2D(0, 0), Point2D(5, 0)
    clusters = KMeansClusterer(KMeansConfig(random_state=1)).cluster([a, a, b], 2)
    assert clusters == [[a, a, b], []]


@dataclass(frozen=True)
class _Labelled:
    name: str

    def distance_to(self, other: _Labelled) -> float:
        return {"far": float("nan"), "near": 1.0}.get(other.name, 0.0)


def test_closest_center_skips_nan_distances() -> None:
    centers = [_Labelled("far"), _Labelled("near")]
    assert _closest_center(_Labelled("item"), centers) == 1


def test_kmeans_config_rejects_non_positive_max_iter() -> None:
    with pytest.raises(ValueError):
        KMeansConfig(max_iter=0)


# Density algorithm


def test_dbscan_single_cluster_with_outlier() -> None:
    data = [Point2D(1, 1), Point2D(1, 2), Point2D(2, 1), Point2D(2, 2), Point2D(50, 50)]
    clusters = DBSCANClusterer(DBSCANConfig(eps=1.5, min_pts=2)).cluster(data, 0)

    assert len(clusters) == 1
    assert len(clusters[0]) == 4
    assert Point2D(50, 50) not in clusters[0]


def test_dbscan_two_clusters() -> None:
    clusters = DBSCANClusterer(DBSCANConfig(eps=1.5, min_pts=2)).cluster(_two_squares(), 0)

    assert len(clusters) == 2
    assert [len(c) for c in clusters] == [4, 4]
    assert {p.x < 5 for p in clusters[0]} == {True}
    assert {p.x > 5 for p in clusters[1]} == {True}


def test_dbscan_ignores_k() -> None:
    algo = DBSCANClusterer(DBSCANConfig(eps=1.5, min_pts=2))
    assert algo.cluster(_two_squares(), 0) == algo.cluster(_two_squares(), 17)


def test_dbscan_edge_cases() -> None:
    algo = DBSCANClusterer(DBSCANConfig(eps=1.5, min_pts=2))
    assert algo.cluster([], 0) == []
    assert algo.cluster(None, 0) == []


@pytest.mark.parametrize("eps, min_pts", [(-1.0, 5), (0.0, 5), (1.0, 0), (1.0, -3)])
def test_dbscan_rejects_bad_configuration(eps: float, min_pts: int) -> None:
    with pytest.raises(ValueError):
        DBSCANConfig(eps=eps, min_pts=min_pts)


def test_dbscan_neighborhood_is_inclusive_and_contains_self() -> None:
    algo = DBSCANClusterer(DBSCANConfig(eps=1.0, min_pts=2))
    data = [Point2D(0, 0), Point2D(1, 0), Point2D(2.5, 0)]

    assert algo.region_query(data[0], data) == [Point2D(0, 0), Point2D(1, 0)]
    assert algo.cluster(data, 0) == [[Point2D(0, 0), Point2D(1, 0)]]


def test_dbscan_border_point_absorbed_through_chain() -> None:
    # (0,0) is not a core point but is reached from the core (1,0).
    data = [Point2D(0, 0), Point2D(1, 0), Point2D(2, 0), Point2D(3, 0)]
    clusters = DBSCANClusterer(DBSCANConfig(eps=1.0, min_pts=3)).cluster(data, 0)

    assert len(clusters) == 1
    assert set(clusters[0]) == set(data)


def test_dbscan_min_pts_one_makes_every_point_a_cluster() -> None:
    data = [Point2D(0, 0), Point2D(10, 0), Point2D(20, 0)]
    clusters = DBSCANClusterer(DBSCANConfig(eps=1.0, min_pts=1)).cluster(data, 0)
    assert clusters == [[Point2D(0, 0)], [Point2D(10, 0)], [Point2D(20, 0)]]


def test_dbscan_core_points_clustered_and_no_duplicates() -> None:
    rng = np.random.default_rng(5)
    points = points_from_array(
        np.vstack([rng.normal(0, 0.3, size=(25, 2)), rng.normal(5, 0.3, size=(25, 2)), [[20.0, 20.0]]])
    )
    algo = DBSCANClusterer(DBSCANConfig(eps=0.6, min_pts=4))
    clusters = algo.cluster(points, 0)

    members = _flatten(clusters)
    assert len(members) == len(set(members))
    clustered = set(members)
    for p in points:
        if len(algo.region_query(p, points)) >= algo.min_pts:
            assert p in clustered
    assert points[-1] not in clustered


def test_dbscan_growing_eps_never_splits_cores() -> None:
    rng = np.random.default_rng(9)
    points = points_from_array(rng.uniform(0, 10, size=(60, 2)))

    previous = None
    for eps in (0.5, 1.0, 1.5, 2.5):
        algo = DBSCANClusterer(DBSCANConfig(eps=eps, min_pts=3))
        current = [set(c) for c in algo.cluster(points, 0)]
        if previous is not None:
            # border points may change owner, the cores of an old cluster may not split
            for old_cores in previous:
                assert any(old_cores <= new for new in current)
        previous = [
            {p for p in c if len(algo.region_query(p, points)) >= algo.min_pts} for c in current
        ]


def test_both_algorithms_share_the_contract() -> None:
    algorithms: List[ClusterAlgorithm] = [
        KMeansClusterer(KMeansConfig(random_state=0)),
        DBSCANClusterer(DBSCANConfig(eps=1.5, min_pts=2)),
    ]
    for algo in algorithms:
        clusters = algo.cluster(_two_squares(), 2)
        assert len(clusters) == 2
        assert sum(len(c) for c in clusters) == 8


def test_cluster_signatures_match() -> None:
    kmeans_params = inspect.signature(KMeansClusterer.cluster).parameters
    dbscan_params = inspect.signature(DBSCANClusterer.cluster).parameters
    assert list(kmeans_params) == list(dbscan_params) == ["self", "data", "k"]
    assert dbscan_params["k"].default is inspect.Parameter.empty
