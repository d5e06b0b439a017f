from __future__ import annotations

import numpy as np
import pytest

from distcluster.distances import Clusterable, Point2D, VectorPoint, points_from_array


def test_point2d_euclidean_distance_and_value_equality() -> None:
    a = Point2D(0.0, 0.0)
    b = Point2D(3.0, 4.0)

    assert np.isclose(a.distance_to(b), 5.0)
    assert np.isclose(b.distance_to(a), 5.0)
    assert a.distance_to(a) == 0.0
    assert Point2D(1, 2) == Point2D(1.0, 2.0)
    assert len({Point2D(1, 2), Point2D(1.0, 2.0)}) == 1
    assert str(Point2D(1, 2.5)) == "(1.00, 2.50)"
    assert isinstance(a, Clusterable)


def test_distance_to_none_is_rejected() -> None:
    with pytest.raises(ValueError):
        Point2D(0, 0).distance_to(None)
    with pytest.raises(ValueError):
        VectorPoint((0.0, 0.0)).distance_to(None)


def test_vector_point_minkowski_orders() -> None:
    origin = (0.0, 0.0)
    target = (3.0, 4.0)

    assert np.isclose(VectorPoint(origin, p=1).distance_to(VectorPoint(target, p=1)), 7.0)
    assert np.isclose(VectorPoint(origin, p=2).distance_to(VectorPoint(target, p=2)), 5.0)
    expected_p3 = (3.0**3 + 4.0**3) ** (1.0 / 3.0)
    assert np.isclose(VectorPoint(origin, p=3).distance_to(VectorPoint(target, p=3)), expected_p3)


def test_vector_point_validation() -> None:
    with pytest.raises(ValueError):
        VectorPoint((0.0,), p=0.5)
    with pytest.raises(ValueError):
        VectorPoint((0.0, 0.0)).distance_to(VectorPoint((0.0, 0.0, 0.0)))


def test_points_from_array_preserves_row_order() -> None:
    X = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 2.0]], dtype=float)
    points = points_from_array(X, p=2)

    assert [pt.coords for pt in points] == [(0.0, 0.0), (1.0, 0.0), (0.0, 2.0)]
    assert np.isclose(points[1].distance_to(points[2]), np.sqrt(5.0))

    with pytest.raises(ValueError):
        points_from_array(np.zeros(3))
