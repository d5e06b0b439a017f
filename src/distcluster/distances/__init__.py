
from .function import Clusterable, require_other
from .points import Point2D, VectorPoint, points_from_array

__all__ = [
    "Clusterable",
    "Point2D",
    "VectorPoint",
    "points_from_array",
    "require_other",
]
