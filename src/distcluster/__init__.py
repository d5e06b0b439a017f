"""
distcluster - generic clustering over distance-bearing elements.

This package provides:
- a distance protocol and concrete point types (2D, Minkowski vectors)
- a medoid-based K-Means-style partition algorithm
- a DBSCAN-style density algorithm
- experiment orchestration and analysis utilities
"""

__version__ = "0.1.0"

__all__ = ["distances", "algorithms"]
