
from ._shared import ClusterAlgorithm
from .dbscan import DBSCANClusterer, DBSCANConfig
from .kmeans import KMeansClusterer, KMeansConfig

__all__ = [
    "ClusterAlgorithm",
    "DBSCANClusterer",
    "DBSCANConfig",
    "KMeansClusterer",
    "KMeansConfig",
]
