"""Domain entities package."""
from .cluster import Cluster, ClusterStatus, Identity, IdentityCluster, RecognitionLog
from .face import BoundingBox, DetectedFace, Face, Gender

__all__ = [
    "BoundingBox",
    "Cluster",
    "ClusterStatus",
    "DetectedFace",
    "Face",
    "Gender",
    "Identity",
    "IdentityCluster",
    "RecognitionLog",
]
