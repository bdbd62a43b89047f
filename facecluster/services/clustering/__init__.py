"""Clustering services package."""
from .batch import BatchClusterer
from .centroid import CentroidMaintainer
from .density import DensityGrouper
from .hierarchical import HierarchicalGrouper
from .merger import ClusterMerger

__all__ = [
    "BatchClusterer",
    "CentroidMaintainer",
    "ClusterMerger",
    "DensityGrouper",
    "HierarchicalGrouper",
]
