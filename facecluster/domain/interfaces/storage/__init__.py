from .cluster_store import ClusterStore

__all__ = ["ClusterStore"]
