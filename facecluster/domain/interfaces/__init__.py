"""Collaborator interfaces package."""
from .recognition import Embedder
from .storage import ClusterStore

__all__ = ["ClusterStore", "Embedder"]
