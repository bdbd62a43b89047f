from .embedder import Embedder

__all__ = ["Embedder"]
