"""Custom exceptions for the face clustering service."""
from typing import Optional


class FaceClusteringError(Exception):
    """Base exception for face clustering operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face clustering error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class VectorMathError(FaceClusteringError):
    """Base exception for invalid vector operations."""
    pass


class DimensionMismatchError(VectorMathError):
    """Raised when two vectors of different length are compared."""
    pass


class EmptyInputError(VectorMathError):
    """Raised when a mean is requested over an empty list of vectors."""
    pass


class StoreError(FaceClusteringError):
    """Base exception for cluster store operations."""
    pass


class FaceNotFoundError(StoreError):
    """Raised when a face record does not exist."""
    pass


class ClusterNotFoundError(StoreError):
    """Raised when a cluster record does not exist."""
    pass


class IdentityNotFoundError(StoreError):
    """Raised when an identity record does not exist."""
    pass


class InvalidOperationError(FaceClusteringError):
    """Raised when a cluster or identity operation is called with unusable arguments."""
    pass


class SessionClosedError(FaceClusteringError):
    """Raised when a stopped camera session is asked to process a detection."""
    pass


class ServiceNotInitializedError(FaceClusteringError):
    """Raised when a service is requested before the container is initialized."""
    pass


class ModelLoadError(FaceClusteringError):
    """Raised when the embedding model fails to load."""
    pass


class InvalidImageError(FaceClusteringError):
    """Raised when the provided image is invalid or cannot be processed."""
    pass
