"""Face embedding extraction interface."""
from abc import ABC, abstractmethod
from typing import List, Optional

from ...entities.face import DetectedFace


class Embedder(ABC):
    """Interface for the external detection and feature-extraction model.

    The clustering engine never calls the model itself; implementations are
    injected into the ingest path that turns images into detections.
    """

    @abstractmethod
    async def extract_faces(
        self,
        image_bytes: bytes,
        max_faces: Optional[int] = None,
    ) -> List[DetectedFace]:
        """
        Detect faces and extract their embeddings.

        Args:
            image_bytes: Raw image data
            max_faces: Maximum number of faces to detect (None for no limit)

        Returns:
            One DetectedFace per face found. A face whose embedding could not
            be extracted is returned with ``embedding=None``. Returns an empty
            list when the image contains no faces.

        Raises:
            InvalidImageError: If the image format is invalid
        """
        pass
