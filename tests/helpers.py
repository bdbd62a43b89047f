"""Test helpers shared across test modules."""
from typing import List, Optional, Sequence

from facecluster.domain.entities.face import BoundingBox, DetectedFace
from facecluster.domain.interfaces.recognition.embedder import Embedder


def detection(embedding: Optional[Sequence[float]] = None) -> DetectedFace:
    """Detection with a fixed bounding box."""
    return DetectedFace(
        bounding_box=BoundingBox(x=10, y=20, width=100, height=120),
        embedding=embedding,
        quality_score=0.9,
    )


class FakeEmbedder(Embedder):
    """Returns preset detections for any image."""

    def __init__(self, detections: List[DetectedFace]) -> None:
        self.detections = detections
        self.calls = []

    async def extract_faces(self, image_bytes: bytes, max_faces: Optional[int] = None) -> List[DetectedFace]:
        self.calls.append((image_bytes, max_faces))
        return list(self.detections)
