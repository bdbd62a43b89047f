"""
InsightFace-based implementation of the Embedder interface.

This module turns raw image bytes into DetectedFace records using the
InsightFace library. It is the one place that touches the model; the
clustering engine only ever sees the resulting embeddings.

Example:
    ```python
    embedder = InsightFaceEmbedder()

    with open("image.jpg", "rb") as f:
        detections = await embedder.extract_faces(f.read(), max_faces=5)
    ```

Note:
    This implementation uses CPU inference by default. For GPU support,
    pass ``providers=['CUDAExecutionProvider']``.
"""
import asyncio
import math
from typing import Any, List, Optional, Sequence

import numpy as np

from facecluster.core.config import settings
from facecluster.core.exceptions import InvalidImageError, ModelLoadError
from facecluster.core.logging import get_logger
from facecluster.domain.entities.face import BoundingBox, DetectedFace, Gender
from facecluster.domain.interfaces.recognition.embedder import Embedder

logger = get_logger(__name__)


class InsightFaceEmbedder(Embedder):
    """
    Detection and 512-d embedding extraction with the InsightFace ``buffalo_l`` pack.

    The model is loaded on first use, not at construction, so building the
    service container does not pay the model start-up cost.

    Attributes:
        model: InsightFace FaceAnalysis instance, None until loaded
    """

    def __init__(self, providers: Optional[Sequence[str]] = None) -> None:
        """Prepare the embedder.

        Args:
            providers: ONNX runtime execution providers
        """
        self._providers = list(providers or ['CPUExecutionProvider'])
        self.model: Any = None

    def _load_model(self) -> Any:
        if self.model is not None:
            return self.model
        try:
            from insightface.app import FaceAnalysis

            model = FaceAnalysis(
                name=settings.MODEL_PATH,
                root=settings.MODEL_CACHE_DIR,
                providers=self._providers,
            )
            # Detection size affects accuracy significantly
            model.prepare(ctx_id=0, det_size=(640, 640))
        except Exception as e:
            logger.error("Failed to load InsightFace model", error=str(e), exc_info=True)
            raise ModelLoadError(f"Failed to load InsightFace model: {e}")
        self.model = model
        return model

    def _load_image(self, image_bytes: bytes) -> np.ndarray:
        """Decode image bytes and shrink oversized images."""
        import cv2

        nparr = np.frombuffer(image_bytes, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
        if img is None:
            raise InvalidImageError("Failed to decode image")

        height, width = img.shape[:2]
        pixels = width * height
        if pixels > settings.MAX_IMAGE_PIXELS:
            scale = math.sqrt(settings.MAX_IMAGE_PIXELS / pixels)
            new_size = (int(width * scale), int(height * scale))
            logger.info("Resizing large image", original_size=(width, height), new_size=new_size)
            img = cv2.resize(img, new_size, interpolation=cv2.INTER_AREA)
        return img

    @staticmethod
    def _convert(face_data: Any) -> DetectedFace:
        """Convert an InsightFace detection into a DetectedFace."""
        x1, y1, x2, y2 = (float(v) for v in face_data.bbox)
        sex = getattr(face_data, "sex", None)
        gender = {"M": Gender.MALE, "F": Gender.FEMALE}.get(sex, Gender.UNKNOWN)
        embedding = getattr(face_data, "embedding", None)
        age = getattr(face_data, "age", None)

        return DetectedFace(
            bounding_box=BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1),
            embedding=embedding,
            age=float(age) if age is not None else None,
            gender=gender,
            quality_score=float(face_data.det_score),
        )

    def _extract_sync(self, image_bytes: bytes, max_faces: Optional[int]) -> List[DetectedFace]:
        model = self._load_model()
        img = self._load_image(image_bytes)
        faces = model.get(img, max_num=0 if max_faces is None else max_faces)
        logger.debug("Face detection results", faces_found=len(faces), max_faces=max_faces)
        return [self._convert(face) for face in faces]

    async def extract_faces(
        self,
        image_bytes: bytes,
        max_faces: Optional[int] = None,
    ) -> List[DetectedFace]:
        """Detect faces and extract embeddings without blocking the event loop."""
        if max_faces is None:
            max_faces = settings.MAX_FACES_PER_IMAGE
        return await asyncio.to_thread(self._extract_sync, image_bytes, max_faces)
