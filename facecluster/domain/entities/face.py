"""Core face domain entities."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_id() -> str:
    """Generate a record identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Timezone-aware current time used for record timestamps."""
    return datetime.now(timezone.utc)


def coerce_embedding(v: Optional[Union[np.ndarray, list, tuple]]) -> Optional[np.ndarray]:
    """Convert list-like embeddings to 1-D float arrays, keeping None as None."""
    if v is None:
        return None
    arr = np.asarray(v, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"Embedding must be one-dimensional, got shape {arr.shape}")
    return arr


class BoundingBox(BaseModel):
    """Face bounding box coordinates in pixels of the source image."""
    x: float = Field(..., description="Left coordinate of the bounding box")
    y: float = Field(..., description="Top coordinate of the bounding box")
    width: float = Field(..., description="Width of the bounding box")
    height: float = Field(..., description="Height of the bounding box")


class Gender(str, Enum):
    """Gender attribute reported by the detection model."""
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


class DetectedFace(BaseModel):
    """Detection result handed over by the external extraction model.

    Only ``embedding`` is consumed by clustering and recognition; the other
    attributes pass through untouched to storage.
    """
    bounding_box: BoundingBox = Field(..., description="Face location in the image")
    embedding: Optional[np.ndarray] = Field(None, description="Face embedding vector, None when extraction failed")
    age: Optional[float] = Field(None, description="Estimated age")
    gender: Gender = Field(Gender.UNKNOWN, description="Estimated gender")
    emotion: Optional[str] = Field(None, description="Dominant emotion label")
    quality_score: float = Field(0.0, description="Detection quality score (0-1)")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator('embedding', mode='before')
    @classmethod
    def validate_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Validate and convert embedding to numpy array if needed."""
        return coerce_embedding(v)


class Face(BaseModel):
    """A persisted face observation.

    ``cluster_id`` is a back-reference to the owning cluster and is the only
    field clustering operations mutate.
    """
    id: str = Field(default_factory=new_id, description="Unique face identifier")
    embedding: Optional[np.ndarray] = Field(None, description="Face embedding vector")
    cluster_id: Optional[str] = Field(None, description="Owning cluster, None when unclustered")
    image_id: Optional[str] = Field(None, description="Source image identifier")
    bounding_box: Optional[BoundingBox] = Field(None, description="Face location in the source image")
    quality_score: Optional[float] = Field(None, description="Detection quality score")
    age: Optional[float] = Field(None, description="Estimated age")
    gender: Gender = Field(Gender.UNKNOWN, description="Estimated gender")
    emotion: Optional[str] = Field(None, description="Dominant emotion label")
    created_at: datetime = Field(default_factory=utcnow, description="Timestamp when the face was stored")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator('embedding', mode='before')
    @classmethod
    def validate_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Validate and convert embedding to numpy array if needed."""
        return coerce_embedding(v)

    @property
    def has_embedding(self) -> bool:
        """Whether the face can take part in clustering and recognition."""
        return self.embedding is not None and self.embedding.size > 0

    @classmethod
    def from_detection(cls, detection: DetectedFace, image_id: Optional[str] = None) -> "Face":
        """Create a face record from a detection result.

        Args:
            detection: Detection produced by the extraction model
            image_id: Optional source image identifier

        Returns:
            Face record with no cluster assigned
        """
        return cls(
            embedding=detection.embedding,
            image_id=image_id,
            bounding_box=detection.bounding_box,
            quality_score=detection.quality_score,
            age=detection.age,
            gender=detection.gender,
            emotion=detection.emotion,
        )
