"""Face ingestion value objects."""
from typing import List, Optional

from pydantic import BaseModel, Field

from facecluster.domain.entities.face import Face
from facecluster.domain.value_objects.clustering import AssignmentResult


class FailedDetection(BaseModel):
    """A detection that could not be stored."""
    index: int = Field(..., description="Position of the detection in the submitted list")
    error: str = Field(..., description="Error message raised while storing the detection")


class IngestResult(BaseModel):
    """Outcome of storing the detections of one image."""
    image_id: Optional[str] = Field(None, description="Source image identifier")
    faces: List[Face] = Field(default_factory=list, description="Stored faces, in detection order")
    failed: List[FailedDetection] = Field(default_factory=list, description="Detections that failed to store")
    assignment: Optional[AssignmentResult] = Field(None, description="Clustering of the new faces, when requested")
