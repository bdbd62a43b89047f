"""API face models."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from facecluster.domain.entities.face import BoundingBox, DetectedFace, Face, Gender
from facecluster.domain.value_objects.clustering import AssignmentResult
from facecluster.domain.value_objects.ingest import FailedDetection, IngestResult


class DetectionRequest(BaseModel):
    """One detection produced by an external model."""
    bounding_box: BoundingBox = Field(..., description="Face location in the image")
    embedding: Optional[List[float]] = Field(None, description="Face embedding, omitted when extraction failed")
    age: Optional[float] = Field(None, description="Estimated age")
    gender: Gender = Field(Gender.UNKNOWN, description="Estimated gender")
    emotion: Optional[str] = Field(None, description="Dominant emotion label")
    quality_score: float = Field(0.0, description="Detection quality score", ge=0.0, le=1.0)

    def to_domain(self) -> DetectedFace:
        return DetectedFace(**self.model_dump())


class IngestDetectionsRequest(BaseModel):
    """Request model for storing the detections of one image."""
    image_id: Optional[str] = Field(None, description="Source image identifier", max_length=255)
    detections: List[DetectionRequest] = Field(..., description="Detections of the image")
    cluster: bool = Field(False, description="Assign the new faces to clusters right away")
    threshold: Optional[float] = Field(None, description="Clustering threshold", ge=-1.0, le=1.0)


class FaceResponse(BaseModel):
    """API model for a stored face."""
    id: str
    cluster_id: Optional[str] = None
    image_id: Optional[str] = None
    bounding_box: Optional[BoundingBox] = None
    quality_score: Optional[float] = None
    age: Optional[float] = None
    gender: Gender = Gender.UNKNOWN
    emotion: Optional[str] = None
    has_embedding: bool
    created_at: datetime

    @classmethod
    def from_face(cls, face: Face) -> "FaceResponse":
        return cls(
            id=face.id,
            cluster_id=face.cluster_id,
            image_id=face.image_id,
            bounding_box=face.bounding_box,
            quality_score=face.quality_score,
            age=face.age,
            gender=face.gender,
            emotion=face.emotion,
            has_embedding=face.has_embedding,
            created_at=face.created_at,
        )


class AssignmentResponse(BaseModel):
    """API model for the outcome of a clustering run."""
    new_clusters: int
    updated_clusters: int
    assigned_faces: int
    skipped_faces: int
    failed_face_ids: List[str] = Field(default_factory=list)
    created_cluster_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: AssignmentResult) -> "AssignmentResponse":
        return cls(
            new_clusters=result.new_clusters,
            updated_clusters=result.updated_clusters,
            assigned_faces=result.assigned_faces,
            skipped_faces=result.skipped_faces,
            failed_face_ids=[f.face_id for f in result.failed_faces],
            created_cluster_ids=result.created_cluster_ids,
        )


class IngestResponse(BaseModel):
    """API model for stored detections."""
    image_id: Optional[str] = None
    faces: List[FaceResponse]
    failed: List[FailedDetection] = Field(default_factory=list)
    assignment: Optional[AssignmentResponse] = None

    @classmethod
    def from_result(cls, result: IngestResult) -> "IngestResponse":
        return cls(
            image_id=result.image_id,
            faces=[FaceResponse.from_face(f) for f in result.faces],
            failed=result.failed,
            assignment=AssignmentResponse.from_result(result.assignment) if result.assignment else None,
        )


class FaceStatsResponse(BaseModel):
    total: int
    clustered: int
    unclustered: int
