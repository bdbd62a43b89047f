"""API recognition models."""
from typing import List, Optional

from pydantic import BaseModel, Field

from facecluster.api.models.face import DetectionRequest
from facecluster.domain.entities.cluster import RecognitionLog
from facecluster.domain.value_objects.recognition import RecognitionResult


class RecognizeRequest(BaseModel):
    embedding: List[float] = Field(..., min_length=1)
    camera_id: Optional[str] = Field(None, max_length=255)
    face_id: Optional[str] = None
    threshold: Optional[float] = Field(None, ge=-1.0, le=1.0)


class RecognizeResponse(BaseModel):
    result: RecognitionResult
    log_id: str


class CameraDetectionRequest(BaseModel):
    detection: DetectionRequest


class RecognitionLogsResponse(BaseModel):
    logs: List[RecognitionLog]


class RecognitionStatsResponse(BaseModel):
    total: int
    identified: int
    strangers: int


class ClearLogsResponse(BaseModel):
    deleted: int
