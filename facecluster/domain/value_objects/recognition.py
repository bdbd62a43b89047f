"""Face recognition value objects."""
from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from facecluster.domain.entities.cluster import RecognitionLog


class RecognitionCandidate(BaseModel):
    """Centroid of one confirmed cluster, labeled with its identity."""
    identity_id: str = Field(..., description="Identity linked to the cluster")
    cluster_id: Optional[str] = Field(None, description="Cluster the centroid belongs to")
    centroid: np.ndarray = Field(..., description="Cluster centroid")

    model_config = ConfigDict(arbitrary_types_allowed=True)


class RecognitionResult(BaseModel):
    """Result of matching one embedding against confirmed identities."""
    identity_id: Optional[str] = Field(None, description="Best matching identity, None for strangers")
    confidence: Optional[float] = Field(None, description="Similarity with the matched identity")
    is_stranger: bool = Field(..., description="Whether no identity passed the threshold")

    @classmethod
    def stranger(cls) -> "RecognitionResult":
        return cls(identity_id=None, confidence=None, is_stranger=True)


class RecognitionOutcome(BaseModel):
    """Recognition result together with the audit record written for it."""
    result: RecognitionResult
    log: RecognitionLog


class FrameOutcome(BaseModel):
    """What the camera session did with one detection."""
    recognition: Optional[RecognitionResult] = Field(None, description="Fresh or cached recognition result")
    face_id: Optional[str] = Field(None, description="Persisted face, None when the save was deduplicated")
    cluster_id: Optional[str] = Field(None, description="Cluster the persisted face was assigned to")
    from_cache: bool = Field(False, description="Recognition result reused from a recent detection")
    skipped: bool = Field(False, description="Detection ignored (no embedding, lookup in flight or session stopped)")
    reason: Optional[str] = Field(None, description="Why the detection was skipped")
