"""Cluster and identity domain entities."""
from datetime import datetime
from enum import Enum
from typing import Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from facecluster.domain.entities.face import coerce_embedding, new_id, utcnow


class ClusterStatus(str, Enum):
    """Lifecycle state of a cluster."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    MERGED = "merged"


class Cluster(BaseModel):
    """A group of faces believed to belong to one person."""
    id: str = Field(default_factory=new_id, description="Unique cluster identifier")
    centroid: Optional[np.ndarray] = Field(None, description="Mean embedding of the member faces")
    face_count: int = Field(0, description="Number of member faces", ge=0)
    representative_face_id: Optional[str] = Field(None, description="Face shown for the cluster")
    status: ClusterStatus = Field(ClusterStatus.PENDING, description="Labeling state")
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator('centroid', mode='before')
    @classmethod
    def validate_centroid(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Validate and convert centroid to numpy array if needed."""
        return coerce_embedding(v)

    @property
    def is_active(self) -> bool:
        """Active clusters can receive new members and be matched against."""
        return self.status != ClusterStatus.MERGED and self.centroid is not None


class Identity(BaseModel):
    """A labeled person."""
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class IdentityCluster(BaseModel):
    """Association between an identity and one of its clusters."""
    id: str = Field(default_factory=new_id)
    identity_id: str
    cluster_id: str
    created_at: datetime = Field(default_factory=utcnow)


class RecognitionLog(BaseModel):
    """Append-only audit record of one recognition attempt."""
    id: str = Field(default_factory=new_id)
    face_id: Optional[str] = None
    matched_identity_id: Optional[str] = None
    confidence: Optional[float] = None
    is_stranger: bool = False
    camera_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
