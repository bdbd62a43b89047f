"""API identity models."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from facecluster.api.models.cluster import ClusterResponse
from facecluster.domain.entities.cluster import Identity


class CreateIdentityRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1024)
    cluster_ids: List[str] = Field(default_factory=list, description="Clusters to link right away")


class UpdateIdentityRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1024)


class LinkClustersRequest(BaseModel):
    cluster_ids: List[str] = Field(..., min_length=1)


class IdentityResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    clusters: Optional[List[ClusterResponse]] = Field(None, description="Linked clusters, only on detail responses")

    @classmethod
    def from_identity(
        cls, identity: Identity, clusters: Optional[List[ClusterResponse]] = None
    ) -> "IdentityResponse":
        return cls(**identity.model_dump(), clusters=clusters)


class IdentityStatsResponse(BaseModel):
    total: int
    with_clusters: int
    without_clusters: int
