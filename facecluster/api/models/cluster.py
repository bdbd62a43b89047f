"""API cluster models."""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from facecluster.domain.entities.cluster import Cluster, ClusterStatus
from facecluster.domain.value_objects.clustering import ClusterGroup, MergeResult

MIN_THRESHOLD = -1.0
MAX_THRESHOLD = 1.0


class ClusterResponse(BaseModel):
    """API model for a cluster, without its centroid."""
    id: str
    face_count: int
    representative_face_id: Optional[str] = None
    status: ClusterStatus
    has_centroid: bool
    created_at: datetime
    face_ids: Optional[List[str]] = Field(None, description="Member faces, only on detail responses")

    @classmethod
    def from_cluster(cls, cluster: Cluster, face_ids: Optional[List[str]] = None) -> "ClusterResponse":
        return cls(
            id=cluster.id,
            face_count=cluster.face_count,
            representative_face_id=cluster.representative_face_id,
            status=cluster.status,
            has_centroid=cluster.centroid is not None,
            created_at=cluster.created_at,
            face_ids=face_ids,
        )


class ClusterStatsResponse(BaseModel):
    pending: int
    confirmed: int
    merged: int
    total: int


class CreateClusterRequest(BaseModel):
    face_ids: List[str] = Field(..., min_length=1)
    status: ClusterStatus = ClusterStatus.PENDING


class MergeClustersRequest(BaseModel):
    cluster_ids: List[str] = Field(..., description="Clusters to merge, at least two")


class SplitClusterRequest(BaseModel):
    face_groups: List[List[str]] = Field(..., description="Member face ids of each new cluster")


class MoveFacesRequest(BaseModel):
    face_ids: List[str] = Field(..., min_length=1)


class RepresentativeRequest(BaseModel):
    face_id: str


class StatusRequest(BaseModel):
    status: ClusterStatus


class ThresholdRequest(BaseModel):
    """Optional per-call threshold; the configured value is used when omitted."""
    threshold: Optional[float] = Field(None, ge=MIN_THRESHOLD, le=MAX_THRESHOLD)


class MergeUntilStableRequest(ThresholdRequest):
    max_rounds: Optional[int] = Field(None, ge=1, le=100)


class MergeResponse(BaseModel):
    merged_pairs: List[List[str]]
    merged_count: int

    @classmethod
    def from_result(cls, result: MergeResult) -> "MergeResponse":
        return cls(
            merged_pairs=[[keep, merge] for keep, merge in result.merged_pairs],
            merged_count=result.merged_count,
        )


class GroupingRequest(BaseModel):
    """Preview grouping of the unclustered pool."""
    method: Literal["hierarchical", "dbscan"] = "hierarchical"
    threshold: Optional[float] = Field(None, ge=MIN_THRESHOLD, le=MAX_THRESHOLD)
    eps: Optional[float] = Field(None, gt=0.0, le=2.0)
    min_points: Optional[int] = Field(None, ge=1)


class GroupResponse(BaseModel):
    cluster_id: str
    face_ids: List[str]

    @classmethod
    def from_group(cls, group: ClusterGroup) -> "GroupResponse":
        return cls(cluster_id=group.cluster_id, face_ids=group.face_ids)
