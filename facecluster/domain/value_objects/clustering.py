"""Clustering value objects."""
from typing import List, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class FailedFace(BaseModel):
    """A face that could not be processed within a batch."""
    face_id: str = Field(..., description="Face identifier")
    error: str = Field(..., description="Error message raised while processing the face")


class AssignmentResult(BaseModel):
    """Outcome of assigning a pool of unclustered faces."""
    new_clusters: int = Field(0, description="Singleton clusters created during the run")
    updated_clusters: int = Field(0, description="Assignments to an already existing cluster")
    assigned_faces: int = Field(0, description="Faces that received a cluster")
    skipped_faces: int = Field(0, description="Faces ignored because they have no embedding")
    failed_faces: List[FailedFace] = Field(default_factory=list, description="Faces that failed unexpectedly")
    created_cluster_ids: List[str] = Field(default_factory=list, description="Identifiers of the new clusters")


class ClusterGroup(BaseModel):
    """Transient grouping produced by offline clustering, not yet persisted."""
    cluster_id: str = Field(..., description="Grouping label, unique within one run")
    face_ids: List[str] = Field(..., description="Member face identifiers")
    centroid: np.ndarray = Field(..., description="Mean embedding of the members")

    model_config = ConfigDict(arbitrary_types_allowed=True)


class MergeResult(BaseModel):
    """Outcome of a merge detection pass."""
    merged_pairs: List[Tuple[str, str]] = Field(
        default_factory=list, description="(keep_id, merge_id) pairs in the order they were applied"
    )

    @property
    def merged_count(self) -> int:
        return len(self.merged_pairs)
