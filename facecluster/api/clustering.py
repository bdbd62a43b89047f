"""Clustering maintenance endpoints."""
from typing import List

from fastapi import APIRouter, Depends

from facecluster.api.models.cluster import (
    GroupingRequest,
    GroupResponse,
    MergeResponse,
    MergeUntilStableRequest,
    ThresholdRequest,
)
from facecluster.api.models.face import AssignmentResponse
from facecluster.core.container import ServiceContainer
from facecluster.core.logging import get_logger
from facecluster.infrastructure.dependencies import (
    get_batch_clusterer,
    get_cluster_merger,
    get_container,
    get_maintainer,
)
from facecluster.services.clustering import BatchClusterer, CentroidMaintainer, ClusterMerger

logger = get_logger(__name__)
router = APIRouter(
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/run",
    response_model=AssignmentResponse,
    summary="Cluster unassigned faces",
    description="Assigns every unclustered face to its best matching cluster or to a new one.",
)
async def run_clustering(
    request: ThresholdRequest = ThresholdRequest(),
    clusterer: BatchClusterer = Depends(get_batch_clusterer),
) -> AssignmentResponse:
    result = await clusterer.cluster_unassigned(threshold=request.threshold)
    return AssignmentResponse.from_result(result)


@router.post(
    "/merge",
    response_model=MergeResponse,
    summary="Merge similar pending clusters",
    description="Single greedy pass over the pending clusters.",
)
async def merge_clusters(
    request: ThresholdRequest = ThresholdRequest(),
    merger: ClusterMerger = Depends(get_cluster_merger),
) -> MergeResponse:
    result = await merger.merge_pending(threshold=request.threshold)
    return MergeResponse.from_result(result)


@router.post(
    "/merge-until-stable",
    response_model=MergeResponse,
    summary="Merge pending clusters until no pair qualifies",
)
async def merge_until_stable(
    request: MergeUntilStableRequest = MergeUntilStableRequest(),
    merger: ClusterMerger = Depends(get_cluster_merger),
) -> MergeResponse:
    result = await merger.merge_until_stable(threshold=request.threshold, max_rounds=request.max_rounds)
    return MergeResponse.from_result(result)


@router.post(
    "/recalculate",
    summary="Recompute every cluster centroid",
)
async def recalculate_centroids(
    maintainer: CentroidMaintainer = Depends(get_maintainer),
) -> dict:
    processed = await maintainer.recompute_all()
    return {"clusters": processed}


@router.post(
    "/preview",
    response_model=List[GroupResponse],
    summary="Preview an offline grouping of the unclustered pool",
    description="Runs hierarchical or DBSCAN grouping without persisting anything.",
)
async def preview_grouping(
    request: GroupingRequest,
    cont: ServiceContainer = Depends(get_container),
) -> List[GroupResponse]:
    faces = await cont.store.list_unclustered_faces()
    if request.method == "dbscan":
        groups = cont.density_grouper.group(faces, eps=request.eps, min_points=request.min_points)
    else:
        groups = cont.hierarchical_grouper.group(faces, threshold=request.threshold)
    logger.info("Grouping preview", method=request.method, faces=len(faces), groups=len(groups))
    return [GroupResponse.from_group(group) for group in groups]
