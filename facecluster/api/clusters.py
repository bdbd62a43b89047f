"""Cluster curation endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends

from facecluster.api.models.cluster import (
    ClusterResponse,
    ClusterStatsResponse,
    CreateClusterRequest,
    MergeClustersRequest,
    MoveFacesRequest,
    RepresentativeRequest,
    SplitClusterRequest,
    StatusRequest,
)
from facecluster.domain.entities.cluster import ClusterStatus
from facecluster.infrastructure.dependencies import get_cluster_management_service
from facecluster.services.cluster_management import ClusterManagementService

router = APIRouter(
    responses={
        404: {"description": "Cluster or face not found"},
        400: {"description": "Invalid operation"},
    }
)


@router.get("", response_model=List[ClusterResponse], summary="List clusters")
async def list_clusters(
    status: Optional[ClusterStatus] = None,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> List[ClusterResponse]:
    return [ClusterResponse.from_cluster(c) for c in await service.list_clusters(status)]


@router.get("/stats", response_model=ClusterStatsResponse, summary="Cluster counts by status")
async def cluster_stats(
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> ClusterStatsResponse:
    return ClusterStatsResponse(**await service.cluster_stats())


@router.get("/{cluster_id}", response_model=ClusterResponse, summary="Get a cluster with its faces")
async def get_cluster(
    cluster_id: str,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> ClusterResponse:
    cluster = await service.get_cluster(cluster_id)
    members = await service.get_cluster_faces(cluster_id)
    return ClusterResponse.from_cluster(cluster, face_ids=[f.id for f in members])


@router.post("", response_model=ClusterResponse, status_code=201, summary="Create a cluster from faces")
async def create_cluster(
    request: CreateClusterRequest,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> ClusterResponse:
    return ClusterResponse.from_cluster(await service.create_cluster(request.face_ids, request.status))


@router.post("/merge", response_model=ClusterResponse, summary="Merge clusters into a new one")
async def merge_clusters(
    request: MergeClustersRequest,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> ClusterResponse:
    return ClusterResponse.from_cluster(await service.merge_clusters(request.cluster_ids))


@router.post("/{cluster_id}/split", response_model=List[ClusterResponse], summary="Split a cluster")
async def split_cluster(
    cluster_id: str,
    request: SplitClusterRequest,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> List[ClusterResponse]:
    clusters = await service.split_cluster(cluster_id, request.face_groups)
    return [ClusterResponse.from_cluster(c) for c in clusters]


@router.post("/{cluster_id}/faces", summary="Move faces into a cluster")
async def move_faces(
    cluster_id: str,
    request: MoveFacesRequest,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> dict:
    moved = await service.move_faces(request.face_ids, cluster_id)
    return {"moved": moved}


@router.put("/{cluster_id}/representative", response_model=ClusterResponse, summary="Set the representative face")
async def set_representative(
    cluster_id: str,
    request: RepresentativeRequest,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> ClusterResponse:
    return ClusterResponse.from_cluster(await service.set_representative_face(cluster_id, request.face_id))


@router.patch("/{cluster_id}/status", response_model=ClusterResponse, summary="Change a cluster's status")
async def update_status(
    cluster_id: str,
    request: StatusRequest,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> ClusterResponse:
    return ClusterResponse.from_cluster(await service.update_cluster_status(cluster_id, request.status))


@router.delete("/{cluster_id}", status_code=204, summary="Delete a cluster")
async def delete_cluster(
    cluster_id: str,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> None:
    await service.delete_cluster(cluster_id)
