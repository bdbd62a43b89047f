"""Identity labeling endpoints."""
from typing import List

from fastapi import APIRouter, Depends

from facecluster.api.models.cluster import ClusterResponse
from facecluster.api.models.identity import (
    CreateIdentityRequest,
    IdentityResponse,
    IdentityStatsResponse,
    LinkClustersRequest,
    UpdateIdentityRequest,
)
from facecluster.infrastructure.dependencies import get_identity_service
from facecluster.services.identity_service import IdentityService

router = APIRouter(
    responses={
        404: {"description": "Identity or cluster not found"},
        400: {"description": "Invalid operation"},
    }
)


@router.get("", response_model=List[IdentityResponse], summary="List identities")
async def list_identities(
    service: IdentityService = Depends(get_identity_service),
) -> List[IdentityResponse]:
    return [IdentityResponse.from_identity(i) for i in await service.list_identities()]


@router.get("/stats", response_model=IdentityStatsResponse, summary="Identity counts")
async def identity_stats(
    service: IdentityService = Depends(get_identity_service),
) -> IdentityStatsResponse:
    return IdentityStatsResponse(**await service.identity_stats())


@router.post("", response_model=IdentityResponse, status_code=201, summary="Create an identity")
async def create_identity(
    request: CreateIdentityRequest,
    service: IdentityService = Depends(get_identity_service),
) -> IdentityResponse:
    identity = await service.create_identity_with_clusters(
        request.name, request.cluster_ids, description=request.description
    )
    return await _detail(service, identity.id)


@router.get("/{identity_id}", response_model=IdentityResponse, summary="Get an identity with its clusters")
async def get_identity(
    identity_id: str,
    service: IdentityService = Depends(get_identity_service),
) -> IdentityResponse:
    return await _detail(service, identity_id)


@router.patch("/{identity_id}", response_model=IdentityResponse, summary="Update an identity")
async def update_identity(
    identity_id: str,
    request: UpdateIdentityRequest,
    service: IdentityService = Depends(get_identity_service),
) -> IdentityResponse:
    identity = await service.update_identity(identity_id, name=request.name, description=request.description)
    return IdentityResponse.from_identity(identity)


@router.delete("/{identity_id}", status_code=204, summary="Delete an identity")
async def delete_identity(
    identity_id: str,
    service: IdentityService = Depends(get_identity_service),
) -> None:
    await service.delete_identity(identity_id)


@router.post("/{identity_id}/clusters", response_model=IdentityResponse, summary="Link clusters")
async def link_clusters(
    identity_id: str,
    request: LinkClustersRequest,
    service: IdentityService = Depends(get_identity_service),
) -> IdentityResponse:
    await service.link_clusters(identity_id, request.cluster_ids)
    return await _detail(service, identity_id)


@router.delete("/{identity_id}/clusters/{cluster_id}", summary="Unlink a cluster")
async def unlink_cluster(
    identity_id: str,
    cluster_id: str,
    service: IdentityService = Depends(get_identity_service),
) -> dict:
    return {"removed": await service.unlink_cluster(identity_id, cluster_id)}


async def _detail(service: IdentityService, identity_id: str) -> IdentityResponse:
    identity = await service.get_identity(identity_id)
    clusters = await service.get_identity_clusters(identity_id)
    return IdentityResponse.from_identity(
        identity, clusters=[ClusterResponse.from_cluster(c) for c in clusters]
    )
