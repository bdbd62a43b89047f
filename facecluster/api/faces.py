"""Face ingestion and browsing endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from facecluster.api.models.face import (
    FaceResponse,
    FaceStatsResponse,
    IngestDetectionsRequest,
    IngestResponse,
)
from facecluster.infrastructure.dependencies import (
    get_cluster_management_service,
    get_face_ingest_service,
)
from facecluster.services.cluster_management import ClusterManagementService
from facecluster.services.face_ingest import FaceIngestService

router = APIRouter(
    responses={
        404: {"description": "Face not found"},
        400: {"description": "Invalid request"},
    }
)


@router.post(
    "/detections",
    response_model=IngestResponse,
    status_code=201,
    summary="Store detections of an image",
    description="Stores faces detected by an external model, optionally clustering them.",
)
async def ingest_detections(
    request: IngestDetectionsRequest,
    service: FaceIngestService = Depends(get_face_ingest_service),
) -> IngestResponse:
    result = await service.ingest_detections(
        [d.to_domain() for d in request.detections],
        image_id=request.image_id,
        cluster=request.cluster,
        threshold=request.threshold,
    )
    return IngestResponse.from_result(result)


@router.post(
    "/images",
    response_model=IngestResponse,
    status_code=201,
    summary="Detect and store the faces of an image",
    description="The request body is the raw image (JPEG or PNG).",
)
async def ingest_image(
    request: Request,
    image_id: Optional[str] = None,
    max_faces: Optional[int] = Query(None, ge=1, le=100),
    cluster: bool = False,
    service: FaceIngestService = Depends(get_face_ingest_service),
) -> IngestResponse:
    image_bytes = await request.body()
    result = await service.ingest_image(image_bytes, image_id=image_id, max_faces=max_faces, cluster=cluster)
    return IngestResponse.from_result(result)


@router.get("", response_model=List[FaceResponse], summary="List faces")
async def list_faces(
    cluster_id: Optional[str] = None,
    unclustered: bool = False,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: FaceIngestService = Depends(get_face_ingest_service),
) -> List[FaceResponse]:
    faces = await service.list_faces(cluster_id=cluster_id, unclustered=unclustered, limit=limit, offset=offset)
    return [FaceResponse.from_face(f) for f in faces]


@router.get("/stats", response_model=FaceStatsResponse, summary="Face counts")
async def face_stats(
    service: FaceIngestService = Depends(get_face_ingest_service),
) -> FaceStatsResponse:
    return FaceStatsResponse(**await service.face_stats())


@router.get("/{face_id}", response_model=FaceResponse, summary="Get a face")
async def get_face(
    face_id: str,
    service: FaceIngestService = Depends(get_face_ingest_service),
) -> FaceResponse:
    return FaceResponse.from_face(await service.get_face(face_id))


@router.delete("/{face_id}", status_code=204, summary="Delete a face")
async def delete_face(
    face_id: str,
    service: FaceIngestService = Depends(get_face_ingest_service),
) -> None:
    await service.delete_face(face_id)


@router.delete("/{face_id}/cluster", summary="Remove a face from its cluster")
async def remove_from_cluster(
    face_id: str,
    service: ClusterManagementService = Depends(get_cluster_management_service),
) -> dict:
    return {"removed": await service.remove_face(face_id)}
