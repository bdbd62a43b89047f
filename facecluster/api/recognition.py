"""Recognition endpoints, including the camera stream path."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from facecluster.api.models.recognition import (
    CameraDetectionRequest,
    ClearLogsResponse,
    RecognitionLogsResponse,
    RecognitionStatsResponse,
    RecognizeRequest,
    RecognizeResponse,
)
from facecluster.core.container import ServiceContainer
from facecluster.core.logging import get_logger
from facecluster.domain.value_objects.recognition import FrameOutcome
from facecluster.infrastructure.dependencies import get_container, get_recognition_service
from facecluster.services.recognition import RecognitionService

logger = get_logger(__name__)
router = APIRouter(
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/recognize",
    response_model=RecognizeResponse,
    summary="Recognize an embedding",
    description="Matches an embedding against confirmed identities and logs the attempt.",
)
async def recognize(
    request: RecognizeRequest,
    service: RecognitionService = Depends(get_recognition_service),
) -> RecognizeResponse:
    outcome = await service.recognize(
        request.embedding,
        camera_id=request.camera_id,
        face_id=request.face_id,
        threshold=request.threshold,
    )
    return RecognizeResponse(result=outcome.result, log_id=outcome.log.id)


@router.get("/logs", response_model=RecognitionLogsResponse, summary="Query the recognition log")
async def get_logs(
    camera_id: Optional[str] = None,
    identity_id: Optional[str] = None,
    is_stranger: Optional[bool] = None,
    since: Optional[datetime] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: RecognitionService = Depends(get_recognition_service),
) -> RecognitionLogsResponse:
    logs = await service.get_logs(
        camera_id=camera_id,
        identity_id=identity_id,
        is_stranger=is_stranger,
        since=since,
        limit=limit,
        offset=offset,
    )
    return RecognitionLogsResponse(logs=logs)


@router.get("/recent", response_model=RecognitionLogsResponse, summary="Recent recognitions")
async def get_recent(
    minutes: int = Query(60, ge=1),
    service: RecognitionService = Depends(get_recognition_service),
) -> RecognitionLogsResponse:
    return RecognitionLogsResponse(logs=await service.get_recent(minutes))


@router.get("/stats", response_model=RecognitionStatsResponse, summary="Recognition counts")
async def get_stats(
    since: Optional[datetime] = None,
    service: RecognitionService = Depends(get_recognition_service),
) -> RecognitionStatsResponse:
    return RecognitionStatsResponse(**await service.recognition_stats(since))


@router.delete("/logs", response_model=ClearLogsResponse, summary="Clear the recognition log")
async def clear_logs(
    days_to_keep: Optional[int] = Query(None, ge=0, description="Keep this many days; clear everything when omitted"),
    service: RecognitionService = Depends(get_recognition_service),
) -> ClearLogsResponse:
    if days_to_keep is None:
        deleted = await service.clear_all_logs()
    else:
        deleted = await service.clear_old_logs(days_to_keep)
    return ClearLogsResponse(deleted=deleted)


@router.post(
    "/cameras/{camera_id}/detections",
    response_model=FrameOutcome,
    summary="Process one camera detection",
    description="Deduplicates, stores, recognizes and clusters a face seen by a camera.",
)
async def process_camera_detection(
    camera_id: str,
    request: CameraDetectionRequest,
    cont: ServiceContainer = Depends(get_container),
) -> FrameOutcome:
    session = cont.camera_session(camera_id)
    return await session.process_detection(request.detection.to_domain(), camera_id)


@router.delete("/cameras/{camera_id}", summary="Stop a camera session")
async def stop_camera_session(
    camera_id: str,
    cont: ServiceContainer = Depends(get_container),
) -> dict:
    stopped = cont.stop_camera_session(camera_id)
    logger.info("Camera session stop requested", camera_id=camera_id, was_running=stopped)
    return {"stopped": stopped}
