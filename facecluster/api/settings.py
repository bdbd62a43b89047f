"""Runtime settings endpoints."""
from fastapi import APIRouter

from facecluster.api.models.settings import ThresholdSettings
from facecluster.core.config import settings
from facecluster.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def _current() -> ThresholdSettings:
    return ThresholdSettings(**{name: getattr(settings, name) for name in ThresholdSettings.model_fields})


@router.get("/thresholds", response_model=ThresholdSettings, summary="Current thresholds")
async def get_thresholds() -> ThresholdSettings:
    return _current()


@router.patch(
    "/thresholds",
    response_model=ThresholdSettings,
    summary="Update thresholds",
    description="Updates the live settings; omitted fields keep their value.",
)
async def update_thresholds(request: ThresholdSettings) -> ThresholdSettings:
    changes = request.model_dump(exclude_none=True)
    for name, value in changes.items():
        setattr(settings, name, value)
    logger.info("Updated thresholds", **changes)
    return _current()
