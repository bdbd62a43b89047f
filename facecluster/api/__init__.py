"""API v1 router initialization."""
from fastapi import APIRouter

from .clustering import router as clustering_router
from .clusters import router as clusters_router
from .faces import router as faces_router
from .identities import router as identities_router
from .recognition import router as recognition_router
from .settings import router as settings_router

# Create v1 router
router = APIRouter()

router.include_router(clustering_router, prefix="/clustering", tags=["clustering"])
router.include_router(clusters_router, prefix="/clusters", tags=["clusters"])
router.include_router(faces_router, prefix="/faces", tags=["faces"])
router.include_router(identities_router, prefix="/identities", tags=["identities"])
router.include_router(recognition_router, prefix="/recognition", tags=["recognition"])
router.include_router(settings_router, prefix="/settings", tags=["settings"])
