"""Service container for dependency injection."""
from typing import Dict, Optional

from facecluster.core.config import settings
from facecluster.core.logging import get_logger

# Import interfaces
from facecluster.domain.interfaces.recognition.embedder import Embedder
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore

# Import concrete implementations used for instantiation
from facecluster.infrastructure.database.store import SqlAlchemyClusterStore
from facecluster.infrastructure.memory.store import InMemoryClusterStore
from facecluster.services.camera_session import CameraRecognitionSession
from facecluster.services.cluster_management import ClusterManagementService
from facecluster.services.clustering import (
    BatchClusterer,
    CentroidMaintainer,
    ClusterMerger,
    DensityGrouper,
    HierarchicalGrouper,
)
from facecluster.services.face_ingest import FaceIngestService
from facecluster.services.identity_service import IdentityService
from facecluster.services.recognition import InsightFaceEmbedder, RecognitionService

logger = get_logger(__name__)


class ServiceContainer:
    """Container for application services.

    This container manages the lifecycle and dependencies of all services in the application.
    Every clustering service shares one store and one CentroidMaintainer, so
    the per-cluster locks cover all writers of the process.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        result = await container.batch_clusterer.cluster_unassigned()
        ```
    """

    def __init__(self, store: Optional[ClusterStore] = None, embedder: Optional[Embedder] = None) -> None:
        """Initialize empty container.

        Args:
            store: Store to use instead of the one selected by ``settings.STORE_BACKEND``
            embedder: Embedder to use instead of the InsightFace adapter
        """
        self._store_override = store
        self._embedder_override = embedder

        # Core services - Use interface type hints
        self.store: Optional[ClusterStore] = None
        self.embedder: Optional[Embedder] = None
        self.maintainer: Optional[CentroidMaintainer] = None

        # Domain services (depend on interfaces)
        self.batch_clusterer: Optional[BatchClusterer] = None
        self.cluster_merger: Optional[ClusterMerger] = None
        self.hierarchical_grouper: Optional[HierarchicalGrouper] = None
        self.density_grouper: Optional[DensityGrouper] = None
        self.recognition_service: Optional[RecognitionService] = None
        self.identity_service: Optional[IdentityService] = None
        self.cluster_management_service: Optional[ClusterManagementService] = None
        self.face_ingest_service: Optional[FaceIngestService] = None

        self.camera_sessions: Dict[str, CameraRecognitionSession] = {}

    @property
    def initialized(self) -> bool:
        return self.store is not None

    def _build_store(self) -> ClusterStore:
        if self._store_override is not None:
            return self._store_override
        if settings.STORE_BACKEND == "database":
            return SqlAlchemyClusterStore.from_url(settings.DATABASE_URL)
        return InMemoryClusterStore()

    async def initialize(self) -> None:
        """Initialize all services in the correct order."""
        self.store = self._build_store()
        if isinstance(self.store, SqlAlchemyClusterStore):
            await self.store.initialize()
        self.embedder = self._embedder_override or InsightFaceEmbedder()

        self.maintainer = CentroidMaintainer(self.store)
        self.batch_clusterer = BatchClusterer(self.store, self.maintainer)
        self.cluster_merger = ClusterMerger(self.store, self.maintainer)
        self.hierarchical_grouper = HierarchicalGrouper()
        self.density_grouper = DensityGrouper()
        self.recognition_service = RecognitionService(self.store)
        self.identity_service = IdentityService(self.store, self.maintainer)
        self.cluster_management_service = ClusterManagementService(self.store, self.maintainer)
        self.face_ingest_service = FaceIngestService(
            store=self.store,
            clusterer=self.batch_clusterer,
            maintainer=self.maintainer,
            embedder=self.embedder,
        )
        logger.info(
            "Initialized services",
            store=type(self.store).__name__,
            embedder=type(self.embedder).__name__,
        )

    def camera_session(self, camera_id: str) -> CameraRecognitionSession:
        """Session of ``camera_id``, started on first use."""
        session = self.camera_sessions.get(camera_id)
        if session is None or not session.active:
            session = CameraRecognitionSession(self.face_ingest_service, self.recognition_service)
            self.camera_sessions[camera_id] = session
            logger.info("Started camera session", camera_id=camera_id)
        return session

    def stop_camera_session(self, camera_id: str) -> bool:
        """Stop the session of ``camera_id``; returns whether one was running."""
        session = self.camera_sessions.pop(camera_id, None)
        if session is None:
            return False
        session.stop()
        return True

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        for camera_id in list(self.camera_sessions):
            self.stop_camera_session(camera_id)

        # Cleanup domain services
        self.face_ingest_service = None
        self.cluster_management_service = None
        self.identity_service = None
        self.recognition_service = None
        self.density_grouper = None
        self.hierarchical_grouper = None
        self.cluster_merger = None
        self.batch_clusterer = None
        self.maintainer = None
        self.embedder = None

        # Cleanup infrastructure services
        if isinstance(self.store, SqlAlchemyClusterStore):
            await self.store.close()
        self.store = None


# Global container instance
container = ServiceContainer()
