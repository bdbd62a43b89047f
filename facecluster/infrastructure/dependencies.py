"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends

from facecluster.core.container import ServiceContainer, container
from facecluster.core.exceptions import ServiceNotInitializedError
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
from facecluster.services.recognition import RecognitionService


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance."""
    if not container.initialized:
        # Attempt to initialize if not already done (e.g., during testing)
        try:
            await container.initialize()
        except Exception as e:
            # Raise specific error if container is needed but fails init
            raise ServiceNotInitializedError(f"Service container could not be initialized: {e}")
    return container


async def get_batch_clusterer(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[BatchClusterer, None]:
    yield cont.batch_clusterer


async def get_cluster_merger(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[ClusterMerger, None]:
    yield cont.cluster_merger


async def get_maintainer(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[CentroidMaintainer, None]:
    yield cont.maintainer


async def get_hierarchical_grouper(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[HierarchicalGrouper, None]:
    yield cont.hierarchical_grouper


async def get_density_grouper(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[DensityGrouper, None]:
    yield cont.density_grouper


async def get_cluster_management_service(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[ClusterManagementService, None]:
    """Provide the cluster management service.

    Raises:
        ServiceNotInitializedError: If the service is not initialized
    """
    if cont.cluster_management_service is None:
        raise ServiceNotInitializedError("Cluster management service not initialized")
    yield cont.cluster_management_service


async def get_identity_service(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[IdentityService, None]:
    if cont.identity_service is None:
        raise ServiceNotInitializedError("Identity service not initialized")
    yield cont.identity_service


async def get_recognition_service(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[RecognitionService, None]:
    if cont.recognition_service is None:
        raise ServiceNotInitializedError("Recognition service not initialized")
    yield cont.recognition_service


async def get_face_ingest_service(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[FaceIngestService, None]:
    if cont.face_ingest_service is None:
        raise ServiceNotInitializedError("Face ingest service not initialized")
    yield cont.face_ingest_service
