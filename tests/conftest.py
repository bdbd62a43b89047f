"""Shared fixtures for the face clustering test suite."""
from typing import Optional, Sequence

import pytest

from facecluster.domain.entities.cluster import Cluster, ClusterStatus
from facecluster.domain.entities.face import Face
from facecluster.infrastructure.memory.store import InMemoryClusterStore
from facecluster.services.cluster_management import ClusterManagementService
from facecluster.services.clustering import BatchClusterer, CentroidMaintainer, ClusterMerger
from facecluster.services.face_ingest import FaceIngestService
from facecluster.services.identity_service import IdentityService
from facecluster.services.recognition import RecognitionService


@pytest.fixture
def store():
    """Provide an empty in-memory store."""
    return InMemoryClusterStore()


@pytest.fixture
def maintainer(store):
    return CentroidMaintainer(store)


@pytest.fixture
def clusterer(store, maintainer):
    return BatchClusterer(store, maintainer)


@pytest.fixture
def merger(store, maintainer):
    return ClusterMerger(store, maintainer)


@pytest.fixture
def management(store, maintainer):
    return ClusterManagementService(store, maintainer)


@pytest.fixture
def identities(store, maintainer):
    return IdentityService(store, maintainer)


@pytest.fixture
def recognition(store):
    return RecognitionService(store)


@pytest.fixture
def ingest(store, clusterer, maintainer):
    return FaceIngestService(store, clusterer, maintainer)


@pytest.fixture
def add_face(store):
    """Store a face with the given embedding and optional cluster."""
    async def _add(embedding: Optional[Sequence[float]], cluster_id: Optional[str] = None) -> Face:
        return await store.add_face(Face(embedding=embedding, cluster_id=cluster_id))
    return _add


@pytest.fixture
def add_cluster(store, maintainer):
    """Store a cluster holding new faces with the given embeddings."""
    async def _add(*embeddings: Sequence[float], status: ClusterStatus = ClusterStatus.PENDING) -> Cluster:
        cluster = await store.add_cluster(Cluster(status=status))
        for embedding in embeddings:
            await store.add_face(Face(embedding=embedding, cluster_id=cluster.id))
        return await maintainer.recompute(cluster.id)
    return _add
