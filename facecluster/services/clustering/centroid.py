"""Cluster centroid maintenance."""
import asyncio
from typing import Dict, Optional

from facecluster.core.exceptions import ClusterNotFoundError
from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import Cluster, ClusterStatus
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.services.vector_math import mean_vector

logger = get_logger(__name__)


class CentroidMaintainer:
    """Keeps a cluster's centroid, face count and representative in sync with its members.

    Centroids are recomputed from the member embeddings on every call rather
    than updated incrementally. Recomputation of one cluster is serialized
    with a per-cluster lock, so two concurrent assignments to the same
    cluster cannot leave ``face_count`` out of step with its membership.

    Example:
        ```python
        maintainer = CentroidMaintainer(store)
        await store.set_face_cluster(face_id, cluster_id)
        await maintainer.recompute(cluster_id)
        ```
    """

    def __init__(self, store: ClusterStore) -> None:
        """Initialize the maintainer.

        Args:
            store: Persistence layer holding faces and clusters
        """
        self._store = store
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, cluster_id: str) -> asyncio.Lock:
        """Lock guarding membership changes of ``cluster_id``."""
        lock = self._locks.get(cluster_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[cluster_id] = lock
        return lock

    def forget(self, cluster_id: str) -> None:
        """Drop the lock of a cluster that no longer exists."""
        self._locks.pop(cluster_id, None)

    async def recompute(self, cluster_id: str) -> Optional[Cluster]:
        """Recompute a cluster from its current members.

        A cluster left with no member embeddings is deleted.

        Args:
            cluster_id: Cluster whose membership changed

        Returns:
            The updated cluster, or None when it was deleted or did not exist
        """
        async with self.lock_for(cluster_id):
            return await self._recompute_locked(cluster_id)

    async def attach_face(self, face_id: str, cluster_id: str) -> Optional[Cluster]:
        """Point a face at ``cluster_id`` and recompute the cluster under one lock.

        Args:
            face_id: Face joining the cluster
            cluster_id: Target cluster

        Returns:
            The updated cluster
        """
        async with self.lock_for(cluster_id):
            await self._store.set_face_cluster(face_id, cluster_id)
            return await self._recompute_locked(cluster_id)

    async def _recompute_locked(self, cluster_id: str) -> Optional[Cluster]:
        try:
            cluster = await self._store.get_cluster(cluster_id)
        except ClusterNotFoundError:
            logger.warning("Centroid recompute requested for missing cluster", cluster_id=cluster_id)
            self.forget(cluster_id)
            return None

        members = await self._store.list_faces_by_cluster(cluster_id)
        with_embedding = [face for face in members if face.has_embedding]

        if not with_embedding:
            await self._store.delete_cluster(cluster_id)
            self.forget(cluster_id)
            logger.info(
                "Deleted cluster with no usable members",
                cluster_id=cluster_id,
                members=len(members),
            )
            return None

        cluster.centroid = mean_vector([face.embedding for face in with_embedding])
        cluster.face_count = len(with_embedding)

        member_ids = {face.id for face in with_embedding}
        if cluster.representative_face_id not in member_ids:
            cluster.representative_face_id = with_embedding[0].id

        updated = await self._store.update_cluster(cluster)
        logger.debug(
            "Updated cluster centroid",
            cluster_id=cluster_id,
            face_count=updated.face_count,
        )
        return updated

    async def recompute_all(self) -> int:
        """Recompute every non-merged cluster.

        Returns:
            Number of clusters processed
        """
        clusters = await self._store.list_clusters(
            statuses=[ClusterStatus.PENDING, ClusterStatus.CONFIRMED]
        )
        logger.info("Recalculating centroids", clusters=len(clusters))
        for cluster in clusters:
            await self.recompute(cluster.id)
        return len(clusters)
