"""Incremental assignment of unclustered faces to clusters."""
from typing import List, Optional, Sequence, Tuple

from facecluster.core.config import settings
from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import Cluster, ClusterStatus
from facecluster.domain.entities.face import Face
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.domain.value_objects.clustering import AssignmentResult, FailedFace
from facecluster.services.clustering.centroid import CentroidMaintainer
from facecluster.services.vector_math import cosine_similarity

logger = get_logger(__name__)


class BatchClusterer:
    """Assigns each face of a pool to its best matching cluster or to a new one.

    Faces are processed in pool order. A cluster created for one face is
    immediately a candidate for the faces that follow it in the same call, so
    a run of faces of one new person converges into a single cluster. The
    same code path serves the camera stream with a pool of one face.

    Example:
        ```python
        clusterer = BatchClusterer(store, CentroidMaintainer(store))
        result = await clusterer.cluster_unassigned(threshold=0.5)
        print(result.new_clusters, result.assigned_faces)
        ```
    """

    def __init__(self, store: ClusterStore, maintainer: CentroidMaintainer) -> None:
        """Initialize the clusterer.

        Args:
            store: Persistence layer holding faces and clusters
            maintainer: Centroid maintainer shared with the other cluster services
        """
        self._store = store
        self._maintainer = maintainer

    async def cluster_unassigned(self, threshold: Optional[float] = None) -> AssignmentResult:
        """Load the unclustered pool and the active clusters, then assign the pool."""
        pool = await self._store.list_unclustered_faces()
        active = await self._store.list_clusters(
            statuses=[ClusterStatus.PENDING, ClusterStatus.CONFIRMED]
        )
        return await self.assign_unclustered(pool, active, threshold)

    async def assign_unclustered(
        self,
        pool: Sequence[Face],
        active_clusters: Sequence[Cluster],
        threshold: Optional[float] = None,
    ) -> AssignmentResult:
        """Assign every face in ``pool``.

        Args:
            pool: Faces to place, in processing order
            active_clusters: Candidate clusters; merged or centroid-less ones are ignored
            threshold: Minimum similarity to join a cluster (inclusive), defaults to
                ``settings.CLUSTERING_THRESHOLD``

        Returns:
            AssignmentResult with counts. A face that fails unexpectedly is
            reported in ``failed_faces`` and does not abort the batch.
        """
        if threshold is None:
            threshold = settings.CLUSTERING_THRESHOLD

        candidates: List[Cluster] = [c for c in active_clusters if c.is_active]
        result = AssignmentResult()

        for face in pool:
            if not face.has_embedding:
                result.skipped_faces += 1
                continue

            try:
                match = self._best_match(face, candidates, threshold)
                if match is not None:
                    cluster, similarity = match
                    await self._join(face, cluster, candidates)
                    result.updated_clusters += 1
                    logger.debug(
                        "Assigned face to existing cluster",
                        face_id=face.id,
                        cluster_id=cluster.id,
                        similarity=round(similarity, 4),
                    )
                else:
                    cluster = await self._create_singleton(face)
                    candidates.append(cluster)
                    result.new_clusters += 1
                    result.created_cluster_ids.append(cluster.id)
                    logger.debug("Created singleton cluster", face_id=face.id, cluster_id=cluster.id)
                result.assigned_faces += 1
            except Exception as e:
                logger.error(
                    "Failed to assign face",
                    face_id=face.id,
                    error=str(e),
                    exc_info=True,
                )
                result.failed_faces.append(FailedFace(face_id=face.id, error=str(e)))

        logger.info(
            "Clustering pass complete",
            pool_size=len(pool),
            new_clusters=result.new_clusters,
            updated_clusters=result.updated_clusters,
            assigned_faces=result.assigned_faces,
            skipped_faces=result.skipped_faces,
            failed_faces=len(result.failed_faces),
        )
        return result

    @staticmethod
    def _best_match(
        face: Face, candidates: Sequence[Cluster], threshold: float
    ) -> Optional[Tuple[Cluster, float]]:
        best: Optional[Tuple[Cluster, float]] = None
        for cluster in candidates:
            similarity = cosine_similarity(face.embedding, cluster.centroid)
            if similarity >= threshold and (best is None or similarity > best[1]):
                best = (cluster, similarity)
        return best

    async def _join(self, face: Face, cluster: Cluster, candidates: List[Cluster]) -> None:
        updated = await self._maintainer.attach_face(face.id, cluster.id)

        # Later faces in the pool compare against the refreshed centroid.
        index = next(i for i, c in enumerate(candidates) if c.id == cluster.id)
        if updated is None:
            candidates.pop(index)
        else:
            candidates[index] = updated

    async def _create_singleton(self, face: Face) -> Cluster:
        cluster = Cluster(
            centroid=face.embedding.copy(),
            face_count=1,
            representative_face_id=face.id,
            status=ClusterStatus.PENDING,
        )
        cluster = await self._store.add_cluster(cluster)
        try:
            async with self._maintainer.lock_for(cluster.id):
                await self._store.set_face_cluster(face.id, cluster.id)
        except Exception:
            await self._store.delete_cluster(cluster.id)
            self._maintainer.forget(cluster.id)
            raise
        return cluster
