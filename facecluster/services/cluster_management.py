"""Manual cluster curation: create, merge, split and edit clusters."""
from typing import Dict, Iterable, List, Optional, Sequence, Set

from facecluster.core.exceptions import InvalidOperationError
from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import Cluster, ClusterStatus
from facecluster.domain.entities.face import Face
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.services.clustering.centroid import CentroidMaintainer

logger = get_logger(__name__)


class ClusterManagementService:
    """Service for the corrections a reviewer makes to automatic clustering.

    Every membership change goes through the shared CentroidMaintainer, so
    centroids, face counts and representatives stay consistent with what the
    reviewer did. Source clusters left without members are cleaned up by the
    maintainer.

    Example:
        ```python
        service = ClusterManagementService(store, maintainer)
        merged = await service.merge_clusters([cluster_a.id, cluster_b.id])
        await service.set_representative_face(merged.id, face_id)
        ```
    """

    def __init__(self, store: ClusterStore, maintainer: CentroidMaintainer) -> None:
        """Initialize the service.

        Args:
            store: Persistence layer holding faces and clusters
            maintainer: Centroid maintainer shared with the clustering services
        """
        self._store = store
        self._maintainer = maintainer

    async def get_cluster(self, cluster_id: str) -> Cluster:
        return await self._store.get_cluster(cluster_id)

    async def get_cluster_faces(self, cluster_id: str) -> List[Face]:
        await self._store.get_cluster(cluster_id)
        return await self._store.list_faces_by_cluster(cluster_id)

    async def list_clusters(self, status: Optional[ClusterStatus] = None) -> List[Cluster]:
        statuses = [status] if status is not None else None
        return await self._store.list_clusters(statuses=statuses)

    async def create_cluster(
        self,
        face_ids: Sequence[str],
        status: ClusterStatus = ClusterStatus.PENDING,
    ) -> Cluster:
        """Create a cluster from hand-picked faces.

        The faces leave their previous clusters, which are recomputed.

        Args:
            face_ids: Faces forming the cluster; at least one needs an embedding
            status: Initial status of the cluster

        Returns:
            The new cluster with its centroid computed

        Raises:
            FaceNotFoundError: If a face does not exist
            InvalidOperationError: If no face has an embedding
        """
        return await self._create_from_faces(face_ids, status, skip_source=None)

    async def merge_clusters(self, cluster_ids: Sequence[str]) -> Cluster:
        """Merge several clusters into a new pending cluster.

        The sources are marked merged and keep no members.

        Args:
            cluster_ids: Two or more distinct, non-merged clusters

        Returns:
            The new cluster holding every member of the sources

        Raises:
            InvalidOperationError: If fewer than two clusters are given or one is already merged
            ClusterNotFoundError: If a cluster does not exist
        """
        unique_ids = list(dict.fromkeys(cluster_ids))
        if len(unique_ids) < 2:
            raise InvalidOperationError(
                "At least 2 clusters required for merge",
                details={"cluster_ids": list(cluster_ids)},
            )

        sources = [await self._store.get_cluster(cluster_id) for cluster_id in unique_ids]
        for source in sources:
            if source.status == ClusterStatus.MERGED:
                raise InvalidOperationError(
                    f"Cluster {source.id} has already been merged",
                    details={"cluster_id": source.id},
                )

        target = await self._store.add_cluster(Cluster(status=ClusterStatus.PENDING))
        moved = 0
        for source in sources:
            async with self._maintainer.lock_for(source.id):
                moved += await self._store.reassign_faces(source.id, target.id)
                source = await self._store.get_cluster(source.id)
                source.status = ClusterStatus.MERGED
                await self._store.update_cluster(source)

        merged = await self._maintainer.recompute(target.id)
        if merged is None:
            raise InvalidOperationError(
                "Merged clusters contain no face with an embedding",
                details={"cluster_ids": unique_ids},
            )

        logger.info(
            "Merged clusters manually",
            cluster_ids=unique_ids,
            new_cluster_id=merged.id,
            moved_faces=moved,
        )
        return merged

    async def split_cluster(self, cluster_id: str, face_groups: Sequence[Sequence[str]]) -> List[Cluster]:
        """Split a cluster into one new cluster per face group.

        Faces of the source that are in no group stay in it. When every
        member is moved out, the source is marked merged.

        Args:
            cluster_id: Cluster to split
            face_groups: Two or more groups of member face ids

        Returns:
            The new clusters, in group order

        Raises:
            InvalidOperationError: If fewer than two groups are given or a face
                is not a member of the cluster
            ClusterNotFoundError: If the cluster does not exist
        """
        if len(face_groups) < 2:
            raise InvalidOperationError(
                "At least 2 groups required for split",
                details={"cluster_id": cluster_id, "groups": len(face_groups)},
            )

        source = await self._store.get_cluster(cluster_id)
        member_ids = {face.id for face in await self._store.list_faces_by_cluster(cluster_id)}
        for group in face_groups:
            strangers = [face_id for face_id in group if face_id not in member_ids]
            if strangers:
                raise InvalidOperationError(
                    "Split groups may only contain members of the cluster",
                    details={"cluster_id": cluster_id, "face_ids": strangers},
                )

        new_clusters = []
        for group in face_groups:
            new_clusters.append(await self._create_from_faces(group, ClusterStatus.PENDING, skip_source=source.id))

        remaining = await self._store.list_faces_by_cluster(source.id)
        if remaining:
            await self._maintainer.recompute(source.id)
        else:
            async with self._maintainer.lock_for(source.id):
                source = await self._store.get_cluster(source.id)
                source.status = ClusterStatus.MERGED
                await self._store.update_cluster(source)

        logger.info(
            "Split cluster",
            cluster_id=cluster_id,
            new_cluster_ids=[c.id for c in new_clusters],
            remaining_faces=len(remaining),
        )
        return new_clusters

    async def move_faces(self, face_ids: Sequence[str], target_cluster_id: str) -> int:
        """Move faces into another cluster.

        Args:
            face_ids: Faces to move
            target_cluster_id: Destination cluster, must not be merged

        Returns:
            Number of faces moved

        Raises:
            ClusterNotFoundError: If the target does not exist
            InvalidOperationError: If the target has been merged
        """
        target = await self._store.get_cluster(target_cluster_id)
        if target.status == ClusterStatus.MERGED:
            raise InvalidOperationError(
                "Cannot move faces into a merged cluster",
                details={"cluster_id": target_cluster_id},
            )

        faces = await self._store.get_faces(face_ids)
        sources: Set[str] = set()
        async with self._maintainer.lock_for(target.id):
            for face in faces:
                if face.cluster_id is not None and face.cluster_id != target.id:
                    sources.add(face.cluster_id)
                await self._store.set_face_cluster(face.id, target.id)

        await self._maintainer.recompute(target.id)
        await self._recompute_sources(sources)

        logger.info("Moved faces", target_cluster_id=target.id, faces=len(faces), sources=len(sources))
        return len(faces)

    async def remove_face(self, face_id: str) -> bool:
        """Detach a face from its cluster; returns False when it had none."""
        face = await self._store.get_face(face_id)
        if face.cluster_id is None:
            return False

        async with self._maintainer.lock_for(face.cluster_id):
            await self._store.set_face_cluster(face.id, None)
        await self._maintainer.recompute(face.cluster_id)
        logger.info("Removed face from cluster", face_id=face_id, cluster_id=face.cluster_id)
        return True

    async def set_representative_face(self, cluster_id: str, face_id: str) -> Cluster:
        """Choose the face shown for a cluster.

        Raises:
            InvalidOperationError: If the face is not a member of the cluster
        """
        async with self._maintainer.lock_for(cluster_id):
            cluster = await self._store.get_cluster(cluster_id)
            face = await self._store.get_face(face_id)
            if face.cluster_id != cluster_id or not face.has_embedding:
                raise InvalidOperationError(
                    "Representative face must be a member of the cluster",
                    details={"cluster_id": cluster_id, "face_id": face_id},
                )
            cluster.representative_face_id = face_id
            return await self._store.update_cluster(cluster)

    async def update_cluster_status(self, cluster_id: str, status: ClusterStatus) -> Cluster:
        """Overwrite a cluster's status."""
        async with self._maintainer.lock_for(cluster_id):
            cluster = await self._store.get_cluster(cluster_id)
            cluster.status = status
            return await self._store.update_cluster(cluster)

    async def delete_cluster(self, cluster_id: str) -> None:
        """Delete a cluster; its faces become unclustered."""
        async with self._maintainer.lock_for(cluster_id):
            await self._store.delete_cluster(cluster_id)
        self._maintainer.forget(cluster_id)
        logger.info("Deleted cluster", cluster_id=cluster_id)

    async def cluster_stats(self) -> Dict[str, int]:
        """Cluster counts per status plus the total."""
        clusters = await self._store.list_clusters()
        stats = {status.value: 0 for status in ClusterStatus}
        for cluster in clusters:
            stats[cluster.status.value] += 1
        stats["total"] = len(clusters)
        return stats

    async def _create_from_faces(
        self,
        face_ids: Sequence[str],
        status: ClusterStatus,
        skip_source: Optional[str],
    ) -> Cluster:
        faces = [await self._store.get_face(face_id) for face_id in dict.fromkeys(face_ids)]
        if not any(face.has_embedding for face in faces):
            raise InvalidOperationError(
                "A cluster needs at least one face with an embedding",
                details={"face_ids": list(face_ids)},
            )

        cluster = await self._store.add_cluster(Cluster(status=status))
        sources: Set[str] = set()
        async with self._maintainer.lock_for(cluster.id):
            for face in faces:
                if face.cluster_id is not None:
                    sources.add(face.cluster_id)
                await self._store.set_face_cluster(face.id, cluster.id)

        created = await self._maintainer.recompute(cluster.id)
        sources.discard(skip_source)
        await self._recompute_sources(sources)

        logger.info("Created cluster", cluster_id=cluster.id, faces=len(faces), status=status.value)
        return created

    async def _recompute_sources(self, cluster_ids: Iterable[str]) -> None:
        for cluster_id in cluster_ids:
            await self._maintainer.recompute(cluster_id)
