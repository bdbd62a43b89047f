"""Identity labeling: identities and their links to clusters."""
from typing import Dict, List, Optional, Sequence

from facecluster.core.exceptions import ClusterNotFoundError, InvalidOperationError
from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import (
    Cluster,
    ClusterStatus,
    Identity,
    IdentityCluster,
)
from facecluster.domain.entities.face import utcnow
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.services.clustering.centroid import CentroidMaintainer

logger = get_logger(__name__)


class IdentityService:
    """Service for naming people and attaching clusters to them.

    Linking a cluster confirms it, which makes its centroid a recognition
    candidate. Unlinking the last identity of a cluster puts it back into
    the pending pool, where automatic merging can touch it again.

    Example:
        ```python
        service = IdentityService(store, maintainer)
        alice = await service.create_identity_with_clusters("Alice", [cluster_id])
        ```
    """

    def __init__(self, store: ClusterStore, maintainer: CentroidMaintainer) -> None:
        """Initialize the identity service.

        Args:
            store: Persistence layer holding identities and clusters
            maintainer: Centroid maintainer used when a linked cluster lacks a centroid
        """
        self._store = store
        self._maintainer = maintainer

    async def get_identity(self, identity_id: str) -> Identity:
        return await self._store.get_identity(identity_id)

    async def list_identities(self) -> List[Identity]:
        return await self._store.list_identities()

    async def get_identity_clusters(self, identity_id: str) -> List[Cluster]:
        """Clusters linked to an identity, in link order."""
        await self._store.get_identity(identity_id)
        clusters = []
        for link in await self._store.list_identity_clusters(identity_id=identity_id):
            clusters.append(await self._store.get_cluster(link.cluster_id))
        return clusters

    async def create_identity(self, name: str, description: Optional[str] = None) -> Identity:
        identity = await self._store.add_identity(Identity(name=name, description=description))
        logger.info("Created identity", identity_id=identity.id, name=name)
        return identity

    async def update_identity(
        self,
        identity_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Identity:
        """Change the name and/or description of an identity.

        Raises:
            IdentityNotFoundError: If the identity does not exist
        """
        identity = await self._store.get_identity(identity_id)
        if name is not None:
            identity.name = name
        if description is not None:
            identity.description = description
        identity.updated_at = utcnow()
        return await self._store.update_identity(identity)

    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity; clusters left without links revert to pending."""
        links = await self._store.list_identity_clusters(identity_id=identity_id)
        await self._store.delete_identity(identity_id)
        for link in links:
            await self._revert_if_unlinked(link.cluster_id)
        logger.info("Deleted identity", identity_id=identity_id, unlinked_clusters=len(links))

    async def link_cluster(self, identity_id: str, cluster_id: str) -> IdentityCluster:
        """Attach a cluster to an identity and confirm it.

        Linking an already linked pair returns the existing link.

        Args:
            identity_id: Identity receiving the cluster
            cluster_id: Cluster to confirm

        Returns:
            The link record

        Raises:
            IdentityNotFoundError: If the identity does not exist
            ClusterNotFoundError: If the cluster does not exist
            InvalidOperationError: If the cluster has been merged
        """
        await self._store.get_identity(identity_id)

        existing = await self._store.list_identity_clusters(identity_id=identity_id, cluster_id=cluster_id)
        if existing:
            return existing[0]

        async with self._maintainer.lock_for(cluster_id):
            cluster = await self._store.get_cluster(cluster_id)
            if cluster.status == ClusterStatus.MERGED:
                raise InvalidOperationError(
                    "Cannot link a merged cluster",
                    details={"cluster_id": cluster_id},
                )
            link = await self._store.add_identity_cluster(
                IdentityCluster(identity_id=identity_id, cluster_id=cluster_id)
            )
            cluster.status = ClusterStatus.CONFIRMED
            await self._store.update_cluster(cluster)

        if cluster.centroid is None:
            await self._maintainer.recompute(cluster_id)

        logger.info("Linked cluster to identity", identity_id=identity_id, cluster_id=cluster_id)
        return link

    async def link_clusters(self, identity_id: str, cluster_ids: Sequence[str]) -> List[IdentityCluster]:
        return [await self.link_cluster(identity_id, cluster_id) for cluster_id in cluster_ids]

    async def unlink_cluster(self, identity_id: str, cluster_id: str) -> bool:
        """Remove one identity-cluster link.

        Only the given pair is removed. The cluster reverts to pending once no
        identity links to it anymore.

        Returns:
            Whether the link existed
        """
        removed = await self._store.delete_identity_cluster(identity_id, cluster_id)
        if removed:
            await self._revert_if_unlinked(cluster_id)
            logger.info("Unlinked cluster from identity", identity_id=identity_id, cluster_id=cluster_id)
        return removed

    async def create_identity_with_clusters(
        self,
        name: str,
        cluster_ids: Sequence[str],
        description: Optional[str] = None,
    ) -> Identity:
        identity = await self.create_identity(name, description)
        if cluster_ids:
            await self.link_clusters(identity.id, cluster_ids)
        return identity

    async def identity_stats(self) -> Dict[str, int]:
        """Counts of identities with and without linked clusters."""
        identities = await self._store.list_identities()
        linked = {link.identity_id for link in await self._store.list_identity_clusters()}
        with_clusters = sum(1 for identity in identities if identity.id in linked)
        return {
            "total": len(identities),
            "with_clusters": with_clusters,
            "without_clusters": len(identities) - with_clusters,
        }

    async def _revert_if_unlinked(self, cluster_id: str) -> None:
        if await self._store.list_identity_clusters(cluster_id=cluster_id):
            return
        async with self._maintainer.lock_for(cluster_id):
            try:
                cluster = await self._store.get_cluster(cluster_id)
            except ClusterNotFoundError:
                return
            if cluster.status == ClusterStatus.CONFIRMED:
                cluster.status = ClusterStatus.PENDING
                await self._store.update_cluster(cluster)
