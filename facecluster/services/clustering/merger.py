"""Detection and application of merges between near-duplicate pending clusters."""
from typing import List, Optional, Sequence, Set, Tuple

from facecluster.core.config import settings
from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import Cluster, ClusterStatus
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.domain.value_objects.clustering import MergeResult
from facecluster.services.clustering.centroid import CentroidMaintainer
from facecluster.services.vector_math import cosine_similarity

logger = get_logger(__name__)


class ClusterMerger:
    """Greedy single-pass merge of pending clusters with similar centroids.

    Pairs are detected against the centroids as they were when the pass
    started. Once a cluster has been merged away it is skipped, but its keep
    target is not re-evaluated: if A absorbs B, a later C is still compared
    with A's original centroid. The pass is therefore not transitive. Use
    ``merge_until_stable`` when the merge closure matters.
    """

    def __init__(self, store: ClusterStore, maintainer: CentroidMaintainer) -> None:
        """Initialize the merger.

        Args:
            store: Persistence layer holding faces and clusters
            maintainer: Centroid maintainer shared with the other cluster services
        """
        self._store = store
        self._maintainer = maintainer

    @staticmethod
    def find_merge_pairs(clusters: Sequence[Cluster], threshold: float) -> List[Tuple[str, str]]:
        """Detect ``(keep_id, merge_id)`` pairs without touching storage."""
        eligible = [
            c for c in clusters
            if c.status == ClusterStatus.PENDING and c.centroid is not None
        ]

        pairs: List[Tuple[str, str]] = []
        processed: Set[str] = set()

        for i, keep in enumerate(eligible):
            if keep.id in processed:
                continue
            for other in eligible[i + 1:]:
                if other.id in processed:
                    continue
                if cosine_similarity(keep.centroid, other.centroid) >= threshold:
                    pairs.append((keep.id, other.id))
                    processed.add(other.id)
        return pairs

    async def merge_similar(
        self,
        pending_clusters: Sequence[Cluster],
        threshold: Optional[float] = None,
    ) -> MergeResult:
        """Merge every qualifying pair among ``pending_clusters``.

        Args:
            pending_clusters: Candidate clusters in processing order; only
                pending clusters with a centroid are considered
            threshold: Minimum centroid similarity (inclusive), defaults to
                ``settings.MERGE_THRESHOLD``

        Returns:
            MergeResult listing the applied pairs
        """
        if threshold is None:
            threshold = settings.MERGE_THRESHOLD

        pairs = self.find_merge_pairs(pending_clusters, threshold)

        for keep_id, merge_id in pairs:
            await self._apply(keep_id, merge_id)

        logger.info(
            "Merge pass complete",
            candidates=len(pending_clusters),
            merged=len(pairs),
            threshold=threshold,
        )
        return MergeResult(merged_pairs=pairs)

    async def merge_pending(self, threshold: Optional[float] = None) -> MergeResult:
        """Run ``merge_similar`` over the pending clusters currently in the store."""
        pending = await self._store.list_clusters(statuses=[ClusterStatus.PENDING])
        return await self.merge_similar(pending, threshold)

    async def merge_until_stable(
        self,
        threshold: Optional[float] = None,
        max_rounds: Optional[int] = None,
    ) -> MergeResult:
        """Repeat ``merge_pending`` with fresh centroids until a pass merges nothing.

        Args:
            threshold: Minimum centroid similarity, defaults to ``settings.MERGE_THRESHOLD``
            max_rounds: Upper bound on passes, defaults to ``settings.MERGE_MAX_ROUNDS``

        Returns:
            MergeResult with the pairs of every pass, in order
        """
        if max_rounds is None:
            max_rounds = settings.MERGE_MAX_ROUNDS

        combined = MergeResult()
        round_number = 0
        for round_number in range(1, max_rounds + 1):
            result = await self.merge_pending(threshold)
            combined.merged_pairs.extend(result.merged_pairs)
            if not result.merged_pairs:
                break
        else:
            logger.warning("Merge did not stabilize", rounds=max_rounds)

        logger.info("Iterative merge complete", rounds=round_number, merged=combined.merged_count)
        return combined

    async def _apply(self, keep_id: str, merge_id: str) -> None:
        async with self._maintainer.lock_for(merge_id):
            moved = await self._store.reassign_faces(merge_id, keep_id)
            merged = await self._store.get_cluster(merge_id)
            merged.status = ClusterStatus.MERGED
            await self._store.update_cluster(merged)

        await self._maintainer.recompute(keep_id)
        logger.debug("Merged cluster", keep_id=keep_id, merge_id=merge_id, moved_faces=moved)
