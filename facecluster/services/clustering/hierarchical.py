"""Offline agglomerative grouping of a closed set of faces."""
from typing import List, Optional, Sequence

import numpy as np

from facecluster.core.config import settings
from facecluster.core.logging import get_logger
from facecluster.domain.entities.face import Face
from facecluster.domain.value_objects.clustering import ClusterGroup
from facecluster.services.vector_math import mean_vector, similarity_matrix

logger = get_logger(__name__)


class HierarchicalGrouper:
    """Average-linkage agglomerative clustering with a similarity stopping threshold.

    Starts from one group per face and repeatedly merges the two groups with
    the highest average pairwise cosine similarity between their members,
    until the best pair falls below the threshold. Average linkage is used
    instead of centroid comparison so that a single noisy early member does
    not drag a group towards the wrong neighbours.

    Each round scans every pair of groups, so a run is O(n^3) in the worst
    case. That is fine for the few hundred faces of an upload batch and is a
    scaling limit, not something to use on a whole archive.
    """

    def group(self, faces: Sequence[Face], threshold: Optional[float] = None) -> List[ClusterGroup]:
        """Group ``faces`` without reference to any existing cluster.

        Args:
            faces: Faces to group; faces without an embedding are excluded
            threshold: Minimum average-linkage similarity to merge two groups,
                defaults to ``settings.CLUSTERING_THRESHOLD``

        Returns:
            Transient groups with member ids and mean centroid
        """
        if threshold is None:
            threshold = settings.CLUSTERING_THRESHOLD

        usable = [face for face in faces if face.has_embedding]
        if not usable:
            return []

        embeddings = [face.embedding for face in usable]
        sims = similarity_matrix(embeddings)

        # Each group: (label, member indices into ``usable``).
        groups: List[tuple] = [(f"cluster_{i}", [i]) for i in range(len(usable))]

        while len(groups) > 1:
            best_similarity = -np.inf
            merge_i = merge_j = -1

            for i in range(len(groups)):
                for j in range(i + 1, len(groups)):
                    similarity = self._average_linkage(sims, groups[i][1], groups[j][1])
                    if similarity > best_similarity:
                        best_similarity = similarity
                        merge_i, merge_j = i, j

            if best_similarity < threshold:
                break

            merged = (groups[merge_i][0], groups[merge_i][1] + groups[merge_j][1])
            groups = [g for k, g in enumerate(groups) if k not in (merge_i, merge_j)]
            groups.append(merged)

        result = [
            ClusterGroup(
                cluster_id=label,
                face_ids=[usable[k].id for k in members],
                centroid=mean_vector([embeddings[k] for k in members]),
            )
            for label, members in groups
        ]
        logger.info(
            "Hierarchical grouping complete",
            faces=len(usable),
            excluded=len(faces) - len(usable),
            groups=len(result),
            threshold=threshold,
        )
        return result

    @staticmethod
    def _average_linkage(sims: np.ndarray, members_a: List[int], members_b: List[int]) -> float:
        return float(sims[np.ix_(members_a, members_b)].mean())
