"""Density-based grouping of faces (DBSCAN)."""
from typing import Dict, List, Optional, Sequence

import numpy as np
from sklearn.cluster import DBSCAN

from facecluster.core.config import settings
from facecluster.core.logging import get_logger
from facecluster.domain.entities.face import Face
from facecluster.domain.value_objects.clustering import ClusterGroup
from facecluster.services.vector_math import mean_vector

logger = get_logger(__name__)


class DensityGrouper:
    """DBSCAN over cosine distance, an alternative to agglomerative grouping.

    Finds groups of arbitrary shape without a target count. Points that are
    not density-reachable from any core point are returned as singleton
    groups rather than dropped, so every input face ends up in exactly one
    group.
    """

    def group(
        self,
        faces: Sequence[Face],
        eps: Optional[float] = None,
        min_points: Optional[int] = None,
    ) -> List[ClusterGroup]:
        """Group ``faces`` by density.

        Args:
            faces: Faces to group; faces without an embedding are excluded
            eps: Neighbourhood radius in cosine distance, defaults to ``settings.DBSCAN_EPS``
            min_points: Neighbours (excluding the point itself) needed for a core
                point, defaults to ``settings.DBSCAN_MIN_POINTS``

        Returns:
            Groups ordered by the first member's position in ``faces``
        """
        eps = settings.DBSCAN_EPS if eps is None else eps
        min_points = settings.DBSCAN_MIN_POINTS if min_points is None else min_points

        usable = [face for face in faces if face.has_embedding]
        if not usable:
            return []

        matrix = np.vstack([face.embedding for face in usable])
        # scikit-learn counts the point itself towards min_samples.
        labels = DBSCAN(eps=eps, min_samples=min_points + 1, metric="cosine").fit_predict(matrix)

        members: Dict[str, List[int]] = {}
        for index, label in enumerate(labels):
            key = f"noise_{index}" if label == -1 else f"cluster_{int(label)}"
            members.setdefault(key, []).append(index)

        groups = [
            ClusterGroup(
                cluster_id=key,
                face_ids=[usable[i].id for i in indices],
                centroid=mean_vector([usable[i].embedding for i in indices]),
            )
            for key, indices in members.items()
        ]
        logger.info(
            "Density grouping complete",
            faces=len(usable),
            groups=len(groups),
            noise=int(np.sum(labels == -1)),
            eps=eps,
        )
        return groups
