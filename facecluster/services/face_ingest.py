"""Face ingestion service for storing detections and clustering them."""
from typing import Dict, List, Optional, Sequence

from facecluster.core.exceptions import ServiceNotInitializedError
from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import ClusterStatus
from facecluster.domain.entities.face import DetectedFace, Face
from facecluster.domain.interfaces.recognition.embedder import Embedder
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.domain.value_objects.clustering import AssignmentResult
from facecluster.domain.value_objects.ingest import FailedDetection, IngestResult
from facecluster.services.clustering.batch import BatchClusterer
from facecluster.services.clustering.centroid import CentroidMaintainer

logger = get_logger(__name__)


class FaceIngestService:
    """Service for turning detections into stored faces.

    Detections come either ready-made (embeddings computed by an external
    model) or from image bytes run through an injected Embedder. Each
    detection is stored on its own, so one bad detection does not lose the
    others of the same image.

    Example:
        ```python
        service = FaceIngestService(store, clusterer, maintainer, embedder)
        result = await service.ingest_image(image_bytes, image_id="img-1", cluster=True)
        print(len(result.faces), result.assignment.new_clusters)
        ```
    """

    def __init__(
        self,
        store: ClusterStore,
        clusterer: BatchClusterer,
        maintainer: CentroidMaintainer,
        embedder: Optional[Embedder] = None,
    ) -> None:
        """Initialize the face ingestion service.

        Args:
            store: Persistence layer for face records
            clusterer: Clusterer used when new faces should be assigned right away
            maintainer: Centroid maintainer for clusters losing a face
            embedder: Optional detection/embedding model for raw images
        """
        self._store = store
        self._clusterer = clusterer
        self._maintainer = maintainer
        self._embedder = embedder

    async def save_face(self, detection: DetectedFace, image_id: Optional[str] = None) -> Face:
        """Store one detection as an unclustered face."""
        face = await self._store.add_face(Face.from_detection(detection, image_id=image_id))
        logger.debug("Stored face", face_id=face.id, image_id=image_id, has_embedding=face.has_embedding)
        return face

    async def assign_faces(self, faces: Sequence[Face], threshold: Optional[float] = None) -> AssignmentResult:
        """Assign the given faces against the currently active clusters."""
        active = await self._store.list_clusters(
            statuses=[ClusterStatus.PENDING, ClusterStatus.CONFIRMED]
        )
        return await self._clusterer.assign_unclustered(faces, active, threshold)

    async def ingest_detections(
        self,
        detections: Sequence[DetectedFace],
        image_id: Optional[str] = None,
        cluster: bool = False,
        threshold: Optional[float] = None,
    ) -> IngestResult:
        """Store the detections of one image.

        Args:
            detections: Detections in model output order
            image_id: Source image identifier
            cluster: Assign the new faces to clusters right away
            threshold: Clustering threshold used when ``cluster`` is set

        Returns:
            IngestResult with the stored faces and the failed detections
        """
        result = IngestResult(image_id=image_id)

        for index, detection in enumerate(detections):
            try:
                result.faces.append(await self.save_face(detection, image_id))
            except Exception as e:
                logger.error(
                    "Failed to store detection",
                    image_id=image_id,
                    index=index,
                    error=str(e),
                    exc_info=True,
                )
                result.failed.append(FailedDetection(index=index, error=str(e)))

        if cluster and result.faces:
            result.assignment = await self.assign_faces(result.faces, threshold)

        logger.info(
            "Ingested detections",
            image_id=image_id,
            detections=len(detections),
            stored=len(result.faces),
            failed=len(result.failed),
        )
        return result

    async def ingest_image(
        self,
        image_bytes: bytes,
        image_id: Optional[str] = None,
        max_faces: Optional[int] = None,
        cluster: bool = False,
        threshold: Optional[float] = None,
    ) -> IngestResult:
        """Detect faces in an image with the embedder and store them.

        Raises:
            ServiceNotInitializedError: If no embedder was configured
            InvalidImageError: If the image cannot be decoded
        """
        if self._embedder is None:
            raise ServiceNotInitializedError("No embedder configured for image ingestion")

        detections = await self._embedder.extract_faces(image_bytes, max_faces=max_faces)
        if not detections:
            logger.warning("No faces detected in image", image_id=image_id)
        return await self.ingest_detections(detections, image_id, cluster, threshold)

    async def get_face(self, face_id: str) -> Face:
        return await self._store.get_face(face_id)

    async def list_faces(
        self,
        cluster_id: Optional[str] = None,
        unclustered: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Face]:
        """Faces of one cluster, the unclustered pool, or all faces."""
        if cluster_id is not None:
            faces = await self._store.list_faces_by_cluster(cluster_id)
        elif unclustered:
            faces = await self._store.list_unclustered_faces()
        else:
            return await self._store.list_faces(limit=limit, offset=offset)
        return faces[offset:offset + limit]

    async def delete_face(self, face_id: str) -> None:
        """Delete a face and recompute the cluster it belonged to."""
        face = await self._store.get_face(face_id)
        if face.cluster_id is None:
            await self._store.delete_face(face_id)
        else:
            async with self._maintainer.lock_for(face.cluster_id):
                await self._store.delete_face(face_id)
            await self._maintainer.recompute(face.cluster_id)
        logger.info("Deleted face", face_id=face_id, cluster_id=face.cluster_id)

    async def face_stats(self) -> Dict[str, int]:
        """Counts of all, clustered and unclustered faces."""
        total = len(await self._store.list_faces())
        unclustered = len(await self._store.list_unclustered_faces())
        return {
            "total": total,
            "clustered": total - unclustered,
            "unclustered": unclustered,
        }
