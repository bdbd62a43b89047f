"""Recognition against stored identities, with an audit log."""
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import ClusterStatus, RecognitionLog
from facecluster.domain.entities.face import utcnow
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.domain.value_objects.recognition import (
    RecognitionCandidate,
    RecognitionOutcome,
)
from facecluster.services.recognition.identity import IdentityRecognizer
from facecluster.services.vector_math import VectorLike

logger = get_logger(__name__)


class RecognitionService:
    """Runs IdentityRecognizer against the store's confirmed clusters and records the result.

    Example:
        ```python
        service = RecognitionService(store)
        outcome = await service.recognize(embedding, camera_id="cam-1")
        if outcome.result.is_stranger:
            ...
        ```
    """

    def __init__(self, store: ClusterStore, recognizer: Optional[IdentityRecognizer] = None) -> None:
        """Initialize the recognition service.

        Args:
            store: Persistence layer holding identities, clusters and logs
            recognizer: Matching strategy, a default IdentityRecognizer if omitted
        """
        self._store = store
        self._recognizer = recognizer or IdentityRecognizer()

    async def load_candidates(self) -> List[RecognitionCandidate]:
        """Collect the centroid of every confirmed cluster linked to an identity."""
        clusters = {
            c.id: c
            for c in await self._store.list_clusters(statuses=[ClusterStatus.CONFIRMED])
        }
        candidates = []
        for link in await self._store.list_identity_clusters():
            cluster = clusters.get(link.cluster_id)
            if cluster is not None and cluster.centroid is not None:
                candidates.append(
                    RecognitionCandidate(
                        identity_id=link.identity_id,
                        cluster_id=cluster.id,
                        centroid=cluster.centroid,
                    )
                )
        return candidates

    async def recognize(
        self,
        embedding: VectorLike,
        camera_id: Optional[str] = None,
        face_id: Optional[str] = None,
        threshold: Optional[float] = None,
    ) -> RecognitionOutcome:
        """Recognize ``embedding`` and append a RecognitionLog.

        Args:
            embedding: Query embedding
            camera_id: Camera that produced the detection, if any
            face_id: Persisted face the embedding belongs to, if any
            threshold: Recognition threshold, defaults to ``settings.RECOGNITION_THRESHOLD``

        Returns:
            RecognitionOutcome with the result and the written log
        """
        candidates = await self.load_candidates()
        result = self._recognizer.recognize(embedding, candidates, threshold)

        log = await self._store.add_recognition_log(
            RecognitionLog(
                face_id=face_id,
                matched_identity_id=result.identity_id,
                confidence=result.confidence,
                is_stranger=result.is_stranger,
                camera_id=camera_id,
            )
        )
        logger.info(
            "Recognized face",
            identity_id=result.identity_id,
            confidence=result.confidence,
            is_stranger=result.is_stranger,
            camera_id=camera_id,
            candidates=len(candidates),
        )
        return RecognitionOutcome(result=result, log=log)

    async def get_logs(
        self,
        camera_id: Optional[str] = None,
        identity_id: Optional[str] = None,
        is_stranger: Optional[bool] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[RecognitionLog]:
        """Recognition logs matching the filters, newest first."""
        return await self._store.list_recognition_logs(
            camera_id=camera_id,
            identity_id=identity_id,
            is_stranger=is_stranger,
            since=since,
            limit=limit,
            offset=offset,
        )

    async def get_recent(self, minutes: int = 60) -> List[RecognitionLog]:
        """Logs of the last ``minutes`` minutes, at most 100."""
        since = utcnow() - timedelta(minutes=minutes)
        return await self.get_logs(since=since, limit=100)

    async def recognition_stats(self, since: Optional[datetime] = None) -> Dict[str, int]:
        """Counts of recognitions, identified faces and strangers."""
        logs = await self._store.list_recognition_logs(since=since)
        strangers = sum(1 for log in logs if log.is_stranger)
        return {
            "total": len(logs),
            "identified": len(logs) - strangers,
            "strangers": strangers,
        }

    async def clear_old_logs(self, days_to_keep: int = 30) -> int:
        """Delete logs older than ``days_to_keep`` days; returns the count."""
        cutoff = utcnow() - timedelta(days=days_to_keep)
        deleted = await self._store.delete_recognition_logs_before(cutoff)
        logger.info("Cleared old recognition logs", deleted=deleted, days_to_keep=days_to_keep)
        return deleted

    async def clear_all_logs(self) -> int:
        """Delete every recognition log; returns the count."""
        return await self._store.delete_recognition_logs_before(None)
