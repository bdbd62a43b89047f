"""Per-stream recognition session for camera detections."""
from typing import Optional

from facecluster.core.config import settings
from facecluster.core.exceptions import SessionClosedError
from facecluster.core.logging import get_logger
from facecluster.domain.entities.face import DetectedFace, Face
from facecluster.domain.value_objects.recognition import FrameOutcome
from facecluster.services.dedup import DeduplicationCache
from facecluster.services.face_ingest import FaceIngestService
from facecluster.services.recognition.service import RecognitionService

logger = get_logger(__name__)


class CameraRecognitionSession:
    """Recognition loop state of one camera stream.

    A camera reports the same person many times per second. The session owns
    two deduplication caches so that the store and the recognition log are
    not flooded:

    - the recognition cache reuses a recent result for a similar face and
      skips detections while a lookup for that face is still running;
    - the save cache keeps one stored face per person per cooldown window.

    ``stop()`` tears the session down. Calls in flight finish their current
    await, then notice the session is closed and drop their results instead
    of writing to a torn-down session.

    Example:
        ```python
        async with CameraRecognitionSession(ingest, recognition) as session:
            outcome = await session.process_detection(detection, camera_id="cam-1")
            if outcome.recognition and not outcome.recognition.is_stranger:
                ...
        ```
    """

    def __init__(
        self,
        ingest: FaceIngestService,
        recognition: RecognitionService,
        save_cache: Optional[DeduplicationCache] = None,
        recognition_cache: Optional[DeduplicationCache] = None,
        save_faces: bool = True,
    ) -> None:
        """Initialize the session.

        Args:
            ingest: Service storing and clustering new faces
            recognition: Service recognizing faces and writing the recognition log
            save_cache: Save deduplication cache, built from settings if omitted
            recognition_cache: Recognition result cache, built from settings if omitted
            save_faces: Store (and cluster) new faces, not only recognize them
        """
        self._ingest = ingest
        self._recognition = recognition
        if save_cache is None:
            save_cache = DeduplicationCache(
                similarity_threshold=settings.SAVE_DEDUP_SIMILARITY_THRESHOLD,
                cooldown_ms=settings.SAVE_DEDUP_COOLDOWN_MS,
                name="save",
            )
        if recognition_cache is None:
            recognition_cache = DeduplicationCache(
                similarity_threshold=settings.RECOGNITION_CACHE_SIMILARITY_THRESHOLD,
                cooldown_ms=settings.RECOGNITION_CACHE_COOLDOWN_MS,
                name="recognition",
            )
        self.save_cache = save_cache
        self.recognition_cache = recognition_cache
        self.save_faces = save_faces
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def __aenter__(self) -> "CameraRecognitionSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def stop(self) -> None:
        """Close the session and forget every cached observation."""
        if not self._active:
            return
        self._active = False
        self.save_cache.clear()
        self.recognition_cache.clear()
        logger.info("Camera session stopped")

    async def process_detection(
        self,
        detection: DetectedFace,
        camera_id: str,
        now: Optional[float] = None,
    ) -> FrameOutcome:
        """Handle one detection from ``camera_id``.

        Args:
            detection: Detection with its embedding
            camera_id: Camera the detection came from
            now: Detection time in seconds, defaults to the caches' clock

        Returns:
            FrameOutcome describing what was done with the detection

        Raises:
            SessionClosedError: If the session has been stopped
        """
        if not self._active:
            raise SessionClosedError("Camera session has been stopped", details={"camera_id": camera_id})

        if detection.embedding is None or detection.embedding.size == 0:
            return FrameOutcome(skipped=True, reason="no_embedding")

        # Entries of cameras that went quiet are otherwise kept until stop().
        self.recognition_cache.sweep(now)
        self.save_cache.sweep(now)

        cached = self.recognition_cache.check_and_register(detection.embedding, camera_id, now)
        if cached.is_duplicate:
            if cached.pending:
                return FrameOutcome(skipped=True, reason="recognition_in_flight")
            return FrameOutcome(recognition=cached.matched_record, from_cache=True)

        entry = cached.entry
        try:
            face = await self._persist(detection, camera_id, now)
            if not self._active:
                return self._abandoned(camera_id)

            # Centroids compared against must not include this face yet.
            outcome = await self._recognition.recognize(
                detection.embedding,
                camera_id=camera_id,
                face_id=face.id if face else None,
            )
            if not self._active:
                return self._abandoned(camera_id)

            cluster_id = await self._assign(face) if face else None
            if not self._active:
                return self._abandoned(camera_id)

            self.recognition_cache.resolve(entry, outcome.result)
            return FrameOutcome(
                recognition=outcome.result,
                face_id=face.id if face else None,
                cluster_id=cluster_id,
            )
        except Exception:
            self.recognition_cache.discard(entry)
            raise

    async def _persist(
        self, detection: DetectedFace, camera_id: str, now: Optional[float]
    ) -> Optional[Face]:
        if not self.save_faces:
            return None

        seen = self.save_cache.check_and_register(detection.embedding, camera_id, now)
        if seen.is_duplicate:
            return None

        try:
            face = await self._ingest.save_face(detection)
        except Exception:
            self.save_cache.discard(seen.entry)
            raise

        self.save_cache.resolve(seen.entry, face.id)
        logger.debug("Stored camera face", camera_id=camera_id, face_id=face.id)
        return face

    async def _assign(self, face: Face) -> Optional[str]:
        assignment = await self._ingest.assign_faces([face])
        if not assignment.assigned_faces:
            return None
        return (await self._ingest.get_face(face.id)).cluster_id

    @staticmethod
    def _abandoned(camera_id: str) -> FrameOutcome:
        logger.debug("Dropped result of stopped camera session", camera_id=camera_id)
        return FrameOutcome(skipped=True, reason="session_stopped")
