"""Nearest-identity lookup against confirmed clusters."""
from typing import Iterable, Optional

from facecluster.core.config import settings
from facecluster.domain.value_objects.recognition import RecognitionCandidate, RecognitionResult
from facecluster.services.vector_math import VectorLike, cosine_similarity


class IdentityRecognizer:
    """Matches an embedding to the identity whose confirmed cluster centroid is closest.

    Every linked cluster of every identity is a candidate. The best
    similarity at or above the threshold wins; the first candidate wins ties.
    Anything below the threshold is a stranger.
    """

    def recognize(
        self,
        embedding: VectorLike,
        candidates: Iterable[RecognitionCandidate],
        threshold: Optional[float] = None,
    ) -> RecognitionResult:
        """Find the best matching identity for ``embedding``.

        Args:
            embedding: Query embedding
            candidates: Confirmed cluster centroids labeled with their identity
            threshold: Minimum similarity (inclusive), defaults to
                ``settings.RECOGNITION_THRESHOLD``

        Returns:
            RecognitionResult, with ``is_stranger`` set when nothing qualifies
        """
        if threshold is None:
            threshold = settings.RECOGNITION_THRESHOLD

        best_identity: Optional[str] = None
        best_similarity = 0.0
        for candidate in candidates:
            similarity = cosine_similarity(embedding, candidate.centroid)
            if similarity >= threshold and (best_identity is None or similarity > best_similarity):
                best_identity, best_similarity = candidate.identity_id, similarity

        if best_identity is None:
            return RecognitionResult.stranger()
        return RecognitionResult(
            identity_id=best_identity,
            confidence=best_similarity,
            is_stranger=False,
        )
