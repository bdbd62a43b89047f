"""Short-lived similarity cache that suppresses repeated processing of the same face."""
import time
from typing import Any, Callable, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from facecluster.core.logging import get_logger
from facecluster.services.vector_math import VectorLike, as_vector, cosine_similarity

logger = get_logger(__name__)


class CacheEntry(BaseModel):
    """One recently observed embedding for a source."""
    embedding: np.ndarray
    timestamp: float
    record: Any = None
    pending: bool = True

    model_config = ConfigDict(arbitrary_types_allowed=True)


class DedupResult(BaseModel):
    """Outcome of ``DeduplicationCache.check_and_register``."""
    is_duplicate: bool = Field(..., description="A similar embedding was seen within the cooldown")
    pending: bool = Field(False, description="The matched entry's lookup is still in flight")
    matched_record: Any = Field(None, description="Record stored with the matched entry")
    similarity: Optional[float] = Field(None, description="Similarity with the matched entry")
    entry: Optional[CacheEntry] = Field(None, description="Entry registered for a new observation")

    model_config = ConfigDict(arbitrary_types_allowed=True)


class DeduplicationCache:
    """Per-source list of recently seen embeddings, matched by similarity.

    A best-effort, in-memory, per-process noise filter for the camera path:
    restarting loses it and it is never the source of truth. Entries expire
    ``cooldown_ms`` after they were registered.

    A new observation is registered as *pending* before the caller starts
    any asynchronous work for it. A second detection of the same person
    arriving meanwhile is reported as a pending duplicate instead of firing
    another lookup. The caller then either ``resolve``s the entry with the
    lookup's record or ``discard``s it when the lookup failed. All methods
    are synchronous, so check-and-register is atomic on the event loop.

    Example:
        ```python
        cache = DeduplicationCache(similarity_threshold=0.5, cooldown_ms=180_000)
        hit = cache.check_and_register(embedding, camera_id)
        if not hit.is_duplicate:
            try:
                result = await recognize(embedding)
            except Exception:
                cache.discard(hit.entry)
                raise
            cache.resolve(hit.entry, result)
        ```
    """

    def __init__(
        self,
        similarity_threshold: float,
        cooldown_ms: int,
        clock: Callable[[], float] = time.monotonic,
        name: str = "dedup",
    ) -> None:
        """Initialize the cache.

        Args:
            similarity_threshold: Minimum similarity (inclusive) to count as the same face
            cooldown_ms: How long an entry suppresses similar observations
            clock: Time source in seconds, used when callers pass no ``now``
            name: Label used in log events
        """
        self.similarity_threshold = similarity_threshold
        self.cooldown_ms = cooldown_ms
        self._clock = clock
        self._name = name
        self._entries: Dict[str, List[CacheEntry]] = {}

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def _expire(self, source_key: str, now: float) -> List[CacheEntry]:
        window = self.cooldown_ms / 1000.0
        live = [e for e in self._entries.get(source_key, []) if now - e.timestamp <= window]
        if live:
            self._entries[source_key] = live
        else:
            self._entries.pop(source_key, None)
        return live

    def check_and_register(
        self,
        embedding: VectorLike,
        source_key: str,
        now: Optional[float] = None,
    ) -> DedupResult:
        """Report whether ``embedding`` duplicates a live entry of ``source_key``.

        When it does not, a pending entry is registered and returned in
        ``DedupResult.entry``.

        Args:
            embedding: Embedding of the new observation
            source_key: Source the observation came from, e.g. a camera id
            now: Observation time in seconds, defaults to the cache clock

        Returns:
            DedupResult describing the match or the registered entry
        """
        if now is None:
            now = self._clock()
        vector = as_vector(embedding)

        best: Optional[CacheEntry] = None
        best_similarity = 0.0
        for entry in self._expire(source_key, now):
            similarity = cosine_similarity(vector, entry.embedding)
            if similarity >= self.similarity_threshold and (best is None or similarity > best_similarity):
                best, best_similarity = entry, similarity

        if best is not None:
            logger.debug(
                "Suppressed duplicate observation",
                cache=self._name,
                source=source_key,
                similarity=round(best_similarity, 4),
                pending=best.pending,
            )
            return DedupResult(
                is_duplicate=True,
                pending=best.pending,
                matched_record=best.record,
                similarity=best_similarity,
            )

        entry = CacheEntry(embedding=vector.copy(), timestamp=now)
        self._entries.setdefault(source_key, []).append(entry)
        return DedupResult(is_duplicate=False, entry=entry)

    def resolve(self, entry: CacheEntry, record: Any) -> None:
        """Attach the finished lookup's record to a pending entry."""
        entry.record = record
        entry.pending = False

    def discard(self, entry: Optional[CacheEntry]) -> None:
        """Remove an entry whose lookup failed so it cannot block later detections."""
        if entry is None:
            return
        for source_key, entries in list(self._entries.items()):
            remaining = [e for e in entries if e is not entry]
            if len(remaining) != len(entries):
                if remaining:
                    self._entries[source_key] = remaining
                else:
                    del self._entries[source_key]
                return

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop expired entries of every source; returns how many were dropped."""
        if now is None:
            now = self._clock()
        before = len(self)
        for source_key in list(self._entries):
            self._expire(source_key, now)
        return before - len(self)

    def clear(self, source_key: Optional[str] = None) -> None:
        """Forget every entry, or only those of ``source_key``."""
        if source_key is None:
            self._entries.clear()
        else:
            self._entries.pop(source_key, None)
        logger.debug("Cleared deduplication cache", cache=self._name, source=source_key)
