"""API settings models."""
from typing import Optional

from pydantic import BaseModel, Field


class ThresholdSettings(BaseModel):
    """Live similarity thresholds and dedup windows.

    Cache settings apply to camera sessions started after the update.
    """
    CLUSTERING_THRESHOLD: Optional[float] = Field(None, ge=-1.0, le=1.0)
    MERGE_THRESHOLD: Optional[float] = Field(None, ge=-1.0, le=1.0)
    RECOGNITION_THRESHOLD: Optional[float] = Field(None, ge=-1.0, le=1.0)
    SAVE_DEDUP_SIMILARITY_THRESHOLD: Optional[float] = Field(None, ge=-1.0, le=1.0)
    SAVE_DEDUP_COOLDOWN_MS: Optional[int] = Field(None, ge=0)
    RECOGNITION_CACHE_SIMILARITY_THRESHOLD: Optional[float] = Field(None, ge=-1.0, le=1.0)
    RECOGNITION_CACHE_COOLDOWN_MS: Optional[int] = Field(None, ge=0)
