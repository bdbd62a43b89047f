"""Configuration settings for the face clustering service."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Thresholds are cosine similarities in [-1, 1]. They are read at call time
    by the services, so updating the live ``settings`` object retunes a
    running deployment without a restart.

    Attributes:
        CLUSTERING_THRESHOLD: Minimum similarity for assigning a face to a cluster
        MERGE_THRESHOLD: Minimum centroid similarity for merging two pending clusters
        RECOGNITION_THRESHOLD: Minimum similarity for matching a confirmed identity
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        validate_assignment=True,
    )

    # Core Settings
    PROJECT_NAME: str = "Face Clustering Service"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Embedding Settings
    EMBEDDING_DIMENSIONS: int = 512
    MODEL_CACHE_DIR: str = ".model_cache"
    MODEL_PATH: str = "buffalo_l"
    MAX_FACES_PER_IMAGE: int = 20
    MAX_IMAGE_PIXELS: int = 1920 * 1080

    # Clustering Settings
    CLUSTERING_THRESHOLD: float = 0.5
    MERGE_THRESHOLD: float = 0.7
    MERGE_MAX_ROUNDS: int = 10
    DBSCAN_EPS: float = 0.5
    DBSCAN_MIN_POINTS: int = 2

    # Recognition Settings
    RECOGNITION_THRESHOLD: float = 0.6

    # Deduplication Settings (server-side save path)
    SAVE_DEDUP_SIMILARITY_THRESHOLD: float = 0.7
    SAVE_DEDUP_COOLDOWN_MS: int = 600_000

    # Deduplication Settings (recognition-result reuse)
    RECOGNITION_CACHE_SIMILARITY_THRESHOLD: float = 0.5
    RECOGNITION_CACHE_COOLDOWN_MS: int = 180_000

    # Storage Settings
    STORE_BACKEND: str = "memory"  # "memory" or "database"
    DATABASE_URL: str = "sqlite+aiosqlite:///./facecluster.db"
    DATABASE_ECHO: bool = False

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000


settings = Settings()
