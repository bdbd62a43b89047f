"""Main application module for the face clustering service."""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from facecluster.api import router as api_v1_router
from facecluster.core.config import settings
from facecluster.core.container import container
from facecluster.core.exceptions import (
    FaceClusteringError,
    InvalidImageError,
    InvalidOperationError,
    ModelLoadError,
    ServiceNotInitializedError,
    SessionClosedError,
    StoreError,
    VectorMathError,
)
from facecluster.core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

# Checked in order, the first matching class wins.
ERROR_STATUS_CODES = (
    (StoreError, 404),
    (InvalidOperationError, 400),
    (VectorMathError, 400),
    (InvalidImageError, 400),
    (SessionClosedError, 409),
    (ServiceNotInitializedError, 503),
    (ModelLoadError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[Any, None]:
    """Handle application startup and shutdown events.

    Args:
        app: FastAPI application instance

    Returns:
        AsyncGenerator[Any, None]: Async context manager for app lifecycle
    """
    logger.info(
        "Starting up face clustering service",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        store_backend=settings.STORE_BACKEND,
    )

    await container.initialize()
    logger.info("Initialized application services")

    yield

    logger.info("Shutting down face clustering service")
    await container.cleanup()
    logger.info("Cleaned up application resources")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


def status_code_for(exc: FaceClusteringError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 500


@app.exception_handler(FaceClusteringError)
async def face_clustering_error_handler(request: Request, exc: FaceClusteringError) -> JSONResponse:
    """Translate service errors into JSON responses."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=str(exc), details=exc.details)
    else:
        logger.warning("Request rejected", path=request.url.path, error=str(exc), status_code=status_code)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__, "context": exc.details},
    )


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint.

    Returns:
        dict: Health status
    """
    logger.info("Health check requested")
    return {"status": "healthy", "initialized": container.initialized}
