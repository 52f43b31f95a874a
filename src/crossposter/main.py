"""FastAPI application entry point for Crossposter."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from crossposter import __version__
from crossposter.api.routes import router
from crossposter.config import get_settings
from crossposter.utils.logging import get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.json_logs)
    logger = get_logger(__name__)
    logger.info("Crossposter starting", version=__version__)
    yield
    logger.info("Crossposter shutting down")


app = FastAPI(
    title="Crossposter",
    description="Share Notion reading-list articles on Bluesky and X",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic info."""
    return {
        "name": "Crossposter",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health-check", response_class=PlainTextResponse)
async def health_check() -> str:
    """Liveness probe."""
    return "OK"
