"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from src.studio.config import Settings, get_settings
from src.studio.container import AppContainer, build_container
from src.studio.features.generation import router as generation_router
from src.studio.features.projects import router as projects_router
from src.studio.services.auth.middleware import AccessGateMiddleware

logger = logging.getLogger(__name__)


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str


class StatusResponse(BaseModel):
    """Service status response."""

    status: str
    environment: str


def create_app(settings: Settings | None = None, container: AppContainer | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to environment-loaded settings)
        container: Prebuilt collaborators (tests inject fakes here)

    Returns:
        Configured FastAPI app with the access gate installed

    Raises:
        ConfigurationError: If Access or session configuration is invalid
    """
    settings = settings or (container.settings if container else get_settings())
    logging.basicConfig(level=settings.log_level.upper())

    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle (startup and shutdown)."""
        yield

        try:
            await container.close()
            logger.info("Application container closed")
        except Exception as e:
            logger.error(f"Error during application shutdown: {e}", exc_info=True)

    app = FastAPI(
        title="Studio API",
        description="Authenticated gateway for script, image and narration generation",
        version="0.1.0",
        debug=settings.is_dev,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(AccessGateMiddleware)

    # Added last so CORS is outermost and answers preflights before the gate
    origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
    logger.info(f"Origins : {origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "cf-access-jwt-assertion"],
    )

    public_router = APIRouter()

    @public_router.get("/health", response_model=HealthCheckResponse)
    async def health_check() -> HealthCheckResponse:
        """Health check endpoint."""
        return HealthCheckResponse(status="healthy")

    @public_router.get("/status", response_model=StatusResponse)
    async def status_check() -> StatusResponse:
        """Service status endpoint."""
        return StatusResponse(status="ok", environment=settings.environment)

    app.include_router(public_router, prefix=settings.api_prefix, tags=["health"])
    app.include_router(generation_router, prefix=settings.api_prefix, tags=["generation"])
    app.include_router(projects_router, prefix=settings.api_prefix, tags=["projects"])

    return app
