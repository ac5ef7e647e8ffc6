"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import Settings, get_settings
from api.logging_config import configure_logging
from api.routes import dj_router, events_router
from api.services import EventService

VERSION = "0.1.0"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its own event service."""
    settings = settings or get_settings()
    service = EventService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        # Startup
        configure_logging(settings.log_level)
        yield
        # Shutdown
        service.close()

    app = FastAPI(
        title=settings.app_name,
        description="Live crowd-sourced DJ recommendations",
        version=VERSION,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )
    app.state.events = service
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(events_router, prefix=settings.api_prefix)
    app.include_router(dj_router, prefix=settings.api_prefix)

    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": VERSION,
            "docs": f"{settings.api_prefix}/docs",
        }

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": VERSION,
            "environment": settings.environment,
        }

    return app


app = create_app()


def run() -> None:
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
