"""Main FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from threatgraph.core.logging_config import configure_logging
from threatgraph.core.middleware import request_context_middleware
from threatgraph.core.settings import get_settings
from threatgraph.db.postgres.graph_connection import (
    close_graph_db_pool,
    ensure_graph,
    get_graph_db_pool,
)
from threatgraph.features.graph.router import router as graph_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager.
    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    pool = await get_graph_db_pool()
    await ensure_graph(pool, settings.age_graph_name)
    logger.info("Graph database ready (graph %s)", settings.age_graph_name)

    yield

    # Shutdown
    logger.info("Shutting down application")
    await close_graph_db_pool()
    logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="STIX threat-intelligence knowledge graph on PostgreSQL/AGE",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _ = app.middleware("http")(request_context_middleware)

    # Include routers
    app.include_router(graph_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:  # pyright: ignore[reportUnusedFunction]
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "threatgraph.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug",
    )
