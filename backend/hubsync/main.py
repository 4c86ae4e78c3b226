"""
HubSync - FastAPI Application Entry Point

Pulls incremental HubSpot CRM changes and forwards them as outbound events.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hubsync.api.endpoints import health, sync, sync_status
from hubsync.core.config import get_settings
from hubsync.db.base import Base
from hubsync.db.session import get_async_engine

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


async def init_database():
    """Initialize database tables."""
    # Import all models to ensure they're registered with Base
    from hubsync.models import domain  # noqa: F401

    async with get_async_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs startup and shutdown logic.
    """
    logger = logging.getLogger(__name__)

    # Startup
    logger.info("Starting HubSync...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Debug Mode: {settings.app_debug}")
    logger.info(f"Checkpoint persistence: {settings.checkpoint_persistence_enabled}")

    await init_database()
    logger.info("Database tables initialized")

    logger.info("Startup complete! Ready to accept requests.")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down HubSync...")
    await get_async_engine().dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="HubSync",
    description="Incremental HubSpot CRM pull into outbound events",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(sync.router, prefix="/api/v1", tags=["Sync"])
app.include_router(sync_status.router, prefix="/api/v1", tags=["Monitoring"])


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "HubSync",
        "version": "0.1.0",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hubsync.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )
