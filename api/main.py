
"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, imports
from api.middleware import RequestContextMiddleware
from api.errors import register_error_handlers
from api.dependencies import get_runner, get_scheduler
from core.config import settings, SERVICE_NAME, SERVICE_VERSION
from core.database import dispose_engine
from core.logging import setup_logging
import logging

setup_logging()

logger = logging.getLogger(__name__)

app = FastAPI(
    title=SERVICE_NAME,
    description="Discovers, downloads and bulk-loads the published notes dataset",
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)
register_error_handlers(app)

app.include_router(health.router)
app.include_router(imports.router)


@app.on_event("startup")
async def startup_event():
    """Recover from a crash before accepting triggers, then start the scheduler"""
    logger.info(f"Starting {SERVICE_NAME} {SERVICE_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
    logger.info(f"Data directory: {settings.DATA_DIR}")

    await get_runner().recover_interrupted()
    await get_scheduler().start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info(f"Shutting down {SERVICE_NAME}")
    get_scheduler().stop()
    await get_runner().shutdown()
    await dispose_engine()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "imports": "/imports",
            "current": "/imports/current",
            "scheduler": "/imports/scheduler"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT)
