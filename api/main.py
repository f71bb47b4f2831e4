"""
KSEO Booster API

FastAPI application exposing analysis, assignments, the event dashboard
and keyword research queueing. Run with:

    uvicorn api.main:app
"""

import logging
import sys
from datetime import datetime
from typing import Optional

from fastapi import FastAPI

from src.database import check_db_connection, init_db
from src.utils.config import get_settings

from api.dependencies import Services, build_services
from api.seo import router as seo_router

# Configure logging to stdout
logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("apscheduler").setLevel(logging.WARNING)

VERSION = "0.1.0"


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title="KSEO Booster API",
        description="Deterministic SEO analysis, assignments and content alerts",
        version=VERSION,
    )
    app.state.services = services

    @app.on_event("startup")
    async def startup_event():
        """Initialize database and services on startup."""
        if app.state.services is not None:
            return
        logger.info("Initializing database...")
        init_db()
        if check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed - continuing anyway")
        app.state.services = build_services()

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "KSEO Booster"}

    @app.get("/api/health")
    async def health():
        """Detailed health check including database status."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "version": VERSION,
            "database": "connected" if check_db_connection() else "disconnected",
        }

    app.include_router(seo_router)
    return app


app = create_app()
