"""
Main Application - Herdbook API

FastAPI application serving the farm backend: record CRUD, analytics
dashboards, financial and cohort reports, CSV import/export and background
report jobs. Every route is mounted twice, at /v1/... and /api/v1/...

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

# ============================================================================
# IMPORTS
# ============================================================================
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from .config import config, setup_logging
from .database_adapter import get_database_adapter
from .database_schema import create_schema, seed_reference_data
from .auth import get_user_tier
from .errors import error_response, validation_message
from .jobs import JobWorker
from .records.router import router as records_router
from .reports.router import router as reports_router

logger = logging.getLogger(__name__)


# Global state
app_state = {
    "db": None,
    "worker": None
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: database, schema and the job worker thread"""
    setup_logging()
    logger.info(f"Starting Herdbook API ({config.environment.value})")

    # An adapter installed before startup (tests, embedding) is kept
    if app_state["db"] is None:
        app_state["db"] = get_database_adapter()
    db = app_state["db"]

    if config.database.auto_create_schema:
        create_schema(db)
    if config.database.seed_reference_data:
        seed_reference_data(db)

    if config.jobs.enabled:
        worker = JobWorker(db, config.directories.reports_dir)
        worker.start(config.jobs.poll_interval_seconds)
        app_state["worker"] = worker
        logger.info("Background job worker started")

    yield

    # Shutdown
    logger.info("Shutting down application...")

    if app_state.get("worker"):
        app_state["worker"].stop()
        app_state["worker"] = None

    if app_state.get("db"):
        try:
            app_state["db"].close()
            logger.info("Database connections closed")
        except Exception as e:
            logger.error(f"Error closing database connections: {e}")


# Create FastAPI app
app = FastAPI(
    title="Herdbook API",
    description="Livestock records, production economics and analytics",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.web.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Client errors use the {"error": message} body"""
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing or invalid fields are a 400, not FastAPI's default 422"""
    message = validation_message(exc.errors())
    logger.warning(f"Rejected {request.method} {request.url.path}: {message}")
    return error_response(400, message)


# ============================================================================
# ROUTERS
# ============================================================================

for prefix in ("", "/api"):
    app.include_router(reports_router, prefix=prefix)
    app.include_router(records_router, prefix=prefix)


# ============================================================================
# SYSTEM ENDPOINTS
# ============================================================================

@app.get("/v1/auth/tier")
@app.get("/api/v1/auth/tier")
async def get_tier():
    """Get the current user's subscription tier"""
    return {"tier": get_user_tier().value}


@app.get("/health")
@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    db = app_state.get("db")
    return {
        "status": "ok",
        "database": db.db_type if db else None,
        "timestamp": datetime.now().isoformat()
    }


def main():
    """Run the API with uvicorn using the configured host and port"""
    uvicorn.run(
        "herdbook.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=config.web.reload,
        log_level=config.web.log_level
    )


if __name__ == "__main__":
    main()
