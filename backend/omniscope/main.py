"""FastAPI entrypoint for the OmniScope intelligence backend."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .config import Settings
from .database import configure_database, init_db
from .errors import ConfigurationError, FathomAPIError
from .routers import fathom_router
from .webhook import router as webhook_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="OmniScope Intelligence API",
    description="Meeting-intelligence ingestion: webhooks, LLM analysis and CRM persistence",
    version="1.0.0",
)

# Register routers
app.include_router(webhook_router)
app.include_router(fathom_router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": str(exc)},
    )


@app.exception_handler(FathomAPIError)
async def fathom_error_handler(request: Request, exc: FathomAPIError) -> JSONResponse:
    logger.error(f"Fathom API failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "error": f"Fathom API error: {exc.status_code}"},
    )


@app.on_event("startup")
async def startup_event() -> None:
    """Load settings and initialize database on startup."""
    logger.info("Starting OmniScope Intelligence API...")
    settings = Settings.from_env()
    app.state.settings = settings
    configure_database(settings.database_url)
    try:
        await init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.warning(f"Database initialization failed: {e}")
        logger.warning("Running without database - ingestion will be unavailable")


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "name": "OmniScope Intelligence API",
        "version": "1.0.0",
        "docs": "/docs",
    }
