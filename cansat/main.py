"""
GAIA CanSat Analyzer API

FastAPI application entry point for the flight data analysis pipeline.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cansat import __version__
from cansat.config import settings
from cansat.session import AnalysisSession


# =============================================================================
# Structlog Configuration
# =============================================================================
def configure_logging() -> None:
    """
    Configure structlog for JSON logging with ISO timestamps.

    All logs are output as JSON with consistent fields:
    - timestamp: ISO 8601 format
    - level: log level (info, warning, error, etc.)
    - event: log message
    - Additional context fields (source, rows, etc.)
    """
    # Shared processors for all loggers
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to use structlog formatter
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.LOG_LEVEL.upper())

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# =============================================================================
# Application Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.
    """
    # Startup
    configure_logging()
    app.state.session = AnalysisSession()

    logger = structlog.get_logger()
    logger.info(
        "application_startup",
        app_name="GAIA CanSat Analyzer API",
        debug=settings.DEBUG,
        base_altitude=settings.DEFAULT_BASE_ALTITUDE_M,
    )

    yield

    # Shutdown
    app.state.session.reset()
    logger.info("application_shutdown")


# =============================================================================
# FastAPI Application
# =============================================================================
app = FastAPI(
    title="GAIA CanSat Analyzer API",
    description="Cleaning, statistics and air quality analysis for CanSat flight telemetry",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Check Endpoint
# =============================================================================
@app.get("/health", tags=["Health"])
async def health_check() -> JSONResponse:
    """
    Health check endpoint for load balancers and monitoring.

    Returns:
        JSON response with status "ok"
    """
    return JSONResponse(
        content={"status": "ok"},
        status_code=200,
    )


# =============================================================================
# API Routers
# =============================================================================
from cansat.api.v1.flight import router as flight_router

app.include_router(flight_router, prefix="/api/v1")
