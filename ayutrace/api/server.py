"""
FastAPI server for AyuTrace

This module implements the REST request layer of the AyuTrace provenance
ledger. The application owns one ledger and one durable store: on startup the
ledger is replayed from the store, and every accepted submission is sealed and
persisted before the response is sent.

The server uses FastAPI and includes rule-aware error handling, CORS support
and logging.
"""

import logging
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ayutrace.api.v1.endpoints import router as v1_router
from ayutrace.config.settings import Settings, get_settings
from ayutrace.core.exceptions import StorageError, ValidationError
from ayutrace.core.ledger import Ledger
from ayutrace.storage.sql_backend import SqlStorageBackend

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    stats = app.state.ledger.get_chain_stats()
    logger.info(
        f"Starting AyuTrace API server: {stats['chain_length']} blocks, "
        f"{stats['pending_transactions']} pending, valid={stats['is_valid']}"
    )
    yield
    # Shutdown
    logger.info("Shutting down AyuTrace API server...")
    app.state.storage.close()


def create_app(ledger: Ledger | None = None, storage: SqlStorageBackend | None = None,
               settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        ledger: Ledger to serve (replayed from ``storage`` when omitted)
        storage: Durable store (built from ``settings.DATABASE_URL`` when omitted)
        settings: Configuration (``get_settings()`` when omitted)
    """
    settings = settings or get_settings()
    api_config = settings.get_api_config()

    logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)

    errors = settings.validate_config()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    storage = storage or SqlStorageBackend(settings.DATABASE_URL)
    ledger = ledger or storage.load_ledger(difficulty=settings.DIFFICULTY)

    fast_app = FastAPI(
        title="AyuTrace API",
        description="Provenance ledger for Ayurvedic herbal supply chains",
        version=api_config["version"],
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    fast_app.state.settings = settings
    fast_app.state.ledger = ledger
    fast_app.state.storage = storage
    # Serializes admit, seal and persist across write requests
    fast_app.state.write_lock = threading.Lock()

    # Add CORS middleware
    fast_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fast_app.include_router(v1_router)

    @fast_app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "name": "AyuTrace API",
            "version": api_config["version"],
            "docs_url": "/docs",
            "health_check": "/api/health"
        }

    @fast_app.exception_handler(ValidationError)
    async def validation_error_handler(_request, exc: ValidationError):
        """Rejected submissions carry the failed rule back to the submitter"""
        return JSONResponse(status_code=400, content=exc.to_dict())

    @fast_app.exception_handler(HTTPException)
    async def http_exception_handler(_request, exc: HTTPException):
        """HTTP exception handler"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "HTTP error",
                "message": exc.detail,
                "status_code": exc.status_code
            }
        )

    @fast_app.exception_handler(StorageError)
    async def storage_error_handler(_request, exc: StorageError):
        logger.error(f"Storage failure: {exc}")
        return JSONResponse(
            status_code=503,
            content={
                "error": "Storage unavailable",
                "message": "The durable store could not complete the request",
                "status_code": 503
            }
        )

    @fast_app.exception_handler(Exception)
    async def global_exception_handler(_request, exc):
        """Global exception handler"""
        logger.error(f"Unhandled exception: {str(exc)}")
        is_debug = settings.LOG_LEVEL == "DEBUG"
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred",
                "detail": str(exc) if is_debug else "Contact system administrator"
            }
        )

    return fast_app
