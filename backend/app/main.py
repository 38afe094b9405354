"""FastAPI application for SkylineAnalyzr API."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from skylineanalyzr.config import Settings, config
from skylineanalyzr.dataset import Dataset
from skylineanalyzr.errors import RateLimitExceeded, SourceUnavailable, ValidationError
from skylineanalyzr.sources.manager import SourceManager

from .routers import analysis, intelligence, market, properties

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def register_exception_handlers(app: FastAPI) -> None:
    """Map library errors to JSON error bodies."""

    @app.exception_handler(RateLimitExceeded)
    async def rate_limited(request: Request, exc: RateLimitExceeded):
        logger.warning(f"{request.url.path}: {exc}")
        return _error(429, str(exc), waitTimeMs=exc.wait_time_ms)

    @app.exception_handler(ValidationError)
    async def invalid_input(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return _error(422, "Invalid request", details=jsonable_errors(exc))

    @app.exception_handler(SourceUnavailable)
    async def source_down(request: Request, exc: SourceUnavailable):
        return _error(502, str(exc))

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return _error(500, str(exc) or "Internal server error")


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]


def create_app(
    dataset: Optional[Dataset] = None,
    sources: Optional[SourceManager] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the API around injected state.

    Args:
        dataset: Property dataset; loaded from settings when omitted
        sources: Source manager; created (and closed on shutdown) when omitted
        settings: Settings; module config when omitted
    """
    settings = settings or config
    owns_sources = sources is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage startup/shutdown of the source clients."""
        logging.getLogger("skylineanalyzr").setLevel(settings.log_level.upper())
        logger.info(f"Serving {len(app.state.dataset)} properties")
        yield
        if owns_sources:
            await app.state.sources.close()

    app = FastAPI(
        title="SkylineAnalyzr API",
        description="Manhattan office-to-residential conversion analytics API",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.dataset = dataset if dataset is not None else Dataset.from_settings(settings)
    app.state.sources = sources if sources is not None else SourceManager(settings)

    # CORS for frontend
    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    frontend_url = os.environ.get("FRONTEND_URL")
    if frontend_url:
        allowed_origins.append(frontend_url.rstrip("/"))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    register_exception_handlers(app)

    app.include_router(analysis.router, prefix="/api/analysis", tags=["Analysis"])
    app.include_router(intelligence.router, prefix="/api/intelligence", tags=["Intelligence"])
    app.include_router(properties.router, prefix="/api/properties", tags=["Properties"])
    app.include_router(market.router, prefix="/api/market", tags=["Market"])

    @app.get("/")
    async def root():
        """API root endpoint."""
        return {
            "name": "SkylineAnalyzr API",
            "version": VERSION,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        state = request.app.state
        return {
            "status": "healthy",
            "version": VERSION,
            "properties": len(state.dataset),
            "sources": state.sources.health(),
        }

    return app


app = create_app()
