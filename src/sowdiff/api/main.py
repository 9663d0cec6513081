"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sowdiff import __version__
from sowdiff.config import Settings, get_settings
from sowdiff.exceptions import ParseError
from sowdiff.services.comparison_service import ComparisonService
from sowdiff.services.document_loader import DocumentLoader
from sowdiff.services.llm_service import LLMService
from sowdiff.services.review_service import ReviewService

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("application_starting")

    settings: Settings = app.state.settings
    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        debug=settings.debug,
        ai_enabled=app.state.comparison.review is not None,
    )

    yield

    # Shutdown
    logger.info("application_shutting_down")


def create_app(settings: Settings | None = None, llm: LLMService | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings; defaults to the environment
        llm: Language-model service; built from settings when AI is configured
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="sowdiff API",
        description="Section-aligned comparison of contract drafts against templates",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Services owned by this application instance
    if llm is None and settings.ai_configured:
        llm = LLMService(settings)
    loader = DocumentLoader()
    review = ReviewService(llm, settings) if llm is not None else None
    app.state.settings = settings
    app.state.llm = llm
    app.state.loader = loader
    app.state.comparison = ComparisonService(review=review, loader=loader, settings=settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ParseError)
    async def parse_error_handler(request: Request, exc: ParseError) -> JSONResponse:
        logger.warning(
            "document_rejected",
            path=request.url.path,
            filename=exc.filename,
            error=str(exc),
        )
        return JSONResponse(
            status_code=422,
            content={"error": "Document could not be parsed", "detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.debug else None,
            },
        )

    # Include routers
    from sowdiff.api.routes import analysis, documents

    app.include_router(documents.router, prefix="/api/v1/documents", tags=["documents"])
    app.include_router(analysis.router, prefix="/api/v1/analysis", tags=["analysis"])

    # Health check
    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        llm_status = app.state.llm.health_check() if app.state.llm is not None else {}
        return {
            "status": "healthy",
            "services": {
                "llm": llm_status,
            },
        }

    # Root endpoint
    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "name": "sowdiff API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
