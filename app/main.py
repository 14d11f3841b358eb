# =============================================================================
# FastAPI Application Factory
# =============================================================================
#
# Wires the routers, the exception-to-status mapping and the per-app
# DocumentStore / SessionRegistry.
#
# ERROR MAPPING:
#   ValidationError, SessionStateError → 400
#   NotFoundError                      → 404
#   ProviderUnavailable                → 503
#   unhandled exceptions               → 500
#
# RUN:
#   uvicorn app.main:app --reload
# =============================================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.agents.registry import SessionRegistry
from app.api import documents, sessions, simulations
from app.config import Settings, get_settings
from app.errors import (
    NotFoundError,
    ProviderUnavailable,
    SessionStateError,
    ValidationError,
)
from app.models.responses import HealthResponse
from app.services.documents import DocumentStore
from app.services.llm import LLMProvider, get_optional_llm_provider

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    llm: LLMProvider | None = None,
    document_store: DocumentStore | None = None,
    registry: SessionRegistry | None = None,
) -> FastAPI:
    """
    Build the application.

    Without explicit collaborators, the LLM provider comes from config
    (None when unconfigured, so sessions run on fallbacks).
    """
    settings = settings or get_settings()
    if llm is None and registry is None:
        llm = get_optional_llm_provider()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        ended = app.state.registry.end_all()
        if ended:
            logger.info("Ended %d running session(s) on shutdown", ended)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Simulates a shareholder meeting Q&A session grounded in "
            "uploaded IR documents."
        ),
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.document_store = document_store or DocumentStore(settings=settings)
    app.state.registry = registry or SessionRegistry(settings=settings, llm=llm)

    app.include_router(documents.router)
    app.include_router(simulations.router)
    app.include_router(sessions.router)

    _register_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        return HealthResponse(
            version=settings.app_version,
            service=settings.app_name,
            generation_available=app.state.registry.llm is not None,
        )

    return app


# ---------------------------------------------------------------------------
# Exception Handlers
# ---------------------------------------------------------------------------


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("400 %s %s: %s", request.method, request.url.path, exc)
        return _error(400, exc)

    @app.exception_handler(SessionStateError)
    async def _state(request: Request, exc: SessionStateError) -> JSONResponse:
        logger.info("400 %s %s: %s", request.method, request.url.path, exc)
        return _error(400, exc)

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(ProviderUnavailable)
    async def _unavailable(request: Request, exc: ProviderUnavailable) -> JSONResponse:
        logger.warning("503 %s %s: %s", request.method, request.url.path, exc)
        return _error(503, exc)

    @app.exception_handler(Exception)
    async def _internal(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


configure_logging(get_settings())
app = create_app()
