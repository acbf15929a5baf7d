"""FastAPI application factory and global exception handling."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from policy_rag import __version__ as app_version
from policy_rag.api.routes import router
from policy_rag.config import Settings, get_settings
from policy_rag.logging_config import configure_logging
from policy_rag.profiles.loader import load_profiles
from policy_rag.summarizer.errors import (
    GenerationUnavailableError,
    NoContentError,
    SummarizationError,
    SynthesisError,
)
from policy_rag.summarizer.generation import (
    TextGenerationService,
    build_generation_service,
)
from policy_rag.summarizer.service import RagSummarizationService

logger = logging.getLogger(__name__)

_ERROR_STATUS = (
    (NoContentError, 422, "no_content"),
    (SynthesisError, 502, "synthesis_failed"),
    (GenerationUnavailableError, 503, "generation_unavailable"),
)


def create_application(
    settings: Optional[Settings] = None,
    generation_service: Optional[TextGenerationService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if generation_service is None:
        generation_service = build_generation_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if generation_service is not None:
            await generation_service.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Retrieval-augmented summarization for insurance policy documents.",
        version=app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.summarizer = RagSummarizationService(
        settings=settings, generation=generation_service
    )
    app.state.profiles = load_profiles(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": exc.errors()},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict) and "error" in detail:
            payload = detail
        elif detail == "There was an error parsing the body":
            payload = {"error": "invalid_json", "details": detail}
        else:
            payload = {"error": "http_error", "details": detail}
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(SummarizationError)
    async def summarization_exception_handler(
        request: Request, exc: SummarizationError
    ) -> JSONResponse:
        for error_cls, status_code, code in _ERROR_STATUS:
            if isinstance(exc, error_cls):
                return JSONResponse(
                    status_code=status_code, content={"error": code, "details": str(exc)}
                )
        logger.error(f"Unhandled summarization error: {exc!r}")
        return JSONResponse(
            status_code=500, content={"error": "summarization_failed", "details": str(exc)}
        )

    @app.get("/healthz", tags=["health"])
    async def healthz() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": app_version,
            "environment": settings.environment,
            "generation_provider": (
                generation_service.name if generation_service else None
            ),
            "max_payload_bytes": settings.max_payload_bytes,
        }

    app.include_router(router)
    return app


def serve() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("policy_rag.main:app", host="0.0.0.0", port=8000)


app = create_application()
