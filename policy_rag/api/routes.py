"""HTTP route handlers for the summarization API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

import anyio
import orjson
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ValidationError

from policy_rag.config import Settings
from policy_rag.profiles.loader import ProfileRegistry
from policy_rag.profiles.models import Profile, ProfileSummary
from policy_rag.profiles.precedence import apply_profile_defaults, apply_profile_limits
from policy_rag.summarizer.models import SummaryRequest
from policy_rag.summarizer.service import RagSummarizationService

from .schemas import (
    CacheStatsResponseModel,
    CitationModel,
    KeyPointModel,
    MetricsModel,
    SummaryRequestModel,
    SummaryResponseModel,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {orjson.dumps(payload).decode()}\n\n"


async def _load_request_model(
    http_request: Request, model_cls: Type[BaseModel], settings: Settings
) -> BaseModel:
    header_length = http_request.headers.get("content-length")
    if header_length:
        try:
            content_length = int(header_length)
        except ValueError:
            content_length = None
        else:
            if (
                content_length is not None
                and content_length > settings.max_payload_bytes
            ):
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail={
                        "error": "payload_too_large",
                        "limit_bytes": settings.max_payload_bytes,
                    },
                )

    body_bytes = await http_request.body()
    if body_bytes and len(body_bytes) > settings.max_payload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": "payload_too_large",
                "limit_bytes": settings.max_payload_bytes,
            },
        )

    if not body_bytes:
        data: Dict[str, Any] = {}
    else:
        try:
            data = orjson.loads(body_bytes)
        except orjson.JSONDecodeError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "invalid_json", "details": str(exc)},
            ) from exc

    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


async def load_summary_request(http_request: Request) -> SummaryRequestModel:
    settings: Settings = http_request.app.state.settings
    model = await _load_request_model(http_request, SummaryRequestModel, settings)
    if len(model.documents) > settings.max_documents:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "too_many_documents", "limit": settings.max_documents},
        )
    return model


def get_summarizer(http_request: Request) -> RagSummarizationService:
    return http_request.app.state.summarizer


def get_profiles(http_request: Request) -> ProfileRegistry:
    return http_request.app.state.profiles


def _resolve_profile(
    registry: ProfileRegistry, profile_id: Optional[str]
) -> Optional[Profile]:
    if profile_id is None:
        return None
    profile = registry.get(profile_id)
    if profile is None:
        logger.warning(f"Unknown profile requested: {profile_id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "unknown_profile",
                "details": f"Profile '{profile_id}' is not registered.",
                "available": registry.ids(),
            },
        )
    return profile


def build_summary_request(
    model: SummaryRequestModel, profile: Optional[Profile], settings: Settings
) -> SummaryRequest:
    options = apply_profile_defaults(
        profile,
        summary_type=model.summary_type,
        target_length=model.target_length,
        focus_areas=model.focus_areas,
        hierarchical=model.hierarchical,
    )
    options = apply_profile_limits(
        options, profile, settings, parallel_batch_size=model.parallel_batch_size
    )
    return SummaryRequest(
        documents=[document.to_domain() for document in model.documents],
        summary_type=options.summary_type,
        target_length=options.target_length,
        focus_areas=options.focus_areas,
        hierarchical=options.hierarchical,
        parallel_batch_size=options.parallel_batch_size,
        cost_optimized=model.cost_optimized,
        include_source_citations=model.include_source_citations,
        system_suffix=options.system_suffix,
        max_chunks_per_level=options.max_chunks_per_level,
        max_context_window=options.max_context_window,
    )


@router.get("/v1/profiles", response_model=List[ProfileSummary])
async def list_profiles(registry: ProfileRegistry = Depends(get_profiles)):
    return registry.summaries()


@router.post("/v1/summaries")
async def create_summary(
    http_request: Request,
    summary_request: SummaryRequestModel = Depends(load_summary_request),
    summarizer: RagSummarizationService = Depends(get_summarizer),
    registry: ProfileRegistry = Depends(get_profiles),
):
    try:
        settings: Settings = http_request.app.state.settings
        profile = _resolve_profile(registry, summary_request.profile)
        domain_request = build_summary_request(summary_request, profile, settings)

        result = await summarizer.generate_summary(domain_request)
        profile_id = profile.id if profile else None

        if summary_request.stream:

            async def event_stream():
                delay = settings.streaming_chunk_delay_ms / 1000
                yield _sse({"phase": "summary", "summary": result.summary})
                await anyio.sleep(delay)
                for point in result.key_points:
                    yield _sse(
                        {
                            "phase": "key_point",
                            "key_point": KeyPointModel.from_domain(point).model_dump(),
                        }
                    )
                    await anyio.sleep(delay)
                for citation in result.source_citations:
                    yield _sse(
                        {
                            "phase": "citation",
                            "citation": CitationModel.from_domain(citation).model_dump(),
                        }
                    )
                    await anyio.sleep(delay)
                footer = {
                    "phase": "complete",
                    "confidence": result.confidence,
                    "methodology": result.methodology,
                    "profile": profile_id,
                    "processing_metrics": MetricsModel.from_domain(
                        result.processing_metrics
                    ).model_dump(),
                }
                yield _sse(footer)

            return StreamingResponse(event_stream(), media_type="text/event-stream")

        response_payload = SummaryResponseModel.from_domain(result, profile=profile_id)
        return JSONResponse(content=response_payload.model_dump())
    except HTTPException as exc:
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            return JSONResponse(status_code=exc.status_code, content=exc.detail)
        raise


@router.get("/v1/cache/stats", response_model=CacheStatsResponseModel)
async def cache_stats(summarizer: RagSummarizationService = Depends(get_summarizer)):
    return summarizer.get_cache_stats()


@router.delete("/v1/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(summarizer: RagSummarizationService = Depends(get_summarizer)):
    summarizer.clear_caches()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
