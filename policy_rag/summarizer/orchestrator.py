"""Direct and hierarchical (map-reduce) synthesis over classified chunks."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from policy_rag.config import Settings
from policy_rag.summarizer.batching import process_batch
from policy_rag.summarizer.cache import LRUCache
from policy_rag.summarizer.errors import GenerationServiceError, SynthesisError
from policy_rag.summarizer.generation import (
    ChatMessage,
    GenerationRequest,
    GenerationResponse,
    TextGenerationService,
)
from policy_rag.summarizer.models import IMPORTANCE_ORDER, DocumentChunk, SummaryRequest
from policy_rag.summarizer.prompts import (
    CONTEXT_SEPARATOR,
    build_chunk_messages,
    build_synthesis_messages,
    tag_chunk,
)
from policy_rag.summarizer.retry import RetryConfig, call_with_retry
from policy_rag.summarizer.scoring import UsageTracker
from policy_rag.summarizer.tokens import estimate_tokens

logger = logging.getLogger(__name__)

FALLBACK_EXCERPT_CHARS = 300
HIERARCHICAL = "hierarchical-map-reduce"
DIRECT = "direct-synthesis"


def rank_by_importance(chunks: Sequence[DocumentChunk]) -> List[DocumentChunk]:
    """Stable sort, critical first."""
    return sorted(chunks, key=lambda chunk: IMPORTANCE_ORDER[chunk.metadata.importance])


def compress_text(text: str, max_length: int = FALLBACK_EXCERPT_CHARS) -> str:
    """Trim ``text`` to ``max_length`` characters, preferring a sentence end."""
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    boundary = max(truncated.rfind("."), truncated.rfind("!"), truncated.rfind("?"))
    if boundary > max_length * 0.7:
        return truncated[: boundary + 1]
    return text[: max_length - 3].rstrip() + "..."


class SummarizationOrchestrator:
    """
    Drive the generation service over a set of chunks.

    Small or flat requests go through one synthesis call over a token-bounded
    context; hierarchical requests summarize each top-ranked chunk first
    (map) and synthesize the joined chunk summaries (reduce).
    """

    def __init__(
        self,
        generation: TextGenerationService,
        settings: Settings,
        summary_cache: Optional[LRUCache[str]] = None,
    ) -> None:
        self.generation = generation
        self.settings = settings
        self.summary_cache = summary_cache
        self.map_model = settings.llm_model or settings.map_model
        self.reduce_model = settings.llm_model or settings.reduce_model
        self.retry = RetryConfig(
            max_retries=settings.generation_max_retries,
            base_delay=settings.generation_retry_base_delay_ms / 1000,
            max_delay=settings.generation_retry_max_delay_ms / 1000,
            timeout=settings.generation_timeout_seconds,
        )

    @staticmethod
    def methodology(request: SummaryRequest) -> str:
        return HIERARCHICAL if request.hierarchical else DIRECT

    async def summarize(
        self,
        chunks: Sequence[DocumentChunk],
        request: SummaryRequest,
        usage: UsageTracker,
    ) -> str:
        if request.hierarchical:
            return await self.hierarchical_summarize(chunks, request, usage)
        return await self.direct_summarize(chunks, request, usage)

    # ------------------------------------------------------------------ direct

    def select_context(
        self, chunks: Sequence[DocumentChunk], request: SummaryRequest
    ) -> List[DocumentChunk]:
        """Fill the context window with the most important chunks that still fit."""
        budget = request.max_context_window or self.settings.max_context_window
        limit = request.max_chunks_per_level or self.settings.max_chunks_per_level

        selected: List[DocumentChunk] = []
        for chunk in rank_by_importance(chunks):
            tokens = chunk.token_count or estimate_tokens(chunk.content)
            if tokens <= budget:
                selected.append(chunk)
                budget -= tokens
            if len(selected) >= limit:
                break
        return selected

    async def direct_summarize(
        self,
        chunks: Sequence[DocumentChunk],
        request: SummaryRequest,
        usage: UsageTracker,
    ) -> str:
        selected = self.select_context(chunks, request)
        logger.debug(f"Direct synthesis over {len(selected)} of {len(chunks)} chunks")
        context = CONTEXT_SEPARATOR.join(tag_chunk(chunk) for chunk in selected)
        return await self.synthesize(context, request, usage)

    # ------------------------------------------------------------ hierarchical

    def select_map_chunks(
        self, chunks: Sequence[DocumentChunk], request: SummaryRequest
    ) -> List[DocumentChunk]:
        limit = request.max_chunks_per_level or self.settings.max_chunks_per_level
        return rank_by_importance(chunks)[:limit]

    async def map_chunks(
        self,
        chunks: Sequence[DocumentChunk],
        request: SummaryRequest,
        usage: UsageTracker,
    ) -> List[str]:
        concurrency = request.parallel_batch_size or self.settings.max_parallel_calls

        async def summarize_one(chunk: DocumentChunk) -> str:
            return await self.summarize_chunk(chunk, request, usage)

        return await process_batch(
            chunks,
            summarize_one,
            concurrency=concurrency,
            batch_delay=self.settings.batch_delay_ms / 1000,
        )

    async def hierarchical_summarize(
        self,
        chunks: Sequence[DocumentChunk],
        request: SummaryRequest,
        usage: UsageTracker,
    ) -> str:
        top_chunks = self.select_map_chunks(chunks, request)
        chunk_summaries = await self.map_chunks(top_chunks, request, usage)
        combined = CONTEXT_SEPARATOR.join(chunk_summaries)
        return await self.synthesize(combined, request, usage)

    async def summarize_chunk(
        self, chunk: DocumentChunk, request: SummaryRequest, usage: UsageTracker
    ) -> str:
        """Map step for one chunk; any failure degrades to a local excerpt."""
        cache_key = f"{chunk.id}-{request.summary_type}"
        if self.summary_cache is not None:
            cached = self.summary_cache.get(cache_key)
            if cached is not None:
                return cached

        model = self.map_model if request.cost_optimized else self.reduce_model
        try:
            summary = await self._complete(
                build_chunk_messages(chunk, request.summary_type),
                model=model,
                max_tokens=self.settings.map_token_budget,
                temperature=self.settings.map_temperature,
                usage=usage,
                description=f"chunk summary {chunk.id}",
            )
        except Exception as exc:
            logger.warning(
                f"Chunk summarization failed for {chunk.id}, using excerpt: {exc!r}"
            )
            usage.fallback_summaries += 1
            return compress_text(chunk.content)

        if self.summary_cache is not None:
            self.summary_cache.set(cache_key, summary)
        return summary

    # --------------------------------------------------------------- synthesis

    async def synthesize(
        self, context: str, request: SummaryRequest, usage: UsageTracker
    ) -> str:
        target = self.settings.target_tokens.get(request.target_length, 1000)
        try:
            return await self._complete(
                build_synthesis_messages(context, request),
                model=self.reduce_model,
                max_tokens=min(self.settings.reduce_token_budget, target),
                temperature=self.settings.reduce_temperature,
                usage=usage,
                description="final synthesis",
            )
        except Exception as exc:
            logger.error(f"Synthesis failed: {exc!r}")
            raise SynthesisError(f"Final synthesis failed: {exc}") from exc

    async def _complete(
        self,
        messages: List[ChatMessage],
        *,
        model: str,
        max_tokens: int,
        temperature: float,
        usage: UsageTracker,
        description: str,
    ) -> str:
        request = GenerationRequest(
            messages=messages, model=model, max_tokens=max_tokens, temperature=temperature
        )
        response: GenerationResponse = await call_with_retry(
            lambda: self.generation.generate(request), self.retry, description
        )
        usage.record(model, response.usage.total_tokens if response.usage else None)

        if not response.success or not response.content:
            raise GenerationServiceError(f"{description} returned no content")
        return response.content
