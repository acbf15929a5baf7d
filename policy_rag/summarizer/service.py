"""Caller-facing summarization service."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

from policy_rag.config import Settings, get_settings
from policy_rag.summarizer.cache import LRUCache
from policy_rag.summarizer.chunker import SemanticChunker
from policy_rag.summarizer.citations import generate_citations
from policy_rag.summarizer.entities import aggregate_entities
from policy_rag.summarizer.errors import GenerationUnavailableError, NoContentError
from policy_rag.summarizer.generation import TextGenerationService
from policy_rag.summarizer.key_points import extract_key_points
from policy_rag.summarizer.models import ProcessingMetrics, SummaryRequest, SummaryResult
from policy_rag.summarizer.orchestrator import SummarizationOrchestrator
from policy_rag.summarizer.scoring import (
    UsageTracker,
    calculate_confidence,
    compression_ratio,
    estimate_cost,
)

logger = logging.getLogger(__name__)


class RagSummarizationService:
    """
    Long-lived summarization pipeline owned by the caller.

    The instance holds the two process-wide caches (chunk sets per document,
    chunk summaries per chunk and summary type) and cumulative usage totals.
    Everything else is created per request.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        generation: Optional[TextGenerationService] = None,
        clock=time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self.generation = generation
        self.chunk_cache: LRUCache = LRUCache(
            self.settings.chunk_cache_size, self.settings.cache_ttl_seconds, clock=clock
        )
        self.summary_cache: LRUCache[str] = LRUCache(
            self.settings.summary_cache_size, self.settings.cache_ttl_seconds, clock=clock
        )
        self.chunker = SemanticChunker.from_settings(self.settings, cache=self.chunk_cache)
        self._totals_lock = threading.Lock()
        self.total_tokens_used = 0
        self.total_model_calls = 0

    def orchestrator(self) -> SummarizationOrchestrator:
        if self.generation is None:
            raise GenerationUnavailableError("No text generation service is configured")
        return SummarizationOrchestrator(
            self.generation, self.settings, summary_cache=self.summary_cache
        )

    async def generate_summary(self, request: SummaryRequest) -> SummaryResult:
        """
        Chunk, synthesize and score ``request.documents``.

        Raises:
            NoContentError: every document was empty.
            SynthesisError: the final synthesis call failed.
            GenerationUnavailableError: no generation service is configured.
        """
        orchestrator = self.orchestrator()
        started = time.perf_counter()
        usage = UsageTracker()

        logger.info(
            f"Starting summary: {len(request.documents)} documents, "
            f"type={request.summary_type}, hierarchical={request.hierarchical}"
        )

        chunks = self.chunker.chunk_documents(request.documents)
        if not chunks:
            raise NoContentError("Documents contained no text to summarize")

        entities = aggregate_entities(chunks)
        try:
            summary = await orchestrator.summarize(chunks, request, usage)
        finally:
            self._accumulate(usage)

        key_points = extract_key_points(summary)
        citations = (
            generate_citations(chunks, summary) if request.include_source_citations else []
        )

        metrics = ProcessingMetrics(
            total_documents=len(request.documents),
            total_chunks=len(chunks),
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            tokens_used=usage.tokens_used,
            compression_ratio=compression_ratio(request.documents, summary),
            model_calls=usage.model_calls,
            estimated_cost=estimate_cost(usage, self.settings),
            fallback_summaries=usage.fallback_summaries,
        )
        logger.info(
            f"Summary completed: {metrics.total_chunks} chunks, "
            f"{metrics.model_calls} model calls, {metrics.tokens_used} tokens, "
            f"{metrics.fallback_summaries} fallbacks in {metrics.processing_time_ms} ms"
        )

        return SummaryResult(
            summary=summary,
            key_points=key_points,
            entities=entities,
            source_citations=citations,
            confidence=calculate_confidence(chunks, len(request.documents)),
            methodology=orchestrator.methodology(request),
            processing_metrics=metrics,
        )

    def _accumulate(self, usage: UsageTracker) -> None:
        with self._totals_lock:
            self.total_tokens_used += usage.tokens_used
            self.total_model_calls += usage.model_calls

    def clear_caches(self) -> None:
        self.chunk_cache.clear()
        self.summary_cache.clear()
        with self._totals_lock:
            self.total_tokens_used = 0
            self.total_model_calls = 0
        logger.info("Summarization caches cleared")

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "chunk_cache": self.chunk_cache.stats(),
            "summary_cache": self.summary_cache.stats(),
            "total_tokens_used": self.total_tokens_used,
            "total_model_calls": self.total_model_calls,
        }
