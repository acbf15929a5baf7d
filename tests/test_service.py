import pytest

from policy_rag.summarizer import (
    GenerationUnavailableError,
    NoContentError,
    RagSummarizationService,
    SummaryRequest,
    SynthesisError,
)
from policy_rag.summarizer.generation import GenerationResponse
from policy_rag.summarizer.models import DocumentSource

from conftest import FakeGenerationService, is_synthesis


@pytest.fixture
def service(settings, fake_generation, clock):
    return RagSummarizationService(settings=settings, generation=fake_generation, clock=clock)


@pytest.mark.anyio
async def test_direct_summary_end_to_end(service, fake_generation, policy_document, pricing_document):
    request = SummaryRequest(documents=[policy_document, pricing_document])

    result = await service.generate_summary(request)

    assert result.methodology == "direct-synthesis"
    assert result.summary.startswith("## Coverage Summary")
    assert len(fake_generation.requests) == 1

    metrics = result.processing_metrics
    assert metrics.total_documents == 2
    assert metrics.total_chunks == 6
    assert metrics.model_calls == 1
    assert metrics.tokens_used == 100
    assert metrics.fallback_summaries == 0
    assert metrics.estimated_cost > 0
    assert 0 < metrics.compression_ratio < 1
    assert metrics.processing_time_ms >= 0

    assert 0.0 <= result.confidence <= 1.0
    assert result.key_points[0].importance == "critical"
    assert result.key_points[0].text.startswith("Liability coverage limit")
    assert any(entity.name == "TX" for entity in result.entities)
    assert result.source_citations
    for citation in result.source_citations:
        assert citation.relevance > 0.3


@pytest.mark.anyio
async def test_hierarchical_summary_maps_each_chunk(service, fake_generation, policy_document):
    result = await service.generate_summary(
        SummaryRequest(documents=[policy_document], hierarchical=True)
    )

    assert result.methodology == "hierarchical-map-reduce"
    assert len(fake_generation.chunk_requests) == 5
    assert len(fake_generation.synthesis_requests) == 1
    assert result.processing_metrics.model_calls == 6


@pytest.mark.anyio
async def test_citations_can_be_disabled(service, policy_document):
    result = await service.generate_summary(
        SummaryRequest(documents=[policy_document], include_source_citations=False)
    )
    assert result.source_citations == []


@pytest.mark.anyio
async def test_empty_documents_raise_no_content(service):
    empty = DocumentSource(id="e", domain_type="form", title="Blank", content="   ")
    with pytest.raises(NoContentError):
        await service.generate_summary(SummaryRequest(documents=[empty]))


@pytest.mark.anyio
async def test_empty_documents_are_skipped_alongside_real_ones(service, pricing_document):
    empty = DocumentSource(id="e", domain_type="form", title="Blank", content="")
    result = await service.generate_summary(
        SummaryRequest(documents=[empty, pricing_document])
    )
    assert result.processing_metrics.total_documents == 2
    assert result.processing_metrics.total_chunks == 1


@pytest.mark.anyio
async def test_missing_generation_service(settings, policy_document):
    service = RagSummarizationService(settings=settings)
    with pytest.raises(GenerationUnavailableError):
        await service.generate_summary(SummaryRequest(documents=[policy_document]))


@pytest.mark.anyio
async def test_synthesis_failure_still_counts_usage(settings, clock, policy_document):
    def reply(request):
        if is_synthesis(request):
            return GenerationResponse(success=False)
        return "chunk"

    service = RagSummarizationService(
        settings=settings, generation=FakeGenerationService(reply=reply), clock=clock
    )

    with pytest.raises(SynthesisError):
        await service.generate_summary(
            SummaryRequest(documents=[policy_document], hierarchical=True)
        )
    assert service.get_cache_stats()["total_model_calls"] == 6


@pytest.mark.anyio
async def test_caches_are_reused_across_requests(service, fake_generation, policy_document):
    request = SummaryRequest(documents=[policy_document], hierarchical=True)

    await service.generate_summary(request)
    await service.generate_summary(request)

    assert len(fake_generation.chunk_requests) == 5
    stats = service.get_cache_stats()
    assert stats["chunk_cache"]["hits"] == 1
    assert stats["summary_cache"]["hits"] == 5
    assert stats["summary_cache"]["size"] == 5
    assert stats["total_model_calls"] == 7


@pytest.mark.anyio
async def test_caches_expire_after_ttl(service, fake_generation, policy_document, clock):
    request = SummaryRequest(documents=[policy_document], hierarchical=True)

    await service.generate_summary(request)
    clock.advance(601)
    await service.generate_summary(request)

    assert len(fake_generation.chunk_requests) == 10


@pytest.mark.anyio
async def test_clear_caches_resets_state(service, fake_generation, policy_document):
    request = SummaryRequest(documents=[policy_document], hierarchical=True)
    await service.generate_summary(request)

    service.clear_caches()

    stats = service.get_cache_stats()
    assert stats["chunk_cache"]["size"] == 0
    assert stats["summary_cache"]["size"] == 0
    assert stats["total_tokens_used"] == 0

    await service.generate_summary(request)
    assert len(fake_generation.chunk_requests) == 10


def test_domain_models_module_is_documented():
    from policy_rag.summarizer import models

    assert models.__doc__ == "Domain models shared across the summarization pipeline."
