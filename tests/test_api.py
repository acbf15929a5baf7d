import json

import pytest
from httpx import ASGITransport, AsyncClient

from policy_rag.main import create_application
from policy_rag.summarizer.generation import GenerationResponse

from conftest import FakeGenerationService, is_synthesis


def _document(doc_id: str = "cgl-001", content: str = None) -> dict:
    return {
        "id": doc_id,
        "domain_type": "coverage",
        "title": "Commercial General Liability",
        "content": content
        if content is not None
        else (
            "LIMITS OF INSURANCE\n"
            + "The most we will pay is $1,000,000 per occurrence and $2,000,000 aggregate. " * 6
            + "\n\nEXCLUSIONS\n"
            + "This insurance does not apply to flood, earthquake or pollution damage. " * 6
        ),
    }


@pytest.fixture
def test_app(settings, fake_generation):
    return create_application(settings=settings, generation_service=fake_generation)


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.anyio
async def test_healthz(test_app):
    async with _client(test_app) as client:
        response = await client.get("/healthz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["generation_provider"] == "fake"


@pytest.mark.anyio
async def test_summary_endpoint_returns_result(test_app):
    payload = {"documents": [_document()], "summary_type": "technical"}
    async with _client(test_app) as client:
        response = await client.post("/v1/summaries", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["summary"].startswith("## Coverage Summary")
    assert body["methodology"] == "direct-synthesis"
    assert 0.0 <= body["confidence"] <= 1.0
    assert body["key_points"][0]["importance"] == "critical"
    assert {"name", "type", "context", "frequency"} <= set(body["entities"][0])
    metrics = body["processing_metrics"]
    assert metrics["total_documents"] == 1
    assert metrics["model_calls"] == 1
    assert body["profile"] is None


@pytest.mark.anyio
async def test_streaming_emits_phases_in_order(test_app):
    payload = {"documents": [_document()], "stream": True}
    async with _client(test_app) as client:
        async with client.stream("POST", "/v1/summaries", json=payload) as response:
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/event-stream")
            events = []
            async for line in response.aiter_lines():
                if line.startswith("data: "):
                    events.append(json.loads(line[len("data: "):]))

    phases = [event["phase"] for event in events]
    assert phases[0] == "summary"
    assert phases[-1] == "complete"
    assert "key_point" in phases
    order = {"summary": 0, "key_point": 1, "citation": 2, "complete": 3}
    assert [order[phase] for phase in phases] == sorted(order[phase] for phase in phases)
    footer = events[-1]
    assert footer["methodology"] == "direct-synthesis"
    assert "processing_metrics" in footer
    assert "confidence" in footer


@pytest.mark.anyio
async def test_profile_defaults_apply(test_app, fake_generation):
    payload = {"documents": [_document()], "profile": "underwriting-review"}
    async with _client(test_app) as client:
        response = await client.post("/v1/summaries", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["profile"] == "underwriting-review"
    assert body["methodology"] == "hierarchical-map-reduce"
    system = fake_generation.synthesis_requests[0].messages[0].content
    assert "technical summary" in system
    assert "PRIORITY FOCUS: coverage limits, deductibles, exclusions" in system


@pytest.mark.anyio
async def test_request_overrides_profile(test_app, fake_generation):
    payload = {
        "documents": [_document()],
        "profile": "underwriting-review",
        "hierarchical": False,
        "summary_type": "executive",
    }
    async with _client(test_app) as client:
        response = await client.post("/v1/summaries", json=payload)

    assert response.json()["methodology"] == "direct-synthesis"
    assert "executive summary" in fake_generation.requests[0].messages[0].content


@pytest.mark.anyio
async def test_list_profiles_endpoint(test_app):
    async with _client(test_app) as client:
        response = await client.get("/v1/profiles")

    assert response.status_code == 200
    profiles = response.json()
    assert isinstance(profiles, list)
    ids = [p["id"] for p in profiles]
    assert {"underwriting-review", "executive-brief", "compliance-review"} <= set(ids)


@pytest.mark.anyio
async def test_unknown_profile_400(test_app):
    payload = {"documents": [_document()], "profile": "nonexistent"}
    async with _client(test_app) as client:
        response = await client.post("/v1/summaries", json=payload)

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "unknown_profile"
    assert "underwriting-review" in data["available"]


@pytest.mark.anyio
async def test_validation_errors_return_400(test_app):
    async with _client(test_app) as client:
        missing = await client.post("/v1/summaries", json={"documents": []})
        bad_type = await client.post(
            "/v1/summaries", json={"documents": [_document()], "summary_type": "poem"}
        )
        extra = await client.post(
            "/v1/summaries", json={"documents": [_document()], "unexpected": 1}
        )

    for response in (missing, bad_type, extra):
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


@pytest.mark.anyio
async def test_invalid_json_body(test_app):
    async with _client(test_app) as client:
        response = await client.post(
            "/v1/summaries",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_json"


@pytest.mark.anyio
async def test_payload_too_large(settings, fake_generation):
    small = settings.model_copy(update={"max_payload_bytes": 2048})
    app = create_application(settings=small, generation_service=fake_generation)
    payload = {"documents": [_document(content="x" * 5000)]}

    async with _client(app) as client:
        response = await client.post("/v1/summaries", json=payload)

    assert response.status_code == 413
    assert response.json()["error"] == "payload_too_large"


@pytest.mark.anyio
async def test_too_many_documents(settings, fake_generation):
    limited = settings.model_copy(update={"max_documents": 1})
    app = create_application(settings=limited, generation_service=fake_generation)
    payload = {"documents": [_document("a"), _document("b")]}

    async with _client(app) as client:
        response = await client.post("/v1/summaries", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "too_many_documents"


@pytest.mark.anyio
async def test_empty_documents_422(test_app):
    payload = {"documents": [_document(content="   ")]}
    async with _client(test_app) as client:
        response = await client.post("/v1/summaries", json=payload)

    assert response.status_code == 422
    assert response.json()["error"] == "no_content"


@pytest.mark.anyio
async def test_synthesis_failure_502(settings):
    def reply(request):
        if is_synthesis(request):
            return GenerationResponse(success=False)
        return "chunk"

    app = create_application(
        settings=settings, generation_service=FakeGenerationService(reply=reply)
    )
    async with _client(app) as client:
        response = await client.post("/v1/summaries", json={"documents": [_document()]})

    assert response.status_code == 502
    assert response.json()["error"] == "synthesis_failed"


@pytest.mark.anyio
async def test_generation_unavailable_503(settings):
    app = create_application(settings=settings)
    async with _client(app) as client:
        response = await client.post("/v1/summaries", json={"documents": [_document()]})

    assert response.status_code == 503
    assert response.json()["error"] == "generation_unavailable"


@pytest.mark.anyio
async def test_cache_stats_and_clear(test_app):
    payload = {"documents": [_document()], "hierarchical": True}
    async with _client(test_app) as client:
        await client.post("/v1/summaries", json=payload)
        await client.post("/v1/summaries", json=payload)

        stats = (await client.get("/v1/cache/stats")).json()
        assert stats["chunk_cache"]["hits"] == 1
        assert stats["summary_cache"]["size"] >= 1
        assert stats["total_model_calls"] > 0

        cleared = await client.delete("/v1/cache")
        assert cleared.status_code == 204

        after = (await client.get("/v1/cache/stats")).json()
    assert after["chunk_cache"]["size"] == 0
    assert after["summary_cache"]["size"] == 0
    assert after["total_model_calls"] == 0
