"""Pytest configuration for tests."""

from typing import Callable, List, Optional, Union

import anyio
import pytest

from policy_rag.config import Settings
from policy_rag.summarizer.generation import (
    GenerationRequest,
    GenerationResponse,
    GenerationUsage,
    TextGenerationService,
)
from policy_rag.summarizer.models import DocumentSource

Outcome = Union[str, GenerationResponse, BaseException]

SYNTHESIS_REPLY = """## Coverage Summary
[CRITICAL] Liability coverage limit is $1,000,000 per occurrence with a $2,000,000 aggregate
[IMPORTANT] Property deductible of $2,500 applies to each covered loss
- Premium is rated on gross receipts for each covered location
1. Flood and earthquake damage are excluded from property coverage
"""


def is_synthesis(request: GenerationRequest) -> bool:
    return request.messages[0].content.startswith("You are a senior")


class FakeGenerationService(TextGenerationService):
    """Scripted in-memory generation service.

    ``reply`` is either a fixed outcome or a callable receiving the request.
    Outcomes may be a string, a ``GenerationResponse`` or an exception to raise.
    """

    name = "fake"

    def __init__(
        self,
        reply: Optional[Union[Outcome, Callable[[GenerationRequest], Outcome]]] = None,
        tokens: int = 100,
        delay: float = 0.0,
    ) -> None:
        self.reply = reply if reply is not None else self.default_reply
        self.tokens = tokens
        self.delay = delay
        self.requests: List[GenerationRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0
        # sizes of bursts of overlapping calls, split whenever nothing is in flight
        self.waves: List[int] = []
        self.closed = False

    @staticmethod
    def default_reply(request: GenerationRequest) -> str:
        if is_synthesis(request):
            return SYNTHESIS_REPLY
        return "- Chunk summary: liability coverage limit and deductible noted"

    @property
    def synthesis_requests(self) -> List[GenerationRequest]:
        return [request for request in self.requests if is_synthesis(request)]

    @property
    def chunk_requests(self) -> List[GenerationRequest]:
        return [request for request in self.requests if not is_synthesis(request)]

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        if self.in_flight == 0:
            self.waves.append(0)
        self.waves[-1] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await anyio.sleep(self.delay)
            outcome = self.reply(request) if callable(self.reply) else self.reply
        finally:
            self.in_flight -= 1

        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, GenerationResponse):
            return outcome
        return GenerationResponse(
            success=True,
            content=outcome,
            usage=GenerationUsage(total_tokens=self.tokens),
        )

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_section(heading: str, sentence: str, repeat: int) -> str:
    return heading + "\n" + " ".join([sentence] * repeat) + "\n\n"


def padded(words: int, word: str = "policy") -> str:
    return " ".join([word] * words)


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        batch_delay_ms=0,
        streaming_chunk_delay_ms=0,
        generation_max_retries=0,
        generation_retry_base_delay_ms=0,
        llm_provider="none",
    )


@pytest.fixture
def fake_generation() -> FakeGenerationService:
    return FakeGenerationService()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy_document() -> DocumentSource:
    content = (
        make_section(
            "SECTION I DECLARATIONS",
            "The named insured is Acme Manufacturing of Austin, TX with a policy period "
            "beginning 01/01/2024 and an annual premium of $12,500.",
            8,
        )
        + make_section(
            "COVERAGE A - BODILY INJURY AND PROPERTY DAMAGE LIABILITY",
            "We will pay those sums that the insured becomes legally obligated to pay "
            "as damages because of bodily injury or property damage.",
            8,
        )
        + make_section(
            "LIMITS OF INSURANCE",
            "The most we will pay is $1,000,000 per occurrence and $2,000,000 aggregate "
            "for all damages under Coverage A.",
            8,
        )
        + make_section(
            "DEDUCTIBLES",
            "A deductible of $2,500 each claim applies to property damage and the "
            "insured must reimburse us within 30 days.",
            8,
        )
        + make_section(
            "EXCLUSIONS",
            "This insurance does not apply to expected or intended injury, pollution, "
            "or damage to your own work arising out of it.",
            8,
        )
    )
    return DocumentSource(
        id="cgl-001",
        domain_type="coverage",
        title="Commercial General Liability",
        content=content,
    )


@pytest.fixture
def pricing_document() -> DocumentSource:
    content = make_section(
        "RATING RULES",
        "The base rate is applied per $1,000 of gross receipts and a 15% surcharge "
        "applies to risks in FL. Filing with the regulator is required.",
        10,
    )
    return DocumentSource(
        id="rate-001", domain_type="pricing", title="Rating Manual", content=content
    )
