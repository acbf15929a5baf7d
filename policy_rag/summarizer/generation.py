# policy_rag/summarizer/generation.py
"""
Adapters for the external text generation service.

Every adapter speaks the same contract: a list of chat messages plus model,
token and temperature settings in, ``{success, content, usage}`` out.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

import httpx

from policy_rag.config import Settings
from policy_rag.summarizer.errors import GenerationServiceError

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]

RETRYABLE_STATUS = frozenset({408, 409, 429})


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: Role
    content: str


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    messages: List[ChatMessage]
    model: str
    max_tokens: int = 1000
    temperature: float = 0.7


@dataclass(frozen=True, slots=True)
class GenerationUsage:
    total_tokens: int


@dataclass(slots=True)
class GenerationResponse:
    success: bool
    content: Optional[str] = None
    usage: Optional[GenerationUsage] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def _status_is_retryable(status: int) -> bool:
    return status in RETRYABLE_STATUS or status >= 500


class TextGenerationService(ABC):
    """Abstract base class for generation providers."""

    name: str

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Produce a chat completion for ``request``."""

    async def aclose(self) -> None:
        """Release any pooled connections."""


class OpenAIGenerationService(TextGenerationService):
    """OpenAI chat completions provider."""

    name = "openai"

    def __init__(self, api_key: str, client: Any = None):
        try:
            from openai import AsyncOpenAI
            import tiktoken
        except ImportError:
            raise ImportError(
                "OpenAI package not installed. Install with: pip install openai tiktoken"
            )

        self._tiktoken = tiktoken
        self.client = client or AsyncOpenAI(api_key=api_key)

    def count_tokens(self, text: str, model: str) -> int:
        """Count tokens using tiktoken."""
        try:
            encoding = self._tiktoken.encoding_for_model(model)
        except KeyError:
            encoding = self._tiktoken.get_encoding("cl100k_base")
        return len(encoding.encode(text))

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        import openai

        try:
            response = await self.client.chat.completions.create(
                model=request.model,
                messages=[
                    {"role": message.role, "content": message.content}
                    for message in request.messages
                ],
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            )
        except openai.APIStatusError as exc:
            raise GenerationServiceError(
                f"OpenAI returned HTTP {exc.status_code}: {exc.message}",
                retryable=_status_is_retryable(exc.status_code),
            ) from exc
        except openai.APIConnectionError as exc:
            raise GenerationServiceError(
                f"OpenAI connection failed: {exc}", retryable=True
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if response.usage is not None:
            total_tokens = response.usage.total_tokens
        else:
            prompt_text = "\n".join(message.content for message in request.messages)
            total_tokens = self.count_tokens(prompt_text, request.model) + (
                self.count_tokens(content, request.model) if content else 0
            )

        return GenerationResponse(
            success=bool(content),
            content=content,
            usage=GenerationUsage(total_tokens=total_tokens),
        )

    async def aclose(self) -> None:
        await self.client.close()


class AnthropicGenerationService(TextGenerationService):
    """Anthropic Claude messages provider."""

    name = "anthropic"

    def __init__(self, api_key: str, client: Any = None):
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "Anthropic package not installed. Install with: pip install anthropic"
            )

        self.client = client or AsyncAnthropic(api_key=api_key)

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        import anthropic

        # System messages are passed separately from the conversation
        system_prompt = "\n\n".join(
            message.content for message in request.messages if message.role == "system"
        )
        conversation = [
            {"role": message.role, "content": message.content}
            for message in request.messages
            if message.role != "system"
        ]

        try:
            response = await self.client.messages.create(
                model=request.model,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                system=system_prompt,
                messages=conversation,
            )
        except anthropic.APIStatusError as exc:
            raise GenerationServiceError(
                f"Anthropic returned HTTP {exc.status_code}: {exc.message}",
                retryable=_status_is_retryable(exc.status_code),
            ) from exc
        except anthropic.APIConnectionError as exc:
            raise GenerationServiceError(
                f"Anthropic connection failed: {exc}", retryable=True
            ) from exc

        content = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = None
        if response.usage is not None:
            usage = GenerationUsage(
                total_tokens=response.usage.input_tokens + response.usage.output_tokens
            )
        return GenerationResponse(success=bool(content), content=content or None, usage=usage)

    async def aclose(self) -> None:
        await self.client.close()


class OllamaGenerationService(TextGenerationService):
    """Ollama local chat provider."""

    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ollama provider.

        Args:
            base_url: Ollama server URL (default: http://localhost:11434)
            timeout: Read timeout for a single completion in seconds
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(10.0, read=timeout),
            transport=transport,
        )
        logger.info(f"Initialized Ollama provider at {self.base_url}")

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        payload = {
            "model": request.model,
            "messages": [
                {"role": message.role, "content": message.content}
                for message in request.messages
            ],
            "stream": False,
            "options": {
                "temperature": request.temperature,
                "num_predict": request.max_tokens,
            },
        }

        try:
            response = await self.client.post("/api/chat", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise GenerationServiceError(
                f"Ollama returned HTTP {status}", retryable=_status_is_retryable(status)
            ) from exc
        except httpx.TransportError as exc:
            raise GenerationServiceError(
                f"Ollama connection failed: {exc}", retryable=True
            ) from exc

        result = response.json()
        content = (result.get("message") or {}).get("content") or None
        usage = None
        if "prompt_eval_count" in result or "eval_count" in result:
            usage = GenerationUsage(
                total_tokens=int(result.get("prompt_eval_count", 0))
                + int(result.get("eval_count", 0))
            )
        return GenerationResponse(
            success=bool(content), content=content, usage=usage, raw=result
        )

    async def aclose(self) -> None:
        await self.client.aclose()


def build_generation_service(settings: Settings) -> Optional[TextGenerationService]:
    """Create the provider selected by ``settings.llm_provider``."""
    provider = settings.llm_provider.lower()
    if provider == "none":
        logger.info("No generation provider configured")
        return None

    if provider == "openai":
        if not settings.openai_api_key:
            logger.warning("OpenAI API key not configured, generation disabled")
            return None
        logger.info("Initialized OpenAI generation provider")
        return OpenAIGenerationService(api_key=settings.openai_api_key)

    if provider == "anthropic":
        if not settings.anthropic_api_key:
            logger.warning("Anthropic API key not configured, generation disabled")
            return None
        logger.info("Initialized Anthropic generation provider")
        return AnthropicGenerationService(api_key=settings.anthropic_api_key)

    if provider == "ollama":
        return OllamaGenerationService(
            base_url=settings.ollama_base_url,
            timeout=settings.generation_timeout_seconds,
        )

    logger.warning(f"Unknown generation provider: {settings.llm_provider}")
    return None
