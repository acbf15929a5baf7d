"""
Retry and timeout helpers for calls to the generation service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import anyio
import httpx

from policy_rag.summarizer.errors import GenerationServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry logic"""

    max_retries: int = 2
    base_delay: float = 0.2
    exponential_base: float = 2.0
    max_delay: float = 5.0
    timeout: float = 30.0

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.exponential_base**attempt), self.max_delay)


def is_transient(error: BaseException) -> bool:
    if isinstance(error, GenerationServiceError):
        return error.retryable
    return isinstance(error, (TimeoutError, httpx.TransportError, ConnectionError))


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    description: str = "generation call",
) -> T:
    """Await ``operation()`` under a per-attempt timeout, retrying transient failures."""
    attempt = 0
    while True:
        try:
            with anyio.fail_after(config.timeout):
                return await operation()
        except Exception as exc:
            if attempt >= config.max_retries or not is_transient(exc):
                raise
            delay = config.delay_for(attempt)
            attempt += 1
            logger.warning(
                f"Transient error in {description} "
                f"(attempt {attempt}/{config.max_retries}): {exc!r}; retrying in {delay:.2f}s"
            )
            await anyio.sleep(delay)
