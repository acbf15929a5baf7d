"""Usage accounting, cost estimation and confidence scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Sequence

from policy_rag.config import Settings
from policy_rag.summarizer.models import CRITICAL_SECTIONS, DocumentChunk, DocumentSource

INPUT_SHARE = 0.6
OUTPUT_SHARE = 0.4


@dataclass(slots=True)
class UsageTracker:
    """Token and call counters for a single summary request."""

    tokens_used: int = 0
    model_calls: int = 0
    fallback_summaries: int = 0
    tokens_by_model: Dict[str, int] = field(default_factory=dict)

    def record(self, model: str, total_tokens: int | None) -> None:
        self.model_calls += 1
        if total_tokens:
            self.tokens_used += total_tokens
            self.tokens_by_model[model] = self.tokens_by_model.get(model, 0) + total_tokens


def estimate_cost(usage: UsageTracker, settings: Settings) -> float:
    """Assume 60% of tokens were prompt and 40% completion, priced per model."""
    cost = 0.0
    for model, tokens in usage.tokens_by_model.items():
        rate = settings.rate_for(model)
        cost += (tokens * INPUT_SHARE / 1000 * rate["input"]) + (
            tokens * OUTPUT_SHARE / 1000 * rate["output"]
        )
    return cost


def section_coverage(chunks: Iterable[DocumentChunk]) -> float:
    covered = {chunk.metadata.section for chunk in chunks}
    return sum(1 for section in CRITICAL_SECTIONS if section in covered) / len(
        CRITICAL_SECTIONS
    )


def calculate_confidence(chunks: Sequence[DocumentChunk], document_count: int) -> float:
    if not chunks:
        return 0.0

    critical = sum(1 for chunk in chunks if chunk.metadata.importance == "critical")
    high = sum(1 for chunk in chunks if chunk.metadata.importance == "high")

    chunk_quality = (critical * 1.5 + high) / len(chunks)
    document_coverage = min(1.0, document_count / 5)
    content_density = 1.0 if len(chunks) > 3 else len(chunks) / 3

    score = (
        chunk_quality * 0.3
        + document_coverage * 0.2
        + content_density * 0.2
        + section_coverage(chunks) * 0.3
    )
    return min(1.0, max(0.0, round(score, 2)))


def compression_ratio(documents: Iterable[DocumentSource], summary: str) -> float:
    original_length = sum(len(doc.content) for doc in documents)
    if original_length == 0:
        return 0.0
    return round(1 - len(summary) / original_length, 2)
