"""Lexical attribution of a synthesized summary back to source chunks."""

from __future__ import annotations

from typing import Iterable, List

from policy_rag.summarizer.models import DocumentChunk, SourceCitation

MIN_RELEVANCE = 0.3
MAX_CITATIONS = 5
EXCERPT_CHARS = 150
MATCHES_FOR_FULL_RELEVANCE = 20
MIN_WORD_LENGTH = 5


def chunk_relevance(chunk: DocumentChunk, summary: str) -> float:
    """Share of 20 long summary words (repeats included) that also occur in the chunk."""
    chunk_words = set(chunk.content.lower().split())
    matches = sum(
        1
        for word in summary.lower().split()
        if len(word) >= MIN_WORD_LENGTH and word in chunk_words
    )
    return min(1.0, matches / MATCHES_FOR_FULL_RELEVANCE)


def generate_citations(chunks: Iterable[DocumentChunk], summary: str) -> List[SourceCitation]:
    citations = []
    for chunk in chunks:
        relevance = chunk_relevance(chunk, summary)
        if relevance <= MIN_RELEVANCE:
            continue
        citations.append(
            SourceCitation(
                chunk_id=chunk.id,
                document_title=chunk.metadata.source_title,
                section=chunk.metadata.section,
                excerpt=chunk.content[:EXCERPT_CHARS] + "...",
                relevance=relevance,
            )
        )
    citations.sort(key=lambda citation: citation.relevance, reverse=True)
    return citations[:MAX_CITATIONS]
