"""Insurance-aware semantic chunking."""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from policy_rag.config import Settings
from policy_rag.summarizer.cache import LRUCache
from policy_rag.summarizer.entities import extract_entities
from policy_rag.summarizer.models import ChunkMetadata, DocumentChunk, DocumentSource
from policy_rag.summarizer.patterns import (
    DOMAIN_BOUNDARY_PATTERNS,
    GENERAL_BOUNDARY_PATTERNS,
    SPLIT_AFTER_MATCH,
    BoundaryPattern,
    assess_importance,
    classify_section,
)
from policy_rag.summarizer.tokens import CHARS_PER_TOKEN, estimate_tokens

logger = logging.getLogger(__name__)

WORD_RE = re.compile(r"\S+")
TOKENS_PER_WORD = 1.3
CACHE_KEY_PREFIX_CHARS = 100


@dataclass(slots=True)
class _Span:
    """A half-open range of the source text.

    ``start``/``end`` are the offsets the chunk is responsible for; the
    emitted text begins at ``text_start``, which is earlier than ``start``
    when the span repeats the tail of the previous piece as overlap.
    """

    start: int
    end: int
    marker: Optional[str] = None
    text_start: Optional[int] = None

    def __post_init__(self) -> None:
        if self.text_start is None:
            self.text_start = self.start


def chunk_cache_key(doc: DocumentSource) -> str:
    prefix = re.sub(r"\s", "", doc.content[:CACHE_KEY_PREFIX_CHARS])
    digest = hashlib.sha1(prefix.encode("utf-8")).hexdigest()[:16]
    return f"{doc.id}-{len(doc.content)}-{digest}"


class SemanticChunker:
    """Split policy documents into bounded, classified chunks."""

    def __init__(
        self,
        max_chunk_size: int = 1200,
        min_chunk_size: int = 200,
        chunk_overlap: int = 100,
        cache: Optional[LRUCache[Tuple[DocumentChunk, ...]]] = None,
    ) -> None:
        if not 0 < min_chunk_size < max_chunk_size:
            raise ValueError("min_chunk_size must be positive and below max_chunk_size")
        self.max_chunk_size = max_chunk_size
        self.min_chunk_size = min_chunk_size
        self.chunk_overlap = chunk_overlap
        self.cache = cache

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: Optional[LRUCache[Tuple[DocumentChunk, ...]]] = None,
    ) -> "SemanticChunker":
        return cls(
            max_chunk_size=settings.max_chunk_size,
            min_chunk_size=settings.min_chunk_size,
            chunk_overlap=settings.chunk_overlap,
            cache=cache,
        )

    # ------------------------------------------------------------------ public

    def chunk(self, doc: DocumentSource) -> List[DocumentChunk]:
        if self.cache is None:
            return self._build_chunks(doc)

        key = chunk_cache_key(doc)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Chunk cache hit for document {doc.id}")
            return list(cached)

        chunks = self._build_chunks(doc)
        self.cache.set(key, tuple(chunks))
        return chunks

    def chunk_documents(self, documents: Iterable[DocumentSource]) -> List[DocumentChunk]:
        chunks: List[DocumentChunk] = []
        for doc in documents:
            chunks.extend(self.chunk(doc))
        return chunks

    # --------------------------------------------------------------- pipeline

    def _build_chunks(self, doc: DocumentSource) -> List[DocumentChunk]:
        content = doc.content
        if not content.strip():
            logger.debug(f"Document {doc.id} has no content")
            return []

        spans = self.split_domain_boundaries(content)
        spans = self.split_general_boundaries(content, spans)
        spans = self.optimize_sizes(content, spans)

        chunks: List[DocumentChunk] = []
        for span in spans:
            body = content[span.text_start : span.end].strip()
            if not body:
                continue
            match = classify_section(body, span.marker)
            chunks.append(
                DocumentChunk(
                    id=f"{doc.id}-chunk-{len(chunks)}",
                    content=body,
                    token_count=estimate_tokens(body),
                    metadata=ChunkMetadata(
                        source_title=doc.title,
                        domain_type=doc.domain_type,
                        section=match.section,
                        start_offset=span.start,
                        end_offset=span.end,
                        key_entities=tuple(extract_entities(body)),
                        importance=assess_importance(body, match),
                        content_type=match.content_type,
                    ),
                )
            )

        logger.debug(f"Document {doc.id} split into {len(chunks)} chunks")
        return chunks

    def split_domain_boundaries(self, content: str) -> List[_Span]:
        """Cut before every domain marker line; the highest priority marker names the span."""
        winners: Dict[int, BoundaryPattern] = {}
        for boundary in DOMAIN_BOUNDARY_PATTERNS:
            for match in boundary.pattern.finditer(content):
                current = winners.get(match.start())
                if current is None or boundary.priority > current.priority:
                    winners[match.start()] = boundary

        starts = sorted({0, *winners})
        ends = starts[1:] + [len(content)]
        return [
            _Span(start, end, winners[start].category if start in winners else None)
            for start, end in zip(starts, ends)
        ]

    def split_general_boundaries(self, content: str, spans: Sequence[_Span]) -> List[_Span]:
        """Apply generic structure patterns, in order, to spans that are still too large."""
        current = list(spans)
        for boundary in GENERAL_BOUNDARY_PATTERNS:
            refined: List[_Span] = []
            for span in current:
                if self._span_tokens(content, span) <= self.max_chunk_size:
                    refined.append(span)
                    continue
                refined.extend(self._cut(content, span, boundary))
            current = refined
        return current

    def optimize_sizes(self, content: str, spans: Sequence[_Span]) -> List[_Span]:
        """Split oversized spans with overlap and fold undersized ones into neighbours."""
        pieces: List[_Span] = []
        for span in spans:
            if self._span_tokens(content, span) > self.max_chunk_size:
                pieces.extend(self.split_by_size(content, span.start, span.end, span.marker))
            else:
                pieces.append(span)

        optimized: List[_Span] = []
        buffer: Optional[_Span] = None
        for piece in pieces:
            if buffer is None:
                buffer = piece
                continue

            buffer_tokens = self._span_tokens(content, buffer)
            piece_tokens = self._span_tokens(content, piece)
            merged = _Span(
                buffer.start, piece.end, buffer.marker or piece.marker, buffer.text_start
            )
            undersized = buffer_tokens < self.min_chunk_size or piece_tokens < self.min_chunk_size

            if undersized and self._span_tokens(content, merged) <= self.max_chunk_size:
                buffer = merged
            elif buffer_tokens < self.min_chunk_size:
                # Too small to stand alone and too big to merge whole: re-pack both.
                repacked = self.split_by_size(content, buffer.start, piece.end, merged.marker)
                optimized.extend(repacked[:-1])
                buffer = repacked[-1]
            else:
                optimized.append(buffer)
                buffer = piece

        if buffer is not None:
            if optimized and self._span_tokens(content, buffer) < self.min_chunk_size:
                last = optimized[-1]
                tail = _Span(last.start, buffer.end, last.marker, last.text_start)
                if self._span_tokens(content, tail) <= self.max_chunk_size:
                    optimized[-1] = tail
                    buffer = None
            if buffer is not None:
                optimized.append(buffer)
        return optimized

    def split_by_size(
        self, content: str, start: int, end: int, marker: Optional[str] = None
    ) -> List[_Span]:
        """
        Split ``content[start:end]`` into pieces of at most ``max_chunk_size`` tokens.

        Pieces are cut on whitespace; each piece after the first repeats the
        last ``chunk_overlap / 1.3`` words of its predecessor, trimmed so the
        repeated text stays within half a piece and the next unseen word still
        fits. A single word longer than the limit becomes a piece of its own.
        """
        words = [(m.start(), m.end()) for m in WORD_RE.finditer(content, start, end)]
        if not words:
            return [_Span(start, end, marker)]

        max_chars = self.max_chunk_size * CHARS_PER_TOKEN
        overlap_chars = max_chars // 2
        overlap_words = int(self.chunk_overlap / TOKENS_PER_WORD)
        pieces: List[_Span] = []
        first = 0
        offset = start
        while True:
            text_start = words[first][0]
            last = first
            while last + 1 < len(words) and words[last + 1][1] - text_start <= max_chars:
                last += 1

            if last + 1 >= len(words):
                pieces.append(_Span(offset, end, None, min(text_start, offset)))
                break

            piece_end = words[last][1]
            pieces.append(_Span(offset, piece_end, None, min(text_start, offset)))
            offset = piece_end

            upcoming = words[last + 1][1]
            first = max(first + 1, last + 1 - overlap_words)
            while first <= last and (
                piece_end - words[first][0] > overlap_chars
                or upcoming - words[first][0] > max_chars
            ):
                first += 1

        pieces[0].marker = marker
        return pieces

    # ---------------------------------------------------------------- helpers

    def _span_tokens(self, content: str, span: _Span) -> int:
        return estimate_tokens(content[span.text_start : span.end].strip())

    def _cut(self, content: str, span: _Span, boundary: BoundaryPattern) -> List[_Span]:
        cuts = []
        for match in boundary.pattern.finditer(content, span.start, span.end):
            position = match.end() if boundary.category in SPLIT_AFTER_MATCH else match.start()
            if span.start < position < span.end:
                cuts.append(position)
        if not cuts:
            return [span]

        edges = [span.start, *sorted(set(cuts)), span.end]
        parts = [_Span(a, b) for a, b in zip(edges, edges[1:])]
        parts[0].marker = span.marker
        parts[0].text_start = span.text_start
        return parts
