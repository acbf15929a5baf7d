"""Domain models shared across the summarization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple


DomainType = Literal["product", "coverage", "form", "rule", "pricing"]
Importance = Literal["critical", "high", "medium", "low"]
TargetLength = Literal["brief", "standard", "detailed"]
SummaryType = Literal[
    "executive",
    "technical",
    "comparative",
    "compliance",
    "actionable",
    "comprehensive",
]
Section = Literal[
    "declarations",
    "insuring_agreement",
    "definitions",
    "exclusions",
    "conditions",
    "limits",
    "deductibles",
    "endorsements",
    "schedule",
    "general",
]
ContentType = Literal[
    "coverage_grant",
    "coverage_limit",
    "coverage_deductible",
    "exclusion",
    "condition",
    "definition",
    "endorsement",
    "rate_info",
    "general",
]
EntityType = Literal[
    "coverage", "limit", "deductible", "state", "form", "rule", "date", "amount"
]
Methodology = Literal["hierarchical-map-reduce", "direct-synthesis"]

IMPORTANCE_ORDER: Dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}

CRITICAL_SECTIONS: Tuple[str, ...] = (
    "insuring_agreement",
    "exclusions",
    "conditions",
    "limits",
    "deductibles",
)


@dataclass(frozen=True, slots=True)
class DocumentSource:
    id: str
    domain_type: DomainType
    title: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChunkMetadata:
    source_title: str
    domain_type: DomainType
    section: Section
    start_offset: int
    end_offset: int
    key_entities: Tuple[str, ...] = ()
    importance: Importance = "low"
    content_type: ContentType = "general"


@dataclass(frozen=True, slots=True)
class DocumentChunk:
    id: str
    content: str
    token_count: int
    metadata: ChunkMetadata


@dataclass(slots=True)
class SummaryRequest:
    documents: List[DocumentSource]
    summary_type: SummaryType = "comprehensive"
    target_length: TargetLength = "standard"
    focus_areas: List[str] = field(default_factory=list)
    hierarchical: bool = False
    parallel_batch_size: Optional[int] = None
    cost_optimized: bool = True
    include_source_citations: bool = True
    system_suffix: Optional[str] = None
    max_chunks_per_level: Optional[int] = None
    max_context_window: Optional[int] = None


@dataclass(slots=True)
class KeyPoint:
    text: str
    importance: Importance
    category: str


@dataclass(slots=True)
class ExtractedEntity:
    name: str
    type: EntityType
    context: str
    frequency: int = 1


@dataclass(slots=True)
class SourceCitation:
    chunk_id: str
    document_title: str
    excerpt: str
    relevance: float
    section: Optional[str] = None


@dataclass(slots=True)
class ProcessingMetrics:
    total_documents: int
    total_chunks: int
    processing_time_ms: int
    tokens_used: int
    compression_ratio: float
    model_calls: int
    estimated_cost: float
    fallback_summaries: int = 0


@dataclass(slots=True)
class SummaryResult:
    summary: str
    key_points: List[KeyPoint]
    entities: List[ExtractedEntity]
    source_citations: List[SourceCitation]
    confidence: float
    methodology: Methodology
    processing_metrics: ProcessingMetrics
