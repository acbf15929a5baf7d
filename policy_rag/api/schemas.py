# policy_rag/api/schemas.py
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from policy_rag.summarizer.models import (
    DocumentSource,
    ExtractedEntity,
    KeyPoint,
    ProcessingMetrics,
    SourceCitation,
    SummaryResult,
)

DomainLiteral = Literal["product", "coverage", "form", "rule", "pricing"]
SummaryTypeLiteral = Literal[
    "executive", "technical", "comparative", "compliance", "actionable", "comprehensive"
]
TargetLengthLiteral = Literal["brief", "standard", "detailed"]


class DocumentModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    domain_type: DomainLiteral
    title: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> DocumentSource:
        return DocumentSource(
            id=self.id,
            domain_type=self.domain_type,
            title=self.title,
            content=self.content,
            metadata=dict(self.metadata),
        )


class SummaryRequestModel(BaseModel):
    # fields left as None fall back to the profile, then to built-in defaults
    model_config = ConfigDict(
        protected_namespaces=(), populate_by_name=True, extra="forbid"
    )

    documents: List[DocumentModel] = Field(..., min_length=1)
    summary_type: Optional[SummaryTypeLiteral] = None
    target_length: Optional[TargetLengthLiteral] = None
    focus_areas: Optional[List[str]] = None
    hierarchical: Optional[bool] = None
    parallel_batch_size: Optional[int] = Field(default=None, ge=1, le=50)
    cost_optimized: bool = True
    include_source_citations: bool = True
    profile: Optional[str] = Field(default=None, description="Summary profile id.")
    stream: bool = Field(default=False, description="Emit Server-Sent Events when true.")

    @field_validator("focus_areas", mode="before")
    @classmethod
    def normalize_focus(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(item) for item in value]
        return [str(value)]


class KeyPointModel(BaseModel):
    text: str
    importance: str
    category: str

    @classmethod
    def from_domain(cls, point: KeyPoint) -> "KeyPointModel":
        return cls(text=point.text, importance=point.importance, category=point.category)


class EntityModel(BaseModel):
    name: str
    type: str
    context: str
    frequency: int

    @classmethod
    def from_domain(cls, entity: ExtractedEntity) -> "EntityModel":
        return cls(
            name=entity.name,
            type=entity.type,
            context=entity.context,
            frequency=entity.frequency,
        )


class CitationModel(BaseModel):
    chunk_id: str
    document_title: str
    excerpt: str
    relevance: float
    section: Optional[str] = None

    @classmethod
    def from_domain(cls, citation: SourceCitation) -> "CitationModel":
        return cls(
            chunk_id=citation.chunk_id,
            document_title=citation.document_title,
            excerpt=citation.excerpt,
            relevance=citation.relevance,
            section=citation.section,
        )


class MetricsModel(BaseModel):
    total_documents: int
    total_chunks: int
    processing_time_ms: int
    tokens_used: int
    compression_ratio: float
    model_calls: int
    estimated_cost: float
    fallback_summaries: int = 0

    @classmethod
    def from_domain(cls, metrics: ProcessingMetrics) -> "MetricsModel":
        return cls(
            total_documents=metrics.total_documents,
            total_chunks=metrics.total_chunks,
            processing_time_ms=metrics.processing_time_ms,
            tokens_used=metrics.tokens_used,
            compression_ratio=metrics.compression_ratio,
            model_calls=metrics.model_calls,
            estimated_cost=metrics.estimated_cost,
            fallback_summaries=metrics.fallback_summaries,
        )


class SummaryResponseModel(BaseModel):
    summary: str
    key_points: List[KeyPointModel]
    entities: List[EntityModel]
    source_citations: List[CitationModel]
    confidence: float
    methodology: str
    processing_metrics: MetricsModel
    profile: Optional[str] = None

    @classmethod
    def from_domain(
        cls, result: SummaryResult, profile: Optional[str] = None
    ) -> "SummaryResponseModel":
        return cls(
            summary=result.summary,
            key_points=[KeyPointModel.from_domain(p) for p in result.key_points],
            entities=[EntityModel.from_domain(e) for e in result.entities],
            source_citations=[
                CitationModel.from_domain(c) for c in result.source_citations
            ],
            confidence=result.confidence,
            methodology=result.methodology,
            processing_metrics=MetricsModel.from_domain(result.processing_metrics),
            profile=profile,
        )


class CacheStatsModel(BaseModel):
    size: int
    max_size: int
    hits: int
    misses: int
    evictions: int
    expirations: int


class CacheStatsResponseModel(BaseModel):
    chunk_cache: CacheStatsModel
    summary_cache: CacheStatsModel
    total_tokens_used: int
    total_model_calls: int
