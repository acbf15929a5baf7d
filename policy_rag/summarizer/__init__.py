"""Chunking, synthesis and scoring pipeline."""

from policy_rag.summarizer.errors import (
    GenerationServiceError,
    GenerationUnavailableError,
    NoContentError,
    SummarizationError,
    SynthesisError,
)
from policy_rag.summarizer.models import DocumentSource, SummaryRequest, SummaryResult
from policy_rag.summarizer.service import RagSummarizationService

__all__ = [
    "DocumentSource",
    "GenerationServiceError",
    "GenerationUnavailableError",
    "NoContentError",
    "RagSummarizationService",
    "SummarizationError",
    "SummaryRequest",
    "SummaryResult",
    "SynthesisError",
]
