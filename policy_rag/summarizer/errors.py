"""Exceptions surfaced by the summarization pipeline."""


class SummarizationError(Exception):
    """Base class for failures that abort a summary request."""


class GenerationServiceError(SummarizationError):
    """A call to the text generation service did not produce content."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class GenerationUnavailableError(SummarizationError):
    """No text generation service is configured."""


class SynthesisError(SummarizationError):
    """The final synthesis call failed; ``__cause__`` holds the underlying error."""


class NoContentError(SummarizationError):
    """The request's documents produced no chunks to summarize."""
