"""Citation-backed summarization of insurance policy documents."""

__version__ = "1.0.0"
