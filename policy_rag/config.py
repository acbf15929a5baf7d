from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROFILES_DIR = Path(__file__).resolve().parent / "profiles" / "definitions"


def _default_model_costs() -> Dict[str, Dict[str, float]]:
    return {
        "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
        "gpt-4o": {"input": 0.0025, "output": 0.01},
        "claude-3-haiku-20240307": {"input": 0.00025, "output": 0.00125},
    }


class Settings(BaseSettings):
    """
    Centralized application settings leveraging environment overrides.
    """

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, populate_by_name=True, extra="ignore"
    )

    app_name: str = "Policy RAG Summarizer"
    environment: str = Field("local", validation_alias="ENVIRONMENT")
    log_level: str = "INFO"
    allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    max_payload_bytes: int = Field(20 * 1024 * 1024, ge=1024)  # 20 MB soft limit
    max_documents: int = Field(50, ge=1)
    streaming_chunk_delay_ms: int = Field(100, ge=0)
    profiles_dir: Path = DEFAULT_PROFILES_DIR

    # Chunking (token estimates)
    max_chunk_size: int = Field(1200, ge=1)
    min_chunk_size: int = Field(200, ge=1)
    chunk_overlap: int = Field(100, ge=0)

    # Orchestration
    max_context_window: int = Field(6000, ge=1)
    max_chunks_per_level: int = Field(12, ge=1)
    max_parallel_calls: int = Field(5, ge=1)
    batch_delay_ms: int = Field(100, ge=0)
    map_model: str = "gpt-4o-mini"
    reduce_model: str = "gpt-4o-mini"
    map_token_budget: int = Field(400, ge=1)
    reduce_token_budget: int = Field(1500, ge=1)
    map_temperature: float = Field(0.2, ge=0.0, le=2.0)
    reduce_temperature: float = Field(0.3, ge=0.0, le=2.0)
    target_tokens: Dict[str, int] = Field(
        default_factory=lambda: {"brief": 500, "standard": 1000, "detailed": 2000}
    )

    # Caches
    chunk_cache_size: int = Field(100, ge=1)
    summary_cache_size: int = Field(50, ge=1)
    cache_ttl_seconds: float = Field(600.0, gt=0)

    # Cost estimation (USD per 1K tokens)
    model_costs: Dict[str, Dict[str, float]] = Field(
        default_factory=_default_model_costs
    )
    default_cost_model: str = "gpt-4o-mini"

    # Generation service
    llm_provider: str = Field(
        "none", description="Generation provider: none, openai, anthropic, ollama"
    )
    llm_model: Optional[str] = Field(None, description="Overrides map/reduce models")
    openai_api_key: Optional[str] = Field(None, validation_alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[str] = Field(None, validation_alias="ANTHROPIC_API_KEY")
    ollama_base_url: str = "http://localhost:11434"
    generation_timeout_seconds: float = Field(30.0, gt=0)
    generation_max_retries: int = Field(2, ge=0)
    generation_retry_base_delay_ms: int = Field(200, ge=0)
    generation_retry_max_delay_ms: int = Field(5000, ge=0)

    @model_validator(mode="after")
    def check_chunk_bounds(self) -> "Settings":
        if self.min_chunk_size >= self.max_chunk_size:
            raise ValueError("min_chunk_size must be smaller than max_chunk_size")
        if self.chunk_overlap >= self.max_chunk_size:
            raise ValueError("chunk_overlap must be smaller than max_chunk_size")
        return self

    def rate_for(self, model: str) -> Dict[str, float]:
        """Per-1K-token rates for *model*, falling back to the default model."""
        if model in self.model_costs:
            return self.model_costs[model]
        return self.model_costs.get(
            self.default_cost_model, {"input": 0.0, "output": 0.0}
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
