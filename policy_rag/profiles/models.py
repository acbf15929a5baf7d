"""Profile data models for summary requests."""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
import re


SummaryTypeLiteral = Literal[
    "executive", "technical", "comparative", "compliance", "actionable", "comprehensive"
]
TargetLengthLiteral = Literal["brief", "standard", "detailed"]


class ProfileDefaults(BaseModel):
    """Default request settings for a profile."""

    summary_type: Optional[SummaryTypeLiteral] = None
    target_length: Optional[TargetLengthLiteral] = None
    focus_areas: List[str] = Field(default_factory=list, description="Default focus areas")
    hierarchical: Optional[bool] = None


class ProfileLLMHints(BaseModel):
    """LLM hints for profile-specific prompt customization."""

    system_suffix: Optional[str] = Field(
        default=None, description="Additional text to append to the synthesis prompt"
    )


class ProfileLimits(BaseModel):
    """Per-request overrides of orchestration limits."""

    max_chunks_per_level: Optional[int] = Field(default=None, ge=1, le=100)
    parallel_batch_size: Optional[int] = Field(default=None, ge=1, le=50)
    max_context_window: Optional[int] = Field(default=None, ge=256)


class Profile(BaseModel):
    """Complete profile definition."""

    id: str = Field(..., description="Unique profile identifier")
    version: str = Field(default="1.0.0", description="Semantic version")
    title: str = Field(..., description="Human-readable title")
    description: str = Field(..., description="Profile description")
    defaults: ProfileDefaults = Field(
        default_factory=ProfileDefaults, description="Default request settings"
    )
    llm_hints: Optional[ProfileLLMHints] = Field(
        default=None, description="LLM-specific hints"
    )
    limits: Optional[ProfileLimits] = Field(
        default=None, description="Processing limits"
    )

    @field_validator("version")
    @classmethod
    def validate_semver(cls, v: str) -> str:
        """Validate semantic versioning format."""
        semver_pattern = r"^\d+\.\d+\.\d+(?:-[a-zA-Z0-9.-]+)?(?:\+[a-zA-Z0-9.-]+)?$"
        if not re.match(semver_pattern, v):
            raise ValueError(f"Invalid semantic version: {v}")
        return v


class ProfileSummary(BaseModel):
    """Summary information about a profile for discovery."""

    id: str
    title: str
    version: str
    description: str
    summary_type: Optional[SummaryTypeLiteral] = None
    hierarchical: Optional[bool] = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileSummary":
        return cls(
            id=profile.id,
            title=profile.title,
            version=profile.version,
            description=profile.description,
            summary_type=profile.defaults.summary_type,
            hierarchical=profile.defaults.hierarchical,
        )
