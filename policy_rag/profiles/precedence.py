"""Profile precedence and merging logic."""

from dataclasses import dataclass, field
from typing import List, Optional

from policy_rag.config import Settings
from policy_rag.profiles.models import Profile

DEFAULT_SUMMARY_TYPE = "comprehensive"
DEFAULT_TARGET_LENGTH = "standard"


@dataclass
class ResolvedOptions:
    summary_type: str = DEFAULT_SUMMARY_TYPE
    target_length: str = DEFAULT_TARGET_LENGTH
    focus_areas: List[str] = field(default_factory=list)
    hierarchical: bool = False
    parallel_batch_size: Optional[int] = None
    max_chunks_per_level: Optional[int] = None
    max_context_window: Optional[int] = None
    system_suffix: Optional[str] = None


def apply_profile_defaults(
    profile: Optional[Profile],
    summary_type: Optional[str],
    target_length: Optional[str],
    focus_areas: Optional[List[str]],
    hierarchical: Optional[bool],
) -> ResolvedOptions:
    """
    Apply profile defaults with request precedence.

    Precedence: request > profile defaults > built-in defaults

    Fields the request leaves unset (``None``) fall through to the profile.
    An empty ``focus_areas`` list counts as unset.
    """
    defaults = profile.defaults if profile else None

    def pick(explicit, profile_value, fallback):
        if explicit is not None:
            return explicit
        if profile_value is not None:
            return profile_value
        return fallback

    resolved = ResolvedOptions(
        summary_type=pick(
            summary_type, defaults.summary_type if defaults else None, DEFAULT_SUMMARY_TYPE
        ),
        target_length=pick(
            target_length, defaults.target_length if defaults else None, DEFAULT_TARGET_LENGTH
        ),
        focus_areas=list(focus_areas or (defaults.focus_areas if defaults else [])),
        hierarchical=pick(hierarchical, defaults.hierarchical if defaults else None, False),
    )
    if profile and profile.llm_hints:
        resolved.system_suffix = profile.llm_hints.system_suffix
    return resolved


def apply_profile_limits(
    resolved: ResolvedOptions,
    profile: Optional[Profile],
    settings: Settings,
    parallel_batch_size: Optional[int] = None,
) -> ResolvedOptions:
    """
    Fill orchestration limits: request > profile limits > settings.

    Args:
        resolved: Options produced by :func:`apply_profile_defaults`
        profile: Profile with optional limits
        settings: Global settings
        parallel_batch_size: Explicit request value, if any
    """
    limits = profile.limits if profile else None

    resolved.parallel_batch_size = (
        parallel_batch_size
        or (limits.parallel_batch_size if limits else None)
        or settings.max_parallel_calls
    )
    resolved.max_chunks_per_level = (
        limits.max_chunks_per_level if limits else None
    ) or settings.max_chunks_per_level
    resolved.max_context_window = (
        limits.max_context_window if limits else None
    ) or settings.max_context_window
    return resolved
