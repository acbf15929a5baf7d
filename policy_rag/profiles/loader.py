"""Loading of YAML summary profiles into a per-application registry."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import yaml
from pydantic import ValidationError

from policy_rag.config import Settings
from policy_rag.profiles.models import Profile, ProfileSummary
from policy_rag.summarizer.prompts import TYPE_INSTRUCTIONS

logger = logging.getLogger(__name__)

PROFILE_SUFFIXES = (".yaml", ".yml")


class ProfileError(ValueError):
    """A profile file cannot be used with this service."""

    def __init__(self, path: Path, problems: List[str]) -> None:
        super().__init__(f"{path.name}: {'; '.join(problems)}")
        self.path = path
        self.problems = problems


def check_profile(profile: Profile, settings: Settings) -> List[str]:
    """
    Return the reasons *profile* cannot run under *settings*.

    A profile may tighten the service's orchestration limits but never
    widen them, and its defaults must name a prompt template and a
    configured target length.
    """
    problems: List[str] = []
    defaults = profile.defaults
    if defaults.summary_type and defaults.summary_type not in TYPE_INSTRUCTIONS:
        problems.append(f"no prompt template for summary_type '{defaults.summary_type}'")
    if defaults.target_length and defaults.target_length not in settings.target_tokens:
        problems.append(f"no token target for target_length '{defaults.target_length}'")
    if any(not area.strip() for area in defaults.focus_areas):
        problems.append("focus_areas must not contain blank entries")

    limits = profile.limits
    if limits is not None:
        ceilings = (
            ("parallel_batch_size", limits.parallel_batch_size, settings.max_parallel_calls),
            ("max_chunks_per_level", limits.max_chunks_per_level, settings.max_chunks_per_level),
            ("max_context_window", limits.max_context_window, settings.max_context_window),
        )
        for name, value, ceiling in ceilings:
            if value is not None and value > ceiling:
                problems.append(f"limits.{name}={value} exceeds the service limit of {ceiling}")
    return problems


class ProfileRegistry:
    """Profiles keyed by id, each checked against the service settings."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._profiles: Dict[str, Profile] = {}

    def load_file(self, path: Path) -> Optional[Profile]:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ProfileError(path, [f"invalid YAML: {exc}"]) from exc
        if not data:
            logger.warning(f"Skipping empty profile file: {path}")
            return None

        try:
            profile = Profile.model_validate(data)
        except ValidationError as exc:
            problems = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]
            raise ProfileError(path, problems) from exc

        problems = check_profile(profile, self.settings)
        if profile.id != path.stem:
            problems.append(f"id '{profile.id}' does not match the file name")
        if profile.id in self._profiles:
            problems.append(f"duplicate profile id '{profile.id}'")
        if problems:
            raise ProfileError(path, problems)

        self._profiles[profile.id] = profile
        return profile

    def load_directory(self, directory: str | Path) -> int:
        """Load every profile file in *directory*; a missing directory loads nothing."""
        root = Path(directory)
        if not root.is_dir():
            logger.warning(f"Profiles directory not found: {root}")
            return 0

        loaded = []
        for path in sorted(p for p in root.iterdir() if p.suffix in PROFILE_SUFFIXES):
            profile = self.load_file(path)
            if profile is not None:
                loaded.append(f"{profile.id}@{profile.version}")
        logger.info(f"Profiles loaded from {root}: {', '.join(loaded) or 'none'}")
        return len(loaded)

    def get(self, profile_id: str) -> Optional[Profile]:
        return self._profiles.get(profile_id)

    def __contains__(self, profile_id: str) -> bool:
        return profile_id in self._profiles

    def __iter__(self) -> Iterator[Profile]:
        return iter(sorted(self._profiles.values(), key=lambda profile: profile.id))

    def __len__(self) -> int:
        return len(self._profiles)

    def ids(self) -> List[str]:
        return [profile.id for profile in self]

    def summaries(self) -> List[ProfileSummary]:
        return [ProfileSummary.from_profile(profile) for profile in self]


def load_profiles(settings: Settings) -> ProfileRegistry:
    """Build the registry for an application from ``settings.profiles_dir``."""
    registry = ProfileRegistry(settings)
    registry.load_directory(settings.profiles_dir)
    return registry
