"""Tests for profile system."""

import pytest
import yaml
from pydantic import ValidationError

from policy_rag.profiles.loader import ProfileError, ProfileRegistry, check_profile, load_profiles
from policy_rag.profiles.models import Profile
from policy_rag.profiles.precedence import apply_profile_defaults, apply_profile_limits


@pytest.fixture
def registry(settings):
    return load_profiles(settings)


def _write_profile(directory, name, **overrides):
    data = {
        "id": name,
        "title": "Test Profile",
        "description": "Profile used in tests",
        "defaults": {"summary_type": "technical"},
    }
    data.update(overrides)
    path = directory / f"{name}.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_packaged_profiles_load(registry):
    assert len(registry) == 3
    assert registry.ids() == ["compliance-review", "executive-brief", "underwriting-review"]
    assert "underwriting-review" in registry

    underwriting = registry.get("underwriting-review")
    assert underwriting.version == "1.0.0"
    assert underwriting.defaults.summary_type == "technical"
    assert underwriting.defaults.hierarchical is True
    assert underwriting.limits.parallel_batch_size == 5
    assert "limit" in underwriting.llm_hints.system_suffix


def test_summaries_describe_profile_defaults(registry):
    summaries = {summary.id: summary for summary in registry.summaries()}
    assert summaries["executive-brief"].title == "Executive Brief"
    assert summaries["executive-brief"].summary_type == "executive"
    assert summaries["executive-brief"].hierarchical is False
    assert summaries["compliance-review"].hierarchical is True


def test_invalid_semver_rejected():
    with pytest.raises(ValidationError):
        Profile(id="x", version="one", title="X", description="bad version")


def test_invalid_profile_field_names_file_and_location(tmp_path, settings):
    _write_profile(tmp_path, "broken", defaults={"summary_type": "poetry"})

    with pytest.raises(ProfileError) as excinfo:
        ProfileRegistry(settings).load_directory(tmp_path)

    assert excinfo.value.path.name == "broken.yaml"
    assert excinfo.value.problems[0].startswith("defaults.summary_type")
    assert isinstance(excinfo.value.__cause__, ValidationError)


def test_malformed_yaml_raises_profile_error(tmp_path, settings):
    (tmp_path / "garbled.yaml").write_text("id: [unclosed\n")

    with pytest.raises(ProfileError) as excinfo:
        ProfileRegistry(settings).load_directory(tmp_path)
    assert isinstance(excinfo.value.__cause__, yaml.YAMLError)


def test_limits_above_service_limits_are_rejected(tmp_path, settings):
    _write_profile(
        tmp_path,
        "greedy",
        limits={"parallel_batch_size": 20, "max_context_window": 8000},
    )

    with pytest.raises(ProfileError) as excinfo:
        ProfileRegistry(settings).load_directory(tmp_path)

    problems = excinfo.value.problems
    assert len(problems) == 2
    assert "limits.parallel_batch_size=20 exceeds the service limit of 5" in problems
    assert "limits.max_context_window=8000 exceeds the service limit of 6000" in problems


def test_packaged_profiles_fail_under_tighter_service_limits(settings):
    tight = settings.model_copy(update={"max_parallel_calls": 3})

    with pytest.raises(ProfileError) as excinfo:
        load_profiles(tight)
    assert "parallel_batch_size" in str(excinfo.value)


def test_unconfigured_target_length_is_rejected(settings):
    narrow = settings.model_copy(update={"target_tokens": {"brief": 500, "standard": 1000}})
    detailed = Profile(
        id="long",
        title="Long",
        description="d",
        defaults={"target_length": "detailed", "focus_areas": ["flood", " "]},
    )
    brief = Profile(
        id="short",
        title="Short",
        description="d",
        defaults={"target_length": "brief", "focus_areas": ["flood"]},
    )

    assert check_profile(detailed, narrow) == [
        "no token target for target_length 'detailed'",
        "focus_areas must not contain blank entries",
    ]
    assert check_profile(brief, narrow) == []


def test_id_must_match_file_name(tmp_path, settings):
    _write_profile(tmp_path, "renamed", id="original")

    with pytest.raises(ProfileError, match="does not match the file name"):
        ProfileRegistry(settings).load_directory(tmp_path)


def test_duplicate_ids_across_extensions_are_rejected(tmp_path, settings):
    _write_profile(tmp_path, "twin")
    (tmp_path / "twin.yml").write_text((tmp_path / "twin.yaml").read_text())

    with pytest.raises(ProfileError, match="duplicate profile id 'twin'"):
        ProfileRegistry(settings).load_directory(tmp_path)


def test_empty_files_are_skipped(tmp_path, settings):
    (tmp_path / "blank.yaml").write_text("")
    _write_profile(tmp_path, "solo")

    registry = ProfileRegistry(settings)
    assert registry.load_directory(tmp_path) == 1
    assert registry.ids() == ["solo"]


def test_missing_directory_loads_nothing(tmp_path, settings):
    registry = ProfileRegistry(settings)
    assert registry.load_directory(tmp_path / "absent") == 0
    assert registry.ids() == []
    assert len(registry) == 0


def test_request_values_override_profile_defaults(registry):
    profile = registry.get("underwriting-review")

    resolved = apply_profile_defaults(
        profile,
        summary_type="executive",
        target_length=None,
        focus_areas=["flood"],
        hierarchical=False,
    )

    assert resolved.summary_type == "executive"
    assert resolved.target_length == "detailed"
    assert resolved.focus_areas == ["flood"]
    assert resolved.hierarchical is False
    assert resolved.system_suffix == profile.llm_hints.system_suffix


def test_empty_focus_falls_back_to_profile(registry):
    profile = registry.get("compliance-review")
    resolved = apply_profile_defaults(profile, None, None, [], None)
    assert resolved.focus_areas == profile.defaults.focus_areas
    assert resolved.summary_type == "compliance"
    assert resolved.hierarchical is True


def test_without_profile_uses_built_in_defaults():
    resolved = apply_profile_defaults(None, None, None, None, None)
    assert resolved.summary_type == "comprehensive"
    assert resolved.target_length == "standard"
    assert resolved.focus_areas == []
    assert resolved.hierarchical is False
    assert resolved.system_suffix is None


def test_limits_precedence(registry, settings):
    profile = registry.get("compliance-review")

    resolved = apply_profile_limits(
        apply_profile_defaults(profile, None, None, None, None), profile, settings
    )
    assert resolved.parallel_batch_size == 4
    assert resolved.max_chunks_per_level == 10
    assert resolved.max_context_window == settings.max_context_window

    explicit = apply_profile_limits(
        apply_profile_defaults(profile, None, None, None, None),
        profile,
        settings,
        parallel_batch_size=2,
    )
    assert explicit.parallel_batch_size == 2

    bare = apply_profile_limits(apply_profile_defaults(None, None, None, None, None), None, settings)
    assert bare.parallel_batch_size == settings.max_parallel_calls
    assert bare.max_chunks_per_level == settings.max_chunks_per_level
