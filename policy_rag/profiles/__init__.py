"""Summary profile system."""

from policy_rag.profiles.loader import ProfileError, ProfileRegistry, load_profiles
from policy_rag.profiles.models import Profile, ProfileSummary

__all__ = ["Profile", "ProfileError", "ProfileSummary", "ProfileRegistry", "load_profiles"]
