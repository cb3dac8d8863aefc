"""User profile storage."""

import math
import threading
from dataclasses import dataclass, field, fields, replace
from typing import Protocol

from grocery_health.domain.profile import UserProfile
from grocery_health.errors import ValidationError


class ProfileRepository(Protocol):
    """Persistence interface for the user profile."""

    def get_profile(self) -> UserProfile | None:
        """Return the stored profile, if any."""

    def save_profile(self, profile: UserProfile) -> None:
        """Store the profile."""


_PROFILE_FIELDS = {f.name for f in fields(UserProfile)}
_POSITIVE_FIELDS = (
    "daily_calorie_goal",
    "weekly_budget",
    "weight",
    "height",
    "target_weight",
)


@dataclass
class ProfileService:
    """Reads and updates the profile."""

    repository: ProfileRepository
    default_profile: UserProfile = field(default_factory=UserProfile)
    lock: threading.RLock = field(default_factory=threading.RLock)

    def get(self) -> UserProfile:
        """Stored profile, or the default one when none was saved."""
        return self.repository.get_profile() or self.default_profile

    def update(self, **changes: object) -> UserProfile:
        """Apply field changes and store the result."""
        unknown = set(changes) - _PROFILE_FIELDS
        if unknown:
            names = ", ".join(sorted(unknown))
            raise ValidationError(f"Unknown profile fields: {names}")
        for key in _POSITIVE_FIELDS:
            value = changes.get(key)
            if value is not None and (
                isinstance(value, bool)
                or not isinstance(value, int | float)
                or not math.isfinite(value)
                or value <= 0
            ):
                raise ValidationError(f"{key} must be a finite, positive number")
        with self.lock:
            profile = replace(self.get(), **changes)
            self.repository.save_profile(profile)
        return profile

    def complete_onboarding(self, **changes: object) -> UserProfile:
        """Store onboarding answers and mark onboarding done."""
        return self.update(**{**changes, "onboarding_completed": True})
