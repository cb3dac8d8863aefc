"""User profile model."""

from dataclasses import dataclass, field
from enum import StrEnum


class DietaryPreference(StrEnum):
    """Supported diets."""

    NONE = "none"
    VEGETARIAN = "vegetarian"
    VEGAN = "vegan"
    KETO = "keto"
    PALEO = "paleo"
    GLUTEN_FREE = "gluten-free"
    DAIRY_FREE = "dairy-free"
    LOW_CARB = "low-carb"
    LOW_FAT = "low-fat"


class HealthCondition(StrEnum):
    """Conditions that tighten the daily reference limits."""

    DIABETES = "diabetes"
    HYPERTENSION = "hypertension"
    HEART_DISEASE = "heart-disease"
    KIDNEY_DISEASE = "kidney-disease"


class Gender(StrEnum):
    """Gender used to pick reference values."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class WeightGoal(StrEnum):
    """Direction the user wants their weight to move."""

    LOSE = "lose"
    MAINTAIN = "maintain"
    GAIN = "gain"


@dataclass(frozen=True)
class UserProfile:
    """Preferences and body metrics of the shopper.

    Weight is in pounds and height in inches.
    """

    name: str = ""
    dietary_preferences: tuple[DietaryPreference, ...] = ()
    health_conditions: tuple[HealthCondition, ...] = ()
    allergens: tuple[str, ...] = ()
    daily_calorie_goal: float = 2000
    weekly_budget: float = 100
    weight: float | None = None
    target_weight: float | None = None
    height: float | None = None
    gender: Gender | None = None
    weight_goal: WeightGoal | None = None
    favorite_foods: tuple[str, ...] = field(default_factory=tuple)
    onboarding_completed: bool = False
