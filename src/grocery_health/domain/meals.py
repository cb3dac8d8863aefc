"""Meal plan domain models."""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from grocery_health.domain.nutrition import NutritionFacts


class MealType(StrEnum):
    """Meal slot within a day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class MealIngredient:
    """Ingredient usage within a meal.

    ``grocery_item_id`` is a lookup-only reference; ``None`` means the
    ingredient could not be matched to an inventory row and consuming the
    meal will not deduct anything for it.
    """

    grocery_item_id: str | None
    name: str
    servings: float
    nutrition: NutritionFacts


@dataclass(frozen=True)
class Meal:
    """A planned meal."""

    id: str
    name: str
    type: MealType
    ingredients: tuple[MealIngredient, ...]
    instructions: tuple[str, ...]
    total_nutrition: NutritionFacts
    date: date
    is_consumed: bool = False


@dataclass(frozen=True)
class DailyMealPlan:
    """All meals planned for one day."""

    date: date
    meals: tuple[Meal, ...]
    total_nutrition: NutritionFacts
    calorie_goal: float
    remaining_calories: float
