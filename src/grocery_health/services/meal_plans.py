"""Meal plan generation and lookup."""

import json
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from grocery_health.domain.generated import (
    GeneratedDayPlan,
    GeneratedMeal,
    GeneratedNutrition,
)
from grocery_health.domain.inventory import GroceryItem
from grocery_health.domain.meals import DailyMealPlan, Meal, MealIngredient, MealType
from grocery_health.domain.nutrition import (
    ZERO_NUTRITION,
    NutritionFacts,
    sum_nutrition,
)
from grocery_health.domain.profile import UserProfile
from grocery_health.errors import DependencyDegradedError, EmptyInventoryError
from grocery_health.services.inventory import InventoryLedger, match_item
from grocery_health.services.text_generation import TextGenerationService

_logger = logging.getLogger(__name__)

EMPTY_INVENTORY_MESSAGE = (
    "No groceries in inventory. Please add items to your budget first."
)


class MealPlanRepository(Protocol):
    """Persistence interface for daily meal plans."""

    def list_plans(self) -> list[DailyMealPlan]:
        """Return all stored plans."""

    def save_plans(self, plans: list[DailyMealPlan]) -> None:
        """Replace the stored plans."""


def build_daily_plan(
    plan_date: date, meals: list[Meal], calorie_goal: float
) -> DailyMealPlan:
    """Aggregate meals into a day; remaining calories may go negative."""
    total = sum_nutrition(meal.total_nutrition for meal in meals)
    return DailyMealPlan(
        date=plan_date,
        meals=tuple(meals),
        total_nutrition=total,
        calorie_goal=calorie_goal,
        remaining_calories=calorie_goal - total.calories,
    )


def simple_meals(plan_date: date, calorie_goal: float) -> list[Meal]:
    """Placeholder breakfast, lunch and dinner for days the service missed."""
    templates = (
        (
            "Simple Breakfast",
            MealType.BREAKFAST,
            0.25,
            NutritionFacts(0, 15, 40, 10, 5, 5, 200, 3),
        ),
        (
            "Simple Lunch",
            MealType.LUNCH,
            0.35,
            NutritionFacts(0, 25, 50, 15, 8, 8, 300, 5),
        ),
        (
            "Simple Dinner",
            MealType.DINNER,
            0.40,
            NutritionFacts(0, 30, 60, 18, 10, 10, 400, 6),
        ),
    )
    meals = []
    for name, meal_type, share, macros in templates:
        nutrition = NutritionFacts(
            calories=math.floor(calorie_goal * share),
            protein=macros.protein,
            carbs=macros.carbs,
            fat=macros.fat,
            fiber=macros.fiber,
            sugar=macros.sugar,
            sodium=macros.sodium,
            saturated_fat=macros.saturated_fat,
        )
        meals.append(
            Meal(
                id=uuid4().hex,
                name=name,
                type=meal_type,
                ingredients=(),
                instructions=(
                    f"Prepare a simple {meal_type.value} with available items",
                ),
                total_nutrition=nutrition,
                date=plan_date,
            )
        )
    return meals


@dataclass
class MealPlanService:
    """Generates meal plans from the active inventory."""

    ledger: InventoryLedger
    repository: MealPlanRepository
    text_service: TextGenerationService

    def list_plans(self) -> list[DailyMealPlan]:
        """Return stored plans ordered by date."""
        plans = self.ledger.run("read meal plans", self.repository.list_plans)
        return sorted(plans, key=lambda plan: plan.date)

    def get_meal(self, meal_id: str) -> Meal | None:
        """Return a meal by id."""
        for plan in self.list_plans():
            for meal in plan.meals:
                if meal.id == meal_id:
                    return meal
        return None

    async def generate(
        self, profile: UserProfile, days: int = 7, today: date | None = None
    ) -> list[DailyMealPlan]:
        """Generate and store plans for ``days`` days starting ``today``.

        Plans for dates outside the horizon are kept. Days the text service
        leaves out are filled with simple meals.
        """
        inventory = self.ledger.list_active()
        if not inventory:
            raise EmptyInventoryError(EMPTY_INVENTORY_MESSAGE)
        start = today or date.today()
        dates = [start + timedelta(days=offset) for offset in range(days)]
        generated = await self._request_plans(profile, inventory, dates)

        plans: list[DailyMealPlan] = []
        for plan_date in dates:
            day = generated.get(plan_date)
            if day is None or not day.meals:
                _logger.info("Filling %s with simple meals", plan_date)
                meals = simple_meals(plan_date, profile.daily_calorie_goal)
            else:
                meals = [
                    self._to_meal(meal, plan_date, inventory) for meal in day.meals
                ]
            plans.append(build_daily_plan(plan_date, meals, profile.daily_calorie_goal))

        def store() -> None:
            kept = [
                plan for plan in self.repository.list_plans() if plan.date not in dates
            ]
            self.repository.save_plans(
                sorted(kept + plans, key=lambda plan: plan.date)
            )

        self.ledger.run("store meal plans", store)
        _logger.info("Generated %s daily meal plans", len(plans))
        return plans

    async def _request_plans(
        self, profile: UserProfile, inventory: list[GroceryItem], dates: list[date]
    ) -> dict[date, GeneratedDayPlan]:
        prompt = _meal_plan_prompt(profile, inventory, dates)
        try:
            parsed = await self.text_service.generate_json_array(
                prompt, action="meal plan"
            )
        except DependencyDegradedError:
            _logger.warning("Meal plan service degraded; using simple meals")
            return {}
        by_date: dict[date, GeneratedDayPlan] = {}
        for raw in parsed:
            try:
                day = GeneratedDayPlan.model_validate(raw)
                plan_date = date.fromisoformat(day.date[:10])
            except (PydanticValidationError, ValueError):
                _logger.warning("Dropping malformed day plan: %r", raw)
                continue
            if plan_date in dates and plan_date not in by_date:
                by_date[plan_date] = day
        return by_date

    def _to_meal(
        self, generated: GeneratedMeal, plan_date: date, inventory: list[GroceryItem]
    ) -> Meal:
        ingredients = []
        for ingredient in generated.ingredients:
            item = match_item(ingredient.name, inventory)
            nutrition = _facts(ingredient.nutrition)
            if nutrition == ZERO_NUTRITION and item is not None:
                nutrition = item.nutrition.scaled(ingredient.servings)
            ingredients.append(
                MealIngredient(
                    grocery_item_id=item.id if item else None,
                    name=ingredient.name,
                    servings=ingredient.servings,
                    nutrition=nutrition,
                )
            )
        if ingredients:
            total = sum_nutrition(ingredient.nutrition for ingredient in ingredients)
        elif generated.total_nutrition is not None:
            total = _facts(generated.total_nutrition)
        else:
            total = ZERO_NUTRITION
        return Meal(
            id=uuid4().hex,
            name=generated.name,
            type=_meal_type(generated.type),
            ingredients=tuple(ingredients),
            instructions=tuple(step for step in generated.instructions if step),
            total_nutrition=total,
            date=plan_date,
        )


def _meal_type(raw: str) -> MealType:
    try:
        return MealType(raw.strip().lower())
    except ValueError:
        return MealType.SNACK


def _facts(generated: GeneratedNutrition) -> NutritionFacts:
    return NutritionFacts(**generated.model_dump(by_alias=False))


def _meal_plan_prompt(
    profile: UserProfile, inventory: list[GroceryItem], dates: list[date]
) -> str:
    groceries = [
        {
            "name": item.name,
            "brand": item.brand or "",
            "remaining": item.remaining_quantity,
            "servingSize": item.serving_size,
            "nutrition": {
                "calories": item.nutrition.calories,
                "protein": item.nutrition.protein,
                "carbs": item.nutrition.carbs,
                "fat": item.nutrition.fat,
                "fiber": item.nutrition.fiber,
                "sugar": item.nutrition.sugar,
                "sodium": item.nutrition.sodium,
                "saturatedFat": item.nutrition.saturated_fat,
            },
        }
        for item in inventory
    ]
    diets = ", ".join(p.value for p in profile.dietary_preferences) or "none"
    conditions = ", ".join(c.value for c in profile.health_conditions) or "none"
    day_list = ", ".join(d.isoformat() for d in dates)
    return (
        f"You are a meal planning expert. Create a {len(dates)}-day meal plan "
        "using ONLY these available groceries:\n\n"
        f"{json.dumps(groceries, indent=2)}\n\n"
        f"Dietary restrictions: {diets}\n"
        f"Health conditions: {conditions}\n"
        f"Daily calorie goal: {profile.daily_calorie_goal} calories\n"
        f"Goal: {profile.weight_goal.value if profile.weight_goal else 'maintain'}"
        " weight\n\n"
        "Create breakfast, lunch and dinner for every day, adding snacks only "
        "to reach the calorie goal. Do not use more servings than remain. "
        "Each ingredient needs name, servings and the nutrition for those "
        "servings (calories, protein, carbs, fat, fiber, sugar, sodium, "
        "saturatedFat). Give 1-3 short instructions per meal.\n\n"
        f"Dates to use, in order: {day_list}\n\n"
        'Return ONLY a JSON array of {"date", "meals": [{"name", "type", '
        '"ingredients", "instructions", "totalNutrition"}]} objects.'
    )
