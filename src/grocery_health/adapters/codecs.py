"""JSON layout of stored entities.

Keys are camelCase and timestamps ISO 8601 strings, matching the blobs the
mobile client writes to the store.
"""

from datetime import date, datetime
from typing import Any

from grocery_health.domain.budget import BudgetEntry, FavoriteItem, GroceryHistoryEntry
from grocery_health.domain.health import (
    BadIngredient,
    CategoryScore,
    CategoryStatus,
    HealthCategories,
    HealthScoreRecord,
    Severity,
)
from grocery_health.domain.inventory import GroceryItem
from grocery_health.domain.meals import DailyMealPlan, Meal, MealIngredient, MealType
from grocery_health.domain.nutrition import NutritionFacts
from grocery_health.domain.profile import (
    DietaryPreference,
    Gender,
    HealthCondition,
    UserProfile,
    WeightGoal,
)
from grocery_health.domain.timestamps import utc_timestamp
from grocery_health.domain.trends import WeightEntry

JsonDict = dict[str, Any]

_CATEGORY_KEYS = (
    ("sugar", "sugar"),
    ("fat", "fat"),
    ("saturated_fat", "saturatedFat"),
    ("sodium", "sodium"),
    ("fiber", "fiber"),
    ("processed_foods", "processedFoods"),
)


def _parse_datetime(raw: str) -> datetime:
    return utc_timestamp(datetime.fromisoformat(raw))


def _parse_date(raw: str) -> date:
    return date.fromisoformat(raw[:10])


def nutrition_to_json(nutrition: NutritionFacts) -> JsonDict:
    return {
        "calories": nutrition.calories,
        "protein": nutrition.protein,
        "carbs": nutrition.carbs,
        "fat": nutrition.fat,
        "fiber": nutrition.fiber,
        "sugar": nutrition.sugar,
        "sodium": nutrition.sodium,
        "saturatedFat": nutrition.saturated_fat,
    }


def nutrition_from_json(data: JsonDict | None) -> NutritionFacts:
    return NutritionFacts.coerce(data)


def grocery_item_to_json(item: GroceryItem) -> JsonDict:
    return {
        "id": item.id,
        "name": item.name,
        "brand": item.brand,
        "totalQuantity": item.total_quantity,
        "remainingQuantity": item.remaining_quantity,
        "servingSize": item.serving_size,
        "servingsPerContainer": item.servings_per_container,
        "nutrition": nutrition_to_json(item.nutrition),
        "price": item.price,
        "dateAdded": item.date_added.isoformat(),
        "ingredientStatement": item.ingredient_statement,
    }


def grocery_item_from_json(data: JsonDict) -> GroceryItem:
    return GroceryItem(
        id=str(data["id"]),
        name=str(data["name"]),
        brand=data.get("brand"),
        total_quantity=float(data["totalQuantity"]),
        remaining_quantity=float(data["remainingQuantity"]),
        serving_size=data.get("servingSize") or "1 serving",
        servings_per_container=float(
            data.get("servingsPerContainer", data["totalQuantity"])
        ),
        nutrition=nutrition_from_json(data.get("nutrition")),
        price=float(data.get("price", 0.0)),
        date_added=_parse_datetime(data["dateAdded"]),
        ingredient_statement=data.get("ingredientStatement") or "",
    )


def meal_to_json(meal: Meal) -> JsonDict:
    return {
        "id": meal.id,
        "name": meal.name,
        "type": meal.type.value,
        "ingredients": [
            {
                "groceryItemId": ingredient.grocery_item_id,
                "name": ingredient.name,
                "servings": ingredient.servings,
                "nutrition": nutrition_to_json(ingredient.nutrition),
            }
            for ingredient in meal.ingredients
        ],
        "instructions": list(meal.instructions),
        "totalNutrition": nutrition_to_json(meal.total_nutrition),
        "date": meal.date.isoformat(),
        "isConsumed": meal.is_consumed,
    }


def meal_from_json(data: JsonDict) -> Meal:
    return Meal(
        id=str(data["id"]),
        name=str(data["name"]),
        type=MealType(data.get("type", MealType.SNACK.value)),
        ingredients=tuple(
            MealIngredient(
                grocery_item_id=raw.get("groceryItemId") or None,
                name=str(raw["name"]),
                servings=float(raw.get("servings", 0.0)),
                nutrition=nutrition_from_json(raw.get("nutrition")),
            )
            for raw in data.get("ingredients", [])
        ),
        instructions=tuple(data.get("instructions", [])),
        total_nutrition=nutrition_from_json(data.get("totalNutrition")),
        date=_parse_date(data["date"]),
        is_consumed=bool(data.get("isConsumed", False)),
    )


def meal_plan_to_json(plan: DailyMealPlan) -> JsonDict:
    return {
        "date": plan.date.isoformat(),
        "meals": [meal_to_json(meal) for meal in plan.meals],
        "totalNutrition": nutrition_to_json(plan.total_nutrition),
        "calorieGoal": plan.calorie_goal,
        "remainingCalories": plan.remaining_calories,
    }


def meal_plan_from_json(data: JsonDict) -> DailyMealPlan:
    return DailyMealPlan(
        date=_parse_date(data["date"]),
        meals=tuple(meal_from_json(raw) for raw in data.get("meals", [])),
        total_nutrition=nutrition_from_json(data.get("totalNutrition")),
        calorie_goal=float(data.get("calorieGoal", 0.0)),
        remaining_calories=float(data.get("remainingCalories", 0.0)),
    )


def health_record_to_json(record: HealthScoreRecord) -> JsonDict:
    """Encode a snapshot; ``date`` carries the timestamp."""
    categories = {}
    for attr, key in _CATEGORY_KEYS:
        score: CategoryScore = getattr(record.categories, attr)
        categories[key] = {
            "score": score.score,
            "status": score.status.value,
            "message": score.message,
        }
    return {
        "overall": record.overall,
        "categories": categories,
        "recommendations": list(record.recommendations),
        "badIngredients": [
            {
                "name": ingredient.name,
                "severity": ingredient.severity.value,
                "reason": ingredient.reason,
                "foundIn": list(ingredient.found_in),
                "healthImpact": ingredient.health_impact,
                "alternatives": list(ingredient.alternatives),
            }
            for ingredient in record.bad_ingredients
        ],
        "date": record.timestamp.isoformat(),
    }


def health_record_from_json(data: JsonDict) -> HealthScoreRecord:
    raw_categories = data.get("categories", {})
    categories = {}
    for attr, key in _CATEGORY_KEYS:
        raw = raw_categories.get(key, {})
        categories[attr] = CategoryScore(
            score=int(raw.get("score", 0)),
            status=CategoryStatus(raw.get("status", CategoryStatus.BAD.value)),
            message=str(raw.get("message", "")),
        )
    return HealthScoreRecord(
        overall=int(data.get("overall", 0)),
        categories=HealthCategories(**categories),
        recommendations=tuple(data.get("recommendations", [])),
        bad_ingredients=tuple(
            BadIngredient(
                name=str(raw["name"]),
                severity=Severity(raw.get("severity", Severity.MODERATE.value)),
                reason=str(raw.get("reason", "")),
                found_in=tuple(raw.get("foundIn", [])),
                health_impact=str(raw.get("healthImpact", "")),
                alternatives=tuple(raw.get("alternatives", [])),
            )
            for raw in data.get("badIngredients", [])
        ),
        timestamp=_parse_datetime(data["date"]),
    )


def weight_entry_to_json(entry: WeightEntry) -> JsonDict:
    payload: JsonDict = {"date": entry.timestamp.isoformat(), "weight": entry.weight}
    if entry.note is not None:
        payload["notes"] = entry.note
    return payload


def weight_entry_from_json(data: JsonDict) -> WeightEntry:
    return WeightEntry(
        timestamp=_parse_datetime(data["date"]),
        weight=float(data["weight"]),
        note=data.get("notes"),
    )


def budget_entry_to_json(entry: BudgetEntry) -> JsonDict:
    payload: JsonDict = {
        "id": entry.id,
        "productCode": entry.product_code,
        "productName": entry.product_name,
        "price": entry.price,
        "date": entry.timestamp.isoformat(),
    }
    if entry.nutrition is not None:
        payload["nutrition"] = nutrition_to_json(entry.nutrition)
    return payload


def budget_entry_from_json(data: JsonDict) -> BudgetEntry:
    nutrition = data.get("nutrition")
    return BudgetEntry(
        id=str(data["id"]),
        product_code=str(data.get("productCode", "")),
        product_name=str(data.get("productName", "")),
        price=float(data.get("price", 0.0)),
        timestamp=_parse_datetime(data["date"]),
        nutrition=nutrition_from_json(nutrition) if nutrition is not None else None,
    )


def profile_to_json(profile: UserProfile) -> JsonDict:
    payload: JsonDict = {
        "name": profile.name,
        "dietaryPreferences": [p.value for p in profile.dietary_preferences],
        "healthConditions": [c.value for c in profile.health_conditions],
        "allergens": list(profile.allergens),
        "dailyCalorieGoal": profile.daily_calorie_goal,
        "weeklyBudget": profile.weekly_budget,
        "favoriteFoods": list(profile.favorite_foods),
        "onboardingCompleted": profile.onboarding_completed,
    }
    optional = {
        "weight": profile.weight,
        "targetWeight": profile.target_weight,
        "height": profile.height,
        "gender": profile.gender.value if profile.gender else None,
        "weightGoal": profile.weight_goal.value if profile.weight_goal else None,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})
    return payload


def profile_from_json(data: JsonDict) -> UserProfile:
    defaults = UserProfile()
    gender = data.get("gender")
    weight_goal = data.get("weightGoal")
    return UserProfile(
        name=str(data.get("name", "")),
        dietary_preferences=tuple(
            DietaryPreference(p) for p in data.get("dietaryPreferences", [])
        ),
        health_conditions=tuple(
            HealthCondition(c) for c in data.get("healthConditions", [])
        ),
        allergens=tuple(data.get("allergens", [])),
        daily_calorie_goal=data.get("dailyCalorieGoal", defaults.daily_calorie_goal),
        weekly_budget=data.get("weeklyBudget", defaults.weekly_budget),
        weight=data.get("weight"),
        target_weight=data.get("targetWeight"),
        height=data.get("height"),
        gender=Gender(gender) if gender else None,
        weight_goal=WeightGoal(weight_goal) if weight_goal else None,
        favorite_foods=tuple(data.get("favoriteFoods", [])),
        onboarding_completed=bool(data.get("onboardingCompleted", False)),
    )


def favorite_to_json(favorite: FavoriteItem) -> JsonDict:
    return {
        "id": favorite.id,
        "name": favorite.name,
        "brand": favorite.brand,
        "price": favorite.price,
        "createdAt": favorite.created_at.isoformat(),
        "updatedAt": favorite.updated_at.isoformat(),
    }


def favorite_from_json(data: JsonDict) -> FavoriteItem:
    created_at = _parse_datetime(data["createdAt"])
    return FavoriteItem(
        id=str(data["id"]),
        name=str(data["name"]),
        brand=str(data.get("brand", "")),
        price=float(data.get("price", 0.0)),
        created_at=created_at,
        updated_at=(
            _parse_datetime(data["updatedAt"]) if data.get("updatedAt") else created_at
        ),
    )


def history_entry_to_json(entry: GroceryHistoryEntry) -> JsonDict:
    return {
        "id": entry.id,
        "productName": entry.product_name,
        "price": entry.price,
        "date": entry.date.isoformat(),
        "mergedInto": list(entry.merged_into),
    }


def history_entry_from_json(data: JsonDict) -> GroceryHistoryEntry:
    return GroceryHistoryEntry(
        id=str(data["id"]),
        product_name=str(data["productName"]),
        price=float(data.get("price", 0.0)),
        date=_parse_datetime(data["date"]),
        merged_into=tuple(data.get("mergedInto", [])),
    )
