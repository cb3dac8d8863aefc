"""Aggregate health assessment of the grocery inventory."""

import json
import logging
import math
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from grocery_health.domain.generated import GeneratedIngredientNarrative
from grocery_health.domain.health import (
    BadIngredient,
    CategoryScore,
    CategoryStatus,
    HealthCategories,
    HealthScoreRecord,
    Severity,
)
from grocery_health.domain.inventory import GroceryItem
from grocery_health.domain.nutrition import NutritionFacts, sum_nutrition
from grocery_health.domain.profile import Gender, HealthCondition, UserProfile
from grocery_health.domain.timestamps import utc_timestamp
from grocery_health.errors import DependencyDegradedError, EmptyInventoryError
from grocery_health.services.inventory import InventoryLedger
from grocery_health.services.lexicon import LexiconEntry, match_ingredients
from grocery_health.services.products import clamp_score
from grocery_health.services.text_generation import TextGenerationService

_logger = logging.getLogger(__name__)

EMPTY_INVENTORY_MESSAGE = (
    "No groceries in inventory. Add groceries before calculating a health score."
)

DEFAULT_WEIGHT_LB = 150
DEFAULT_HEIGHT_IN = 66
DEFAULT_AGE = 30
ACTIVITY_FACTOR = 1.55
MIN_CALORIE_NEED = 1200
RECOMMENDATION_THRESHOLD = 60

CATEGORY_WEIGHTS = {
    "sugar": 0.20,
    "fat": 0.10,
    "saturated_fat": 0.15,
    "sodium": 0.15,
    "fiber": 0.15,
    "processed_foods": 0.25,
}


@dataclass(frozen=True)
class DailyLimits:
    """Personal daily reference values."""

    calorie_need: int
    max_sugar_g: float
    max_sodium_mg: float
    max_saturated_fat_g: float
    max_fat_g: float
    min_fiber_g: float


class HealthScoreRepository(Protocol):
    """Persistence interface for health score snapshots."""

    def list_records(self) -> list[HealthScoreRecord]:
        """Return stored snapshots, oldest first."""

    def save_records(self, records: list[HealthScoreRecord]) -> None:
        """Replace the stored snapshots."""


def basal_metabolic_rate(profile: UserProfile) -> float:
    """Harris-Benedict BMR from pounds and inches."""
    weight_kg = (profile.weight or DEFAULT_WEIGHT_LB) / 2.205
    height_cm = (profile.height or DEFAULT_HEIGHT_IN) * 2.54
    if profile.gender == Gender.MALE:
        return 88.362 + 13.397 * weight_kg + 4.799 * height_cm - 5.677 * DEFAULT_AGE
    if profile.gender == Gender.FEMALE:
        return 447.593 + 9.247 * weight_kg + 3.098 * height_cm - 4.330 * DEFAULT_AGE
    return 1800.0


def personal_limits(profile: UserProfile) -> DailyLimits:
    """Daily reference limits for the profile's body metrics and conditions."""
    calorie_need = max(
        MIN_CALORIE_NEED,
        round_half_up(basal_metabolic_rate(profile) * ACTIVITY_FACTOR),
    )
    male = profile.gender == Gender.MALE
    sugar = 36.0 if male else 25.0
    sodium = 2300.0
    saturated_fat = float(round_half_up(calorie_need * 0.10 / 9))
    fat = float(round_half_up(calorie_need * 0.30 / 9))
    fiber = 38.0 if male else 25.0

    conditions = set(profile.health_conditions)
    if HealthCondition.DIABETES in conditions:
        sugar *= 0.6
    if conditions & {
        HealthCondition.HYPERTENSION,
        HealthCondition.HEART_DISEASE,
        HealthCondition.KIDNEY_DISEASE,
    }:
        sodium = 1500.0
    if HealthCondition.HEART_DISEASE in conditions:
        saturated_fat *= 0.7
    return DailyLimits(
        calorie_need=calorie_need,
        max_sugar_g=sugar,
        max_sodium_mg=sodium,
        max_saturated_fat_g=saturated_fat,
        max_fat_g=fat,
        min_fiber_g=fiber,
    )


def round_half_up(value: float) -> int:
    """Round half up without clamping."""
    return math.floor(value + 0.5)


def daily_intake(items: Iterable[GroceryItem], limits: DailyLimits) -> NutritionFacts:
    """Average daily intake implied by the remaining inventory.

    The remaining servings are summed and spread over as many days as their
    calories cover at the personal calorie need. Less than one day of food
    counts as a single day.
    """
    total = sum_nutrition(
        item.nutrition.scaled(item.remaining_quantity) for item in items
    )
    days = max(1.0, total.calories / limits.calorie_need)
    return total.scaled(1 / days)


def category_status(score: int) -> CategoryStatus:
    """Map a 0-100 score to its band."""
    if score >= 80:
        return CategoryStatus.EXCELLENT
    if score >= 60:
        return CategoryStatus.GOOD
    if score >= 40:
        return CategoryStatus.FAIR
    if score >= 20:
        return CategoryStatus.POOR
    return CategoryStatus.BAD


def _limit_score(intake: float, limit: float, label: str, unit: str) -> CategoryScore:
    score = clamp_score(100 - 40 * (intake / limit))
    if intake > limit:
        over = round_half_up((intake / limit - 1) * 100)
        message = (
            f"Average {intake:.0f}{unit}/day exceeds your {limit:.0f}{unit} "
            f"{label} limit by {over}%"
        )
    else:
        message = (
            f"Average {intake:.0f}{unit}/day is within your {limit:.0f}{unit} "
            f"{label} limit"
        )
    return CategoryScore(score=score, status=category_status(score), message=message)


def _fiber_score(intake: float, minimum: float) -> CategoryScore:
    score = clamp_score(100 * intake / minimum)
    if intake >= minimum:
        message = f"Meets your {minimum:.0f}g daily fiber target"
    else:
        message = f"Average {intake:.0f}g/day is below your {minimum:.0f}g fiber target"
    return CategoryScore(score=score, status=category_status(score), message=message)


def _processed_score(items: list[GroceryItem]) -> CategoryScore:
    penalty = sum(
        entry.points
        for item in items
        for entry in match_ingredients(item.ingredient_statement)
    )
    score = clamp_score(100 - penalty / len(items))
    flagged = sum(1 for item in items if match_ingredients(item.ingredient_statement))
    if flagged:
        message = f"{flagged} of {len(items)} products contain harmful additives"
    else:
        message = "No harmful additives detected"
    return CategoryScore(score=score, status=category_status(score), message=message)


def score_categories(
    items: list[GroceryItem], limits: DailyLimits
) -> HealthCategories:
    """Score every category for a non-empty inventory."""
    intake = daily_intake(items, limits)
    return HealthCategories(
        sugar=_limit_score(intake.sugar, limits.max_sugar_g, "sugar", "g"),
        fat=_limit_score(intake.fat, limits.max_fat_g, "fat", "g"),
        saturated_fat=_limit_score(
            intake.saturated_fat, limits.max_saturated_fat_g, "saturated fat", "g"
        ),
        sodium=_limit_score(intake.sodium, limits.max_sodium_mg, "sodium", "mg"),
        fiber=_fiber_score(intake.fiber, limits.min_fiber_g),
        processed_foods=_processed_score(items),
    )


def overall_score(categories: HealthCategories) -> int:
    """Weighted combination of the category scores."""
    return clamp_score(
        sum(CATEGORY_WEIGHTS[name] * score.score for name, score in categories.items())
    )


def find_bad_ingredients(items: Iterable[GroceryItem]) -> list[BadIngredient]:
    """One entry per matched fragment, worst severity first."""
    found: dict[str, tuple[LexiconEntry, list[str]]] = {}
    for item in items:
        for entry in match_ingredients(item.ingredient_statement):
            _, products = found.setdefault(entry.fragment, (entry, []))
            if item.name not in products:
                products.append(item.name)
    ingredients = [
        BadIngredient(
            name=entry.display_name,
            severity=entry.severity,
            reason=entry.reason,
            found_in=tuple(products),
            health_impact=entry.reason,
        )
        for entry, products in found.values()
    ]
    return sorted(ingredients, key=lambda ingredient: -ingredient.severity.rank)


_CATEGORY_ADVICE = {
    "sugar": "Cut back on high-sugar products; your groceries exceed your "
    "{limit:.0f}g daily sugar limit",
    "fat": "Choose leaner products to stay within your {limit:.0f}g daily fat target",
    "saturated_fat": "Swap products high in saturated fat; aim for under "
    "{limit:.0f}g per day",
    "sodium": "Pick low-sodium versions to stay under {limit:.0f}mg of sodium per day",
    "fiber": "Add whole grains, beans and vegetables to reach {limit:.0f}g of "
    "fiber per day",
    "processed_foods": "Replace heavily processed products with whole-food options",
}


def build_recommendations(
    categories: HealthCategories,
    bad_ingredients: Iterable[BadIngredient],
    limits: DailyLimits,
) -> list[str]:
    """Advice for weak categories and for every ingredient to avoid."""
    category_limits = {
        "sugar": limits.max_sugar_g,
        "fat": limits.max_fat_g,
        "saturated_fat": limits.max_saturated_fat_g,
        "sodium": limits.max_sodium_mg,
        "fiber": limits.min_fiber_g,
        "processed_foods": 0.0,
    }
    recommendations = [
        _CATEGORY_ADVICE[name].format(limit=category_limits[name])
        for name, score in categories.items()
        if score.score < RECOMMENDATION_THRESHOLD
    ]
    for ingredient in bad_ingredients:
        if ingredient.severity == Severity.AVOID:
            products = ", ".join(ingredient.found_in)
            recommendations.append(
                f"Avoid products with {ingredient.name} (found in {products})"
            )
    return recommendations


def assess(
    profile: UserProfile, items: list[GroceryItem], now: datetime
) -> HealthScoreRecord:
    """Compute a health score record without touching the network."""
    if not items:
        raise EmptyInventoryError(EMPTY_INVENTORY_MESSAGE)
    limits = personal_limits(profile)
    categories = score_categories(items, limits)
    bad_ingredients = find_bad_ingredients(items)
    return HealthScoreRecord(
        overall=overall_score(categories),
        categories=categories,
        recommendations=tuple(
            build_recommendations(categories, bad_ingredients, limits)
        ),
        bad_ingredients=tuple(bad_ingredients),
        timestamp=now,
    )


@dataclass
class HealthAssessmentService:
    """Calculates and stores health score snapshots."""

    ledger: InventoryLedger
    repository: HealthScoreRepository
    text_service: TextGenerationService
    lock: threading.RLock = field(default_factory=threading.RLock)

    async def calculate(
        self, profile: UserProfile, now: datetime | None = None
    ) -> HealthScoreRecord:
        """Score the active inventory, enrich the narrative and store it."""
        items = self.ledger.list_active()
        record = assess(profile, items, utc_timestamp(now))
        if record.bad_ingredients:
            record = replace(
                record,
                bad_ingredients=tuple(
                    await self._enrich_ingredients(profile, record.bad_ingredients)
                ),
            )
        with self.lock:
            records = self.repository.list_records()
            records.append(record)
            self.repository.save_records(records)
        _logger.info(
            "Health score %s from %s inventory items", record.overall, len(items)
        )
        return record

    def latest(self) -> HealthScoreRecord | None:
        """Most recent snapshot, if any."""
        records = self.repository.list_records()
        if not records:
            return None
        return max(records, key=lambda record: record.timestamp)

    def history(self) -> list[HealthScoreRecord]:
        """All snapshots, oldest first."""
        return sorted(self.repository.list_records(), key=lambda r: r.timestamp)

    async def _enrich_ingredients(
        self, profile: UserProfile, ingredients: tuple[BadIngredient, ...]
    ) -> list[BadIngredient]:
        prompt = _narrative_prompt(profile, ingredients)
        try:
            parsed = await self.text_service.generate_json_array(
                prompt, action="ingredient narrative"
            )
        except DependencyDegradedError:
            _logger.warning("Ingredient narratives unavailable; keeping defaults")
            return list(ingredients)
        narratives: dict[str, GeneratedIngredientNarrative] = {}
        for raw in parsed:
            try:
                narrative = GeneratedIngredientNarrative.model_validate(raw)
            except PydanticValidationError:
                continue
            narratives.setdefault(narrative.name.strip().lower(), narrative)

        enriched = []
        for ingredient in ingredients:
            narrative = narratives.get(ingredient.name.lower())
            if narrative is None:
                enriched.append(ingredient)
                continue
            alternatives = tuple(a.strip() for a in narrative.alternatives if a.strip())
            enriched.append(
                replace(
                    ingredient,
                    health_impact=narrative.health_impact.strip()
                    or ingredient.health_impact,
                    alternatives=alternatives or ingredient.alternatives,
                )
            )
        return enriched


def _narrative_prompt(
    profile: UserProfile, ingredients: tuple[BadIngredient, ...]
) -> str:
    listing = [
        {"name": ingredient.name, "foundIn": list(ingredient.found_in)}
        for ingredient in ingredients
    ]
    conditions = ", ".join(c.value for c in profile.health_conditions) or "none"
    gender = profile.gender.value if profile.gender else "other"
    return (
        "You are a nutrition expert. For each harmful ingredient below, describe "
        "its health effects in 2-3 sentences specific to this user and suggest "
        "2-3 specific branded alternatives available in grocery stores.\n\n"
        f"{json.dumps(listing, indent=2)}\n\n"
        f"Gender: {gender}\nHealth conditions: {conditions}\n\n"
        'Return ONLY a JSON array of {"name", "healthImpact", "alternatives"} '
        "objects using the ingredient names exactly as given."
    )
