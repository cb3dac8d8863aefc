"""Meal consumption: pending meals become consumed and deplete inventory."""

import logging
from dataclasses import dataclass, replace

from grocery_health.domain.meals import Meal
from grocery_health.errors import NotFoundError
from grocery_health.services.inventory import InventoryLedger
from grocery_health.services.meal_plans import MealPlanRepository

_logger = logging.getLogger(__name__)


@dataclass
class MealConsumptionService:
    """Moves meals from pending to consumed.

    Consumption is one-way. The ledger lock is held from the moment the
    meal's state is read until its flag is stored, so deductions and the
    flag change are observed together and a meal is never deducted twice.
    """

    ledger: InventoryLedger
    meal_plans: MealPlanRepository

    def consume(self, meal_id: str) -> Meal:
        """Mark a meal consumed and deduct its resolved ingredients.

        Consuming an already consumed meal returns it without touching the
        inventory. Ingredients without an inventory reference deduct nothing.
        """
        return self.ledger.run(
            f"consume meal {meal_id}", lambda: self._consume(meal_id)
        )

    def _consume(self, meal_id: str) -> Meal:
        plans = self.meal_plans.list_plans()
        for plan_index, plan in enumerate(plans):
            for meal_index, meal in enumerate(plan.meals):
                if meal.id != meal_id:
                    continue
                if meal.is_consumed:
                    _logger.info("Meal %s already consumed", meal_id)
                    return meal
                deductions = [
                    (ingredient.grocery_item_id, ingredient.servings)
                    for ingredient in meal.ingredients
                    if ingredient.grocery_item_id
                ]
                skipped = len(meal.ingredients) - len(deductions)
                if skipped:
                    _logger.info(
                        "Meal %s: %s ingredient(s) not linked to inventory",
                        meal_id,
                        skipped,
                    )
                consumed = replace(meal, is_consumed=True)
                meals = list(plan.meals)
                meals[meal_index] = consumed
                plans[plan_index] = replace(plan, meals=tuple(meals))

                snapshot = self.ledger.snapshot()
                self.ledger.deplete_many(deductions)
                try:
                    self.meal_plans.save_plans(plans)
                except Exception:
                    _logger.exception(
                        "Failed to store consumed meal %s; restoring inventory",
                        meal_id,
                    )
                    self.ledger.restore(snapshot)
                    raise
                return consumed
        raise NotFoundError(f"Meal {meal_id} not found")
