"""Buying a product: budget entry plus inventory row."""

import logging
from dataclasses import dataclass
from datetime import datetime

from grocery_health.domain.budget import BudgetEntry
from grocery_health.domain.inventory import GroceryItem, PurchaseInfo
from grocery_health.domain.nutrition import NutritionFacts
from grocery_health.services.budget import BudgetService
from grocery_health.services.inventory import InventoryLedger
from grocery_health.services.products import ProductService

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseResult:
    """What a purchase recorded."""

    budget_entry: BudgetEntry
    item: GroceryItem


@dataclass
class PurchaseService:
    """Records a purchase in the budget and stocks the inventory."""

    budget: BudgetService
    ledger: InventoryLedger
    product_service: ProductService

    async def purchase(  # noqa: PLR0913
        self,
        name: str,
        brand: str | None,
        product_code: str,
        price: float | None,
        nutrition: NutritionFacts,
        ingredient_statement: str = "",
        now: datetime | None = None,
    ) -> PurchaseResult:
        """Record the purchase and add the product's servings to the inventory.

        The serving count comes from the text service when available and
        falls back to a single serving.
        """
        entry = self.budget.add_entry(
            product_code=product_code,
            product_name=name,
            price=price,
            nutrition=nutrition,
            now=now,
        )
        servings = await self.product_service.estimate_servings(name, brand)
        item = self.ledger.add_item(
            PurchaseInfo(
                name=name,
                brand=brand,
                total_quantity=servings.servings_per_container,
                servings_per_container=servings.servings_per_container,
                serving_size=servings.serving_size,
                price=entry.price,
                nutrition=nutrition,
                ingredient_statement=ingredient_statement,
            ),
            now=now,
        )
        _logger.info("Purchased %s (%s servings)", name, item.total_quantity)
        return PurchaseResult(budget_entry=entry, item=item)
