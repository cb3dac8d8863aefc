"""Grocery inventory models."""

from dataclasses import dataclass
from datetime import datetime

from grocery_health.domain.nutrition import NutritionFacts


@dataclass(frozen=True)
class PurchaseInfo:
    """Data needed to add a purchased product to the inventory."""

    name: str
    total_quantity: float
    price: float
    nutrition: NutritionFacts
    brand: str | None = None
    serving_size: str = "1 serving"
    servings_per_container: float | None = None
    ingredient_statement: str = ""


@dataclass(frozen=True)
class GroceryItem:
    """A purchased product with its remaining servings."""

    id: str
    name: str
    brand: str | None
    total_quantity: float
    remaining_quantity: float
    serving_size: str
    servings_per_container: float
    nutrition: NutritionFacts
    price: float
    date_added: datetime
    ingredient_statement: str = ""

    @property
    def is_active(self) -> bool:
        """True while servings remain."""
        return self.remaining_quantity > 0
