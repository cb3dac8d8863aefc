"""Budget, favorites and purchase history models."""

from dataclasses import dataclass
from datetime import datetime

from grocery_health.domain.nutrition import NutritionFacts


@dataclass(frozen=True)
class BudgetEntry:
    """A recorded grocery purchase."""

    id: str
    product_code: str
    product_name: str
    price: float
    timestamp: datetime
    nutrition: NutritionFacts | None = None


@dataclass(frozen=True)
class BudgetCheck:
    """Outcome of checking a price against the weekly budget."""

    spent: float
    new_total: float
    weekly_budget: float

    @property
    def over_by(self) -> float:
        """Amount above the budget, 0 when within budget."""
        return max(0.0, self.new_total - self.weekly_budget)

    @property
    def exceeds(self) -> bool:
        """True when the purchase would go over budget."""
        return self.new_total > self.weekly_budget


@dataclass(frozen=True)
class FavoriteItem:
    """A saved product with its usual price."""

    id: str
    name: str
    brand: str
    price: float
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class GroceryHistoryEntry:
    """A purchase recorded by the history service.

    ``merged_into`` lists the ISO-week keys (``2026-W42``) this entry has
    already been copied into.
    """

    id: str
    product_name: str
    price: float
    date: datetime
    merged_into: tuple[str, ...] = ()
