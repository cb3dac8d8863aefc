"""Repositories that keep each collection as one JSON blob in a durable store."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from grocery_health.adapters import codecs
from grocery_health.domain.budget import BudgetEntry, FavoriteItem, GroceryHistoryEntry
from grocery_health.domain.health import HealthScoreRecord
from grocery_health.domain.inventory import GroceryItem
from grocery_health.domain.meals import DailyMealPlan
from grocery_health.domain.profile import UserProfile
from grocery_health.domain.trends import WeightEntry
from grocery_health.errors import StorageError
from grocery_health.services.budget import BudgetRepository
from grocery_health.services.favorites import (
    FavoritesRepository,
    GroceryHistoryRepository,
)
from grocery_health.services.health import HealthScoreRepository
from grocery_health.services.inventory import InventoryRepository
from grocery_health.services.meal_plans import MealPlanRepository
from grocery_health.services.profile import ProfileRepository
from grocery_health.services.store import (
    BUDGET_KEY,
    FAVORITES_KEY,
    GROCERY_HISTORY_KEY,
    HEALTH_SCORE_KEY,
    INVENTORY_KEY,
    MEAL_PLANS_KEY,
    PROFILE_KEY,
    WEIGHT_HISTORY_KEY,
    DurableStore,
)
from grocery_health.services.trends import WeightRepository

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _JsonCollection(Generic[T]):
    store: DurableStore
    key: str
    encode: Callable[[T], dict[str, Any]]
    decode: Callable[[dict[str, Any]], T]

    def load(self) -> list[T]:
        raw = self.store.get(self.key)
        if raw is None:
            return []
        if isinstance(raw, dict):
            # Single-record blobs written before the collection became a list.
            raw = [raw]
        if not isinstance(raw, list):
            raise StorageError(f"Stored {self.key} is not a list")
        try:
            return [self.decode(row) for row in raw]
        except (KeyError, TypeError, ValueError) as exc:
            _logger.error("Malformed %s blob: %s", self.key, exc)
            raise StorageError(f"Stored {self.key} is malformed") from exc

    def save(self, values: list[T]) -> None:
        self.store.set(self.key, [self.encode(value) for value in values])


class StoreInventoryRepository(InventoryRepository):
    """Inventory under ``groceryInventory``."""

    def __init__(self, store: DurableStore) -> None:
        self._collection = _JsonCollection(
            store,
            INVENTORY_KEY,
            codecs.grocery_item_to_json,
            codecs.grocery_item_from_json,
        )

    def list_items(self) -> list[GroceryItem]:
        return self._collection.load()

    def save_items(self, items: list[GroceryItem]) -> None:
        self._collection.save(items)


class StoreMealPlanRepository(MealPlanRepository):
    """Meal plans under ``mealPlans``."""

    def __init__(self, store: DurableStore) -> None:
        self._collection = _JsonCollection(
            store,
            MEAL_PLANS_KEY,
            codecs.meal_plan_to_json,
            codecs.meal_plan_from_json,
        )

    def list_plans(self) -> list[DailyMealPlan]:
        return self._collection.load()

    def save_plans(self, plans: list[DailyMealPlan]) -> None:
        self._collection.save(plans)


class StoreHealthScoreRepository(HealthScoreRepository):
    """Health score snapshots under ``healthScore``."""

    def __init__(self, store: DurableStore) -> None:
        self._collection = _JsonCollection(
            store,
            HEALTH_SCORE_KEY,
            codecs.health_record_to_json,
            codecs.health_record_from_json,
        )

    def list_records(self) -> list[HealthScoreRecord]:
        return self._collection.load()

    def save_records(self, records: list[HealthScoreRecord]) -> None:
        self._collection.save(records)


class StoreWeightRepository(WeightRepository):
    """Weight log under ``weightHistory``."""

    def __init__(self, store: DurableStore) -> None:
        self._collection = _JsonCollection(
            store,
            WEIGHT_HISTORY_KEY,
            codecs.weight_entry_to_json,
            codecs.weight_entry_from_json,
        )

    def list_entries(self) -> list[WeightEntry]:
        return self._collection.load()

    def save_entries(self, entries: list[WeightEntry]) -> None:
        self._collection.save(entries)


class StoreBudgetRepository(BudgetRepository):
    """Budget entries under ``budgetEntries``."""

    def __init__(self, store: DurableStore) -> None:
        self._collection = _JsonCollection(
            store,
            BUDGET_KEY,
            codecs.budget_entry_to_json,
            codecs.budget_entry_from_json,
        )

    def list_entries(self) -> list[BudgetEntry]:
        return self._collection.load()

    def save_entries(self, entries: list[BudgetEntry]) -> None:
        self._collection.save(entries)


class StoreFavoritesRepository(FavoritesRepository):
    """Favorites under ``favorites``."""

    def __init__(self, store: DurableStore) -> None:
        self._collection = _JsonCollection(
            store,
            FAVORITES_KEY,
            codecs.favorite_to_json,
            codecs.favorite_from_json,
        )

    def list_favorites(self) -> list[FavoriteItem]:
        return self._collection.load()

    def save_favorites(self, favorites: list[FavoriteItem]) -> None:
        self._collection.save(favorites)


class StoreGroceryHistoryRepository(GroceryHistoryRepository):
    """Grocery history under ``groceryHistory``."""

    def __init__(self, store: DurableStore) -> None:
        self._collection = _JsonCollection(
            store,
            GROCERY_HISTORY_KEY,
            codecs.history_entry_to_json,
            codecs.history_entry_from_json,
        )

    def list_history(self) -> list[GroceryHistoryEntry]:
        return self._collection.load()

    def save_history(self, entries: list[GroceryHistoryEntry]) -> None:
        self._collection.save(entries)


class StoreProfileRepository(ProfileRepository):
    """Profile under ``userProfile``."""

    def __init__(self, store: DurableStore) -> None:
        self._store = store

    def get_profile(self) -> UserProfile | None:
        raw = self._store.get(PROFILE_KEY)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise StorageError("Stored userProfile is not an object")
        try:
            return codecs.profile_from_json(raw)
        except (KeyError, TypeError, ValueError) as exc:
            _logger.error("Malformed userProfile blob: %s", exc)
            raise StorageError("Stored userProfile is malformed") from exc

    def save_profile(self, profile: UserProfile) -> None:
        self._store.set(PROFILE_KEY, codecs.profile_to_json(profile))
