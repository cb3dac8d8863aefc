"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from grocery_health.config import Settings
from grocery_health.containers import AppContainer, build_services
from grocery_health.domain.budget import FavoriteItem, GroceryHistoryEntry
from grocery_health.domain.health import HealthScoreRecord
from grocery_health.domain.inventory import GroceryItem, PurchaseInfo
from grocery_health.domain.meals import DailyMealPlan
from grocery_health.domain.nutrition import NutritionFacts
from grocery_health.domain.trends import WeightEntry
from grocery_health.services.favorites import FavoritesClient, RemoteFavoritesService
from grocery_health.services.health import HealthScoreRepository
from grocery_health.services.inventory import InventoryLedger, InventoryRepository
from grocery_health.services.meal_plans import MealPlanRepository
from grocery_health.services.store import InMemoryDurableStore
from grocery_health.services.text_generation import (
    Message,
    TextGenerationClient,
    TextGenerationService,
)
from grocery_health.services.trends import WeightRepository

NOW = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)


@dataclass
class FakeTextClient(TextGenerationClient):
    """Replays scripted replies; exceptions in the script are raised."""

    replies: list[object] = field(default_factory=list)
    calls: list[list[Message]] = field(default_factory=list)

    async def complete(self, messages: list[Message]) -> str:
        self.calls.append(messages)
        if not self.replies:
            raise RuntimeError("no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class InMemoryInventoryRepository(InventoryRepository):
    """In-memory inventory for tests."""

    items: list[GroceryItem] = field(default_factory=list)
    saves: int = 0

    def list_items(self) -> list[GroceryItem]:
        return list(self.items)

    def save_items(self, items: list[GroceryItem]) -> None:
        self.saves += 1
        self.items = list(items)


@dataclass
class InMemoryMealPlanRepository(MealPlanRepository):
    """In-memory meal plans for tests."""

    plans: list[DailyMealPlan] = field(default_factory=list)
    fail_saves: bool = False

    def list_plans(self) -> list[DailyMealPlan]:
        return list(self.plans)

    def save_plans(self, plans: list[DailyMealPlan]) -> None:
        if self.fail_saves:
            raise RuntimeError("store unavailable")
        self.plans = list(plans)


@dataclass
class InMemoryHealthScoreRepository(HealthScoreRepository):
    """In-memory health score history for tests."""

    records: list[HealthScoreRecord] = field(default_factory=list)

    def list_records(self) -> list[HealthScoreRecord]:
        return list(self.records)

    def save_records(self, records: list[HealthScoreRecord]) -> None:
        self.records = list(records)


@dataclass
class InMemoryWeightRepository(WeightRepository):
    """In-memory weight log for tests."""

    entries: list[WeightEntry] = field(default_factory=list)

    def list_entries(self) -> list[WeightEntry]:
        return list(self.entries)

    def save_entries(self, entries: list[WeightEntry]) -> None:
        self.entries = list(entries)


@dataclass
class FakeFavoritesClient(FavoritesClient):
    """Favorites client that fails a set number of times before answering."""

    failures: int = 0
    calls: int = 0

    async def _maybe_fail(self) -> None:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("service unavailable")

    async def list_favorites(self) -> list[FavoriteItem]:
        await self._maybe_fail()
        return [
            FavoriteItem(
                id="fav-1",
                name="Oats",
                brand="Quaker",
                price=4.5,
                created_at=NOW,
                updated_at=NOW,
            )
        ]

    async def create_favorite(
        self, name: str, brand: str, price: float
    ) -> FavoriteItem:
        await self._maybe_fail()
        return FavoriteItem(
            id="fav-2",
            name=name,
            brand=brand,
            price=price,
            created_at=NOW,
            updated_at=NOW,
        )

    async def update_favorite(
        self, favorite_id: str, changes: dict[str, object]
    ) -> FavoriteItem:
        await self._maybe_fail()
        return FavoriteItem(
            id=favorite_id,
            name=str(changes.get("name", "Oats")),
            brand=str(changes.get("brand", "Quaker")),
            price=float(changes.get("price", 4.5)),
            created_at=NOW,
            updated_at=NOW,
        )

    async def delete_favorite(self, favorite_id: str) -> None:
        await self._maybe_fail()

    async def record_history(
        self, product_name: str, price: float, date: datetime
    ) -> GroceryHistoryEntry:
        await self._maybe_fail()
        return GroceryHistoryEntry(
            id="hist-1", product_name=product_name, price=price, date=date
        )

    async def merge_previous_week(self) -> list[GroceryHistoryEntry]:
        await self._maybe_fail()
        return []


def make_purchase(
    name: str = "Greek Yogurt",
    servings: float = 4,
    nutrition: NutritionFacts | None = None,
    ingredient_statement: str = "",
    price: float = 5.0,
) -> PurchaseInfo:
    return PurchaseInfo(
        name=name,
        total_quantity=servings,
        price=price,
        nutrition=nutrition or NutritionFacts(calories=100, protein=10),
        ingredient_statement=ingredient_statement,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
        admin_token="admin-token",
    )


@pytest.fixture
def text_client() -> FakeTextClient:
    return FakeTextClient()


@pytest.fixture
def text_service(text_client: FakeTextClient) -> TextGenerationService:
    return TextGenerationService(
        client=text_client,
        timeout_seconds=1,
        retry_attempts=0,
        retry_delay_seconds=0,
    )


@pytest.fixture
def inventory_repository() -> InMemoryInventoryRepository:
    return InMemoryInventoryRepository()


@pytest.fixture
def ledger(inventory_repository: InMemoryInventoryRepository) -> InventoryLedger:
    return InventoryLedger(inventory_repository)


@pytest.fixture
def container(settings: Settings, text_client: FakeTextClient) -> AppContainer:
    async def close_resources() -> None:
        return None

    return build_services(
        settings.model_copy(
            update={"text_generation_retry_attempts": 0, "retry_delay_seconds": 0}
        ),
        store=InMemoryDurableStore(),
        text_client=text_client,
        remote_favorites=RemoteFavoritesService(
            client=FakeFavoritesClient(), retry_delay_seconds=0
        ),
        close_resources=close_resources,
    )
