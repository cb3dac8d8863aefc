"""Tests for favorites and grocery history."""

import asyncio
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from grocery_health.containers import AppContainer
from grocery_health.domain.budget import FavoriteItem, GroceryHistoryEntry
from grocery_health.errors import (
    DependencyDegradedError,
    NotFoundError,
    ValidationError,
)
from grocery_health.services.favorites import (
    FavoritesService,
    GroceryHistoryService,
    RemoteFavoritesService,
    iso_week_key,
)
from tests.conftest import NOW, FakeFavoritesClient


def test_iso_week_key() -> None:
    assert iso_week_key(NOW) == "2026-W42"
    assert iso_week_key(datetime(2027, 1, 1, tzinfo=UTC)) == "2026-W53"


def test_favorites_crud(container: AppContainer) -> None:
    favorites = container.favorites_service
    oats = favorites.create(" Oats ", "Quaker", 4.5, now=NOW)
    milk = favorites.create("Milk", "Horizon", 3.99, now=NOW)

    assert oats.name == "Oats"
    assert [item.id for item in favorites.list_favorites()] == [milk.id, oats.id]

    later = datetime(2026, 10, 15, tzinfo=UTC)
    updated = favorites.update(oats.id, price=4.25, now=later)
    assert updated.price == 4.25
    assert updated.name == "Oats"
    assert updated.created_at == NOW
    assert updated.updated_at == later

    favorites.delete(milk.id)
    assert favorites.list_favorites() == [updated]


def test_favorites_validation(container: AppContainer) -> None:
    favorites = container.favorites_service

    with pytest.raises(ValidationError):
        favorites.create("  ", "Brand", 1.0)
    with pytest.raises(ValidationError):
        favorites.create("Oats", "Brand", math.nan)
    with pytest.raises(NotFoundError):
        favorites.update("missing", price=1.0)
    with pytest.raises(NotFoundError):
        favorites.delete("missing")
    assert favorites.list_favorites() == []


def test_merge_previous_week_is_idempotent(container: AppContainer) -> None:
    history = container.grocery_history_service
    history.record("Eggs", 4.0, datetime(2026, 10, 6, 10, tzinfo=UTC))
    history.record("Milk", 3.5, datetime(2026, 10, 11, 18, tzinfo=UTC))
    history.record("Bread", 2.5, datetime(2026, 10, 13, 9, tzinfo=UTC))
    history.record("Kale", 3.0, datetime(2026, 9, 28, 9, tzinfo=UTC))

    merged = history.merge_previous_week(now=NOW)

    assert sorted(entry.product_name for entry in merged) == ["Eggs", "Milk"]
    assert all(entry.date == NOW for entry in merged)
    assert all(entry.merged_into == () for entry in merged)
    sources = [e for e in history.list_history() if e.product_name == "Eggs"]
    assert sorted(entry.merged_into for entry in sources) == [(), ("2026-W42",)]

    assert history.merge_previous_week(now=NOW) == []
    assert len(history.list_history()) == 6


def test_history_lists_newest_first(container: AppContainer) -> None:
    history = container.grocery_history_service
    history.record("Eggs", 4.0, datetime(2026, 10, 6, tzinfo=UTC))
    history.record("Milk", 3.5, datetime(2026, 10, 13, tzinfo=UTC))

    assert [entry.product_name for entry in history.list_history()] == [
        "Milk",
        "Eggs",
    ]
    with pytest.raises(ValidationError):
        history.record("Milk", -1)


def test_remote_favorites_retry_then_succeed() -> None:
    client = FakeFavoritesClient(failures=1)
    service = RemoteFavoritesService(client, retry_attempts=1, retry_delay_seconds=0)

    favorites = asyncio.run(service.list_favorites())

    assert [item.name for item in favorites] == ["Oats"]
    assert client.calls == 2


def test_remote_favorites_degrade_after_retries() -> None:
    client = FakeFavoritesClient(failures=5)
    service = RemoteFavoritesService(client, retry_attempts=1, retry_delay_seconds=0)

    with pytest.raises(DependencyDegradedError) as excinfo:
        asyncio.run(service.add_favorite("Oats", "Quaker", 4.5))

    assert excinfo.value.action == "add favorite"
    assert client.calls == 2


def test_remote_favorites_pass_changes() -> None:
    service = RemoteFavoritesService(FakeFavoritesClient(), retry_delay_seconds=0)

    updated = asyncio.run(service.update_favorite("fav-9", price=2.0))
    entry = asyncio.run(service.record_purchase("Eggs", 4.0, NOW))

    assert updated.id == "fav-9"
    assert updated.price == 2.0
    assert updated.name == "Oats"
    assert entry.date == NOW
    assert asyncio.run(service.merge_previous_week()) == []
    asyncio.run(service.remove_favorite("fav-9"))
    with pytest.raises(ValidationError):
        asyncio.run(service.record_purchase("Eggs", -4.0))


@dataclass
class SlowFavoritesRepository:
    """Sleeps between reading and writing so concurrent writers overlap."""

    favorites: list[FavoriteItem] = field(default_factory=list)
    history: list[GroceryHistoryEntry] = field(default_factory=list)

    def list_favorites(self) -> list[FavoriteItem]:
        favorites = list(self.favorites)
        time.sleep(0.01)
        return favorites

    def save_favorites(self, favorites: list[FavoriteItem]) -> None:
        self.favorites = list(favorites)

    def list_history(self) -> list[GroceryHistoryEntry]:
        entries = list(self.history)
        time.sleep(0.01)
        return entries

    def save_history(self, entries: list[GroceryHistoryEntry]) -> None:
        self.history = list(entries)


def test_concurrent_favorite_writes_are_all_kept() -> None:
    repository = SlowFavoritesRepository()
    favorites = FavoritesService(repository)
    history = GroceryHistoryService(repository)

    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(
            pool.map(
                lambda index: favorites.create(f"Item {index}", "Brand", 1.0),
                range(8),
            )
        )
        recorded = list(
            pool.map(
                lambda index: history.record(f"Item {index}", 1.0, NOW), range(8)
            )
        )

    assert {item.id for item in repository.favorites} == {
        item.id for item in created
    }
    assert {entry.id for entry in repository.history} == {
        entry.id for entry in recorded
    }


def test_naive_history_dates_are_treated_as_utc(container: AppContainer) -> None:
    history = container.grocery_history_service
    history.record("Eggs", 4.0, datetime(2026, 10, 6, 10))

    merged = history.merge_previous_week(now=datetime(2026, 10, 14, 12))

    assert [entry.product_name for entry in merged] == ["Eggs"]
    assert merged[0].date == NOW
    assert all(entry.date.tzinfo is UTC for entry in history.list_history())
