"""Tests for the durable stores and the repositories over them."""

import math
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

import pytest

from grocery_health.adapters import codecs
from grocery_health.adapters.store_repositories import (
    StoreHealthScoreRepository,
    StoreInventoryRepository,
    StoreMealPlanRepository,
    StoreProfileRepository,
    StoreWeightRepository,
)
from grocery_health.adapters.supabase_store import SupabaseDurableStore
from grocery_health.domain.nutrition import NutritionFacts
from grocery_health.domain.profile import Gender, HealthCondition, UserProfile
from grocery_health.domain.trends import WeightEntry
from grocery_health.errors import StorageError
from grocery_health.services.health import assess
from grocery_health.services.inventory import InventoryLedger
from grocery_health.services.meal_plans import build_daily_plan, simple_meals
from grocery_health.services.store import (
    HEALTH_SCORE_KEY,
    INVENTORY_KEY,
    InMemoryDurableStore,
)
from tests.conftest import NOW, make_purchase


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    rows: dict[str, object] = field(default_factory=dict)
    failures: int = 0
    executions: int = 0
    upserts: list[dict[str, object]] = field(default_factory=list)
    on_conflict: str | None = None

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def eq(self, _column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._key = value
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def upsert(
        self, payload: dict[str, object], on_conflict: str = ""
    ) -> "FakeTable":
        self._action = "upsert"
        self._payload = payload
        self.on_conflict = on_conflict
        return self

    def execute(self) -> FakeResponse:
        self.executions += 1
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("connection reset")
        if self._action == "upsert":
            self.upserts.append(self._payload)
            self.rows[self._payload["key"]] = self._payload["value"]
            return FakeResponse([self._payload])
        if self._key not in self.rows:
            return FakeResponse([])
        return FakeResponse([{"value": self.rows[self._key]}])


@dataclass
class FakeSupabase:
    table_obj: FakeTable = field(default_factory=FakeTable)
    requested: list[str] = field(default_factory=list)

    def table(self, name: str) -> FakeTable:
        self.requested.append(name)
        return self.table_obj


def _supabase_store(table: FakeTable) -> SupabaseDurableStore:
    return SupabaseDurableStore(
        client=FakeSupabase(table),  # type: ignore[arg-type]
        table="kv_store",
        retry_delay_seconds=0,
    )


def test_in_memory_store_returns_copies() -> None:
    store = InMemoryDurableStore()

    assert store.get("missing") is None
    value = [{"name": "Oats"}]
    store.set("favorites", value)
    value[0]["name"] = "Changed"

    assert store.get("favorites") == [{"name": "Oats"}]


def test_in_memory_store_rejects_non_json() -> None:
    store = InMemoryDurableStore()
    store.set("weightHistory", [{"weight": 170}])

    with pytest.raises(StorageError):
        store.set("weightHistory", [{"weight": math.nan}])
    with pytest.raises(StorageError):
        store.set("weightHistory", {"when": date(2026, 10, 14)})

    assert store.get("weightHistory") == [{"weight": 170}]


def test_supabase_store_upserts_and_reads() -> None:
    table = FakeTable()
    store = _supabase_store(table)

    store.set("favorites", [{"name": "Oats"}])

    assert store.get("favorites") == [{"name": "Oats"}]
    assert store.get("missing") is None
    assert table.on_conflict == "key"
    assert table.upserts[0]["key"] == "favorites"
    assert "updated_at" in table.upserts[0]


def test_supabase_store_decodes_text_values() -> None:
    table = FakeTable(rows={"userProfile": '{"name": "Sam"}', "broken": "{oops"})
    store = _supabase_store(table)

    assert store.get("userProfile") == {"name": "Sam"}
    with pytest.raises(StorageError):
        store.get("broken")


def test_supabase_store_rejects_non_json_before_writing() -> None:
    table = FakeTable()
    store = _supabase_store(table)

    with pytest.raises(StorageError):
        store.set("weightHistory", [{"weight": math.inf}])

    assert table.executions == 0


def test_supabase_store_retries_then_fails() -> None:
    table = FakeTable(failures=1)
    store = _supabase_store(table)

    store.set("favorites", [])
    assert table.executions == 2

    table.failures = 5
    with pytest.raises(StorageError):
        store.get("favorites")
    assert table.executions == 5


def test_inventory_repository_round_trip() -> None:
    store = InMemoryDurableStore()
    ledger = InventoryLedger(StoreInventoryRepository(store))

    item = ledger.add_item(
        make_purchase(
            nutrition=NutritionFacts(calories=100, saturated_fat=1.5),
            ingredient_statement="milk, cultures",
        ),
        now=NOW,
    )

    assert ledger.list_active() == [item]
    raw = store.get(INVENTORY_KEY)
    assert isinstance(raw, list)
    assert raw[0]["nutrition"]["saturatedFat"] == 1.5
    assert raw[0]["remainingQuantity"] == 4


def test_malformed_blobs_raise_storage_error() -> None:
    store = InMemoryDurableStore()
    repository = StoreInventoryRepository(store)

    store.set(INVENTORY_KEY, "not a list")
    with pytest.raises(StorageError):
        repository.list_items()

    store.set(INVENTORY_KEY, [{"id": "1"}])
    with pytest.raises(StorageError):
        repository.list_items()


def test_health_records_round_trip() -> None:
    store = InMemoryDurableStore()
    repository = StoreHealthScoreRepository(store)
    items = [
        InventoryLedger(StoreInventoryRepository(store)).add_item(
            make_purchase(ingredient_statement="sugar, red 40, bht"), now=NOW
        )
    ]
    record = assess(UserProfile(), items, NOW)

    repository.save_records([record])

    assert repository.list_records() == [record]


def test_single_health_record_blob_is_read_as_list() -> None:
    store = InMemoryDurableStore()
    items = [
        InventoryLedger(StoreInventoryRepository(store)).add_item(
            make_purchase(), now=NOW
        )
    ]
    record = assess(UserProfile(), items, NOW)
    store.set(HEALTH_SCORE_KEY, codecs.health_record_to_json(record))

    assert StoreHealthScoreRepository(store).list_records() == [record]


def test_meal_plans_round_trip() -> None:
    repository = StoreMealPlanRepository(InMemoryDurableStore())
    plan_date = date(2026, 10, 14)
    plan = build_daily_plan(plan_date, simple_meals(plan_date, 1800), 1800)

    repository.save_plans([plan])

    assert repository.list_plans() == [plan]


def test_profile_and_weight_round_trip() -> None:
    store = InMemoryDurableStore()
    profiles = StoreProfileRepository(store)
    weights = StoreWeightRepository(store)
    profile = UserProfile(
        name="Sam",
        gender=Gender.FEMALE,
        weight=140.5,
        health_conditions=(HealthCondition.HYPERTENSION,),
    )

    assert profiles.get_profile() is None
    profiles.save_profile(profile)
    weights.save_entries([WeightEntry(timestamp=NOW, weight=140.5, note="morning")])

    assert profiles.get_profile() == profile
    assert weights.list_entries() == [
        WeightEntry(timestamp=NOW, weight=140.5, note="morning")
    ]


def test_timestamps_without_offset_decode_as_utc() -> None:
    entry = codecs.weight_entry_from_json(
        {"date": "2026-10-14T12:00:00", "weight": 150}
    )
    purchase = codecs.budget_entry_from_json(
        {"id": "b1", "price": 2.5, "date": "2026-10-14T12:00:00+02:00"}
    )

    assert entry.timestamp == NOW
    assert entry.timestamp.tzinfo is not None
    assert purchase.timestamp.utcoffset() is not None
    assert purchase.timestamp == datetime(2026, 10, 14, 10, tzinfo=UTC)
