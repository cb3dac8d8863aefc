"""Tests for budget tracking, purchases and the profile."""

import asyncio
import math
from datetime import UTC, datetime

import pytest

from grocery_health.containers import AppContainer
from grocery_health.domain.nutrition import NutritionFacts
from grocery_health.domain.profile import DietaryPreference, UserProfile
from grocery_health.errors import NotFoundError, ValidationError
from grocery_health.services.budget import week_start
from tests.conftest import NOW, FakeTextClient


def test_week_starts_on_sunday() -> None:
    assert week_start(NOW) == datetime(2026, 10, 11, tzinfo=UTC)
    sunday = datetime(2026, 10, 11, 8, 30, tzinfo=UTC)
    assert week_start(sunday) == datetime(2026, 10, 11, tzinfo=UTC)


def test_weekly_spent_counts_current_week(container: AppContainer) -> None:
    budget = container.budget_service
    budget.add_entry("111", "Milk", 3.0, now=datetime(2026, 10, 11, 1, tzinfo=UTC))
    budget.add_entry("222", "Steak", 10.0, now=datetime(2026, 10, 10, 23, tzinfo=UTC))
    default_priced = budget.add_entry("333", "Bread", now=NOW)

    assert default_priced.price == 5.0
    assert budget.weekly_spent(NOW) == 8.0
    assert [entry.product_name for entry in budget.entries()] == [
        "Bread",
        "Milk",
        "Steak",
    ]


def test_naive_purchase_times_are_treated_as_utc(container: AppContainer) -> None:
    budget = container.budget_service
    entry = budget.add_entry("111", "Milk", 3.0, now=datetime(2026, 10, 12, 8))

    assert entry.timestamp == datetime(2026, 10, 12, 8, tzinfo=UTC)
    assert budget.weekly_spent(datetime(2026, 10, 14, 12)) == 3.0
    assert budget.weekly_spent(NOW) == 3.0


def test_budget_check_reports_overage(container: AppContainer) -> None:
    budget = container.budget_service
    budget.add_entry("111", "Groceries", 8.0, now=NOW)

    check = budget.budget_check(95.0, UserProfile(weekly_budget=100), now=NOW)

    assert check.spent == 8.0
    assert check.new_total == 103.0
    assert check.exceeds
    assert check.over_by == pytest.approx(3.0)
    within = budget.budget_check(10.0, UserProfile(weekly_budget=100), now=NOW)
    assert not within.exceeds
    assert within.over_by == 0


def test_budget_entries_validate_and_remove(container: AppContainer) -> None:
    budget = container.budget_service

    for bad in (-1.0, math.nan, math.inf):
        with pytest.raises(ValidationError):
            budget.add_entry("111", "Milk", bad)

    entry = budget.add_entry(
        "111", "Milk", 3.0, nutrition=NutritionFacts(calories=120), now=NOW
    )
    assert budget.entries()[0].nutrition == NutritionFacts(calories=120)

    with pytest.raises(NotFoundError):
        budget.remove_entry("missing")
    budget.remove_entry(entry.id)
    assert budget.entries() == []

    budget.add_entry("222", "Eggs", 4.0)
    budget.clear()
    assert budget.entries() == []


def test_purchase_records_budget_and_inventory(
    container: AppContainer, text_client: FakeTextClient
) -> None:
    text_client.replies.append(
        '{"servingsPerContainer": 12, "servingSize": "1 bar (40g)"}'
    )
    nutrition = NutritionFacts(calories=190, protein=12, sugar=6)

    result = asyncio.run(
        container.purchase_service.purchase(
            "Protein Bar",
            "RXBAR",
            "0123",
            2.5,
            nutrition,
            ingredient_statement="egg whites, dates, almonds",
            now=NOW,
        )
    )

    assert result.budget_entry.price == 2.5
    assert result.item.total_quantity == 12
    assert result.item.remaining_quantity == 12
    assert result.item.serving_size == "1 bar (40g)"
    assert result.item.ingredient_statement == "egg whites, dates, almonds"
    assert container.ledger.list_active() == [result.item]
    assert container.budget_service.weekly_spent(NOW) == 2.5


def test_purchase_falls_back_to_one_serving(container: AppContainer) -> None:
    result = asyncio.run(
        container.purchase_service.purchase(
            "Apple", None, "", None, NutritionFacts(calories=95), now=NOW
        )
    )

    assert result.item.total_quantity == 1
    assert result.budget_entry.price == 5.0
    assert result.item.price == 5.0


def test_profile_defaults_and_updates(container: AppContainer) -> None:
    profiles = container.profile_service

    assert profiles.get() == UserProfile()

    updated = profiles.update(
        weekly_budget=80, dietary_preferences=(DietaryPreference.VEGAN,)
    )

    assert updated.weekly_budget == 80
    assert profiles.get() == updated
    assert not updated.onboarding_completed


def test_profile_rejects_bad_changes(container: AppContainer) -> None:
    profiles = container.profile_service

    with pytest.raises(ValidationError):
        profiles.update(favourite_colour="green")
    with pytest.raises(ValidationError):
        profiles.update(daily_calorie_goal=0)
    with pytest.raises(ValidationError):
        profiles.update(weekly_budget=True)


@pytest.mark.parametrize("field_name", ["weight", "height", "target_weight"])
@pytest.mark.parametrize("value", [0, -5, math.nan, math.inf])
def test_profile_rejects_bad_body_metrics(
    container: AppContainer, field_name: str, value: float
) -> None:
    profiles = container.profile_service

    with pytest.raises(ValidationError):
        profiles.update(**{field_name: value})
    assert profiles.get() == UserProfile()


def test_complete_onboarding(container: AppContainer) -> None:
    profile = container.profile_service.complete_onboarding(
        name="Sam", onboarding_completed=False
    )

    assert profile.onboarding_completed
    assert container.profile_service.get().name == "Sam"
