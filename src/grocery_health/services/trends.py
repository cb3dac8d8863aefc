"""Weight log and weekly trend aggregation."""

import logging
import math
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Protocol

from grocery_health.domain.health import HealthScoreRecord
from grocery_health.domain.meals import DailyMealPlan
from grocery_health.domain.timestamps import utc_timestamp
from grocery_health.domain.trends import WeeklyTrend, WeightEntry
from grocery_health.errors import ValidationError
from grocery_health.services.health import HealthScoreRepository
from grocery_health.services.meal_plans import MealPlanRepository

_logger = logging.getLogger(__name__)

DEFAULT_TREND_WEEKS = 12


class WeightRepository(Protocol):
    """Persistence interface for the weight log."""

    def list_entries(self) -> list[WeightEntry]:
        """Return stored entries, newest first."""

    def save_entries(self, entries: list[WeightEntry]) -> None:
        """Replace the stored entries."""


def week_window(now: datetime, offset: int) -> tuple[datetime, datetime]:
    """Inclusive bounds of the 7-day window ending ``offset`` weeks before now.

    The window ends at the last microsecond of its final day and starts at
    midnight six days earlier.
    """
    end_day = (now - timedelta(days=7 * offset)).date()
    week_end = datetime.combine(end_day, time.max, tzinfo=now.tzinfo)
    week_start = datetime.combine(
        end_day - timedelta(days=6), time.min, tzinfo=now.tzinfo
    )
    return week_start, week_end


def aggregate_weekly_trends(
    weights: Iterable[WeightEntry],
    plans: Iterable[DailyMealPlan],
    health_records: Iterable[HealthScoreRecord],
    *,
    now: datetime,
    weeks: int = DEFAULT_TREND_WEEKS,
) -> list[WeeklyTrend]:
    """Summarise the last ``weeks`` rolling weeks, oldest first.

    Weeks without weight entries, consumed meals or a health snapshot are
    left out. The health score of a week is the latest snapshot taken in it.
    """
    now = utc_timestamp(now)
    weights = list(weights)
    plans = list(plans)
    health_records = list(health_records)
    trends: list[WeeklyTrend] = []
    for offset in range(weeks):
        week_start, week_end = week_window(now, offset)

        week_weights = [
            entry.weight
            for entry in weights
            if week_start <= entry.timestamp <= week_end
        ]
        consumed = [
            meal
            for plan in plans
            if week_start.date() <= plan.date <= week_end.date()
            for meal in plan.meals
            if meal.is_consumed
        ]
        snapshots = [
            record
            for record in health_records
            if week_start <= record.timestamp <= week_end
        ]
        health_score = (
            max(snapshots, key=lambda record: record.timestamp).overall
            if snapshots
            else 0
        )
        if not week_weights and not consumed and health_score <= 0:
            continue
        trends.append(
            WeeklyTrend(
                week_start=week_start,
                week_end=week_end,
                average_health_score=health_score,
                average_weight=(
                    sum(week_weights) / len(week_weights) if week_weights else 0.0
                ),
                calories_consumed=sum(
                    meal.total_nutrition.calories for meal in consumed
                ),
                meals_completed=len(consumed),
            )
        )
    trends.reverse()
    return trends


def predicted_weekly_change(trends: list[WeeklyTrend]) -> float:
    """Weight change between the last two weeks, 0 when either lacks data."""
    if len(trends) < 2:
        return 0.0
    recent, previous = trends[-1], trends[-2]
    if not recent.average_weight or not previous.average_weight:
        return 0.0
    return recent.average_weight - previous.average_weight


@dataclass
class WeightLogService:
    """Records body weight over time."""

    repository: WeightRepository
    lock: threading.RLock = field(default_factory=threading.RLock)

    def add_entry(
        self, weight: float, note: str | None = None, now: datetime | None = None
    ) -> WeightEntry:
        """Log a weight reading."""
        if (
            isinstance(weight, bool)
            or not isinstance(weight, int | float)
            or not math.isfinite(weight)
            or weight <= 0
        ):
            raise ValidationError("weight must be a finite, positive number")
        entry = WeightEntry(
            timestamp=utc_timestamp(now), weight=float(weight), note=note
        )
        with self.lock:
            entries = self.repository.list_entries()
            entries.insert(0, entry)
            self.repository.save_entries(entries)
        _logger.info("Logged weight %.1f", entry.weight)
        return entry

    def history(self) -> list[WeightEntry]:
        """Entries newest first."""
        return sorted(
            self.repository.list_entries(),
            key=lambda entry: entry.timestamp,
            reverse=True,
        )

    def total_change(self) -> float:
        """Newest weight minus oldest weight, 0 with fewer than two entries."""
        entries = self.history()
        if len(entries) < 2:
            return 0.0
        return entries[0].weight - entries[-1].weight


@dataclass
class TrendService:
    """Builds weekly trends from the stored logs."""

    weights: WeightRepository
    meal_plans: MealPlanRepository
    health_scores: HealthScoreRepository

    def weekly_trends(
        self, now: datetime | None = None, weeks: int = DEFAULT_TREND_WEEKS
    ) -> list[WeeklyTrend]:
        """Trends for the last ``weeks`` rolling weeks, oldest first."""
        return aggregate_weekly_trends(
            self.weights.list_entries(),
            self.meal_plans.list_plans(),
            self.health_scores.list_records(),
            now=utc_timestamp(now),
            weeks=weeks,
        )

    def predicted_weekly_change(self, now: datetime | None = None) -> float:
        """Weight change between the two most recent trend weeks."""
        return predicted_weekly_change(self.weekly_trends(now))
