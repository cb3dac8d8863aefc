"""Weight log and trend models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class WeightEntry:
    """A logged body weight."""

    timestamp: datetime
    weight: float
    note: str | None = None


@dataclass(frozen=True)
class WeeklyTrend:
    """Summary of one rolling week. Derived, never persisted."""

    week_start: datetime
    week_end: datetime
    average_health_score: int
    average_weight: float
    calories_consumed: float
    meals_completed: int
