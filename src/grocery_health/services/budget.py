"""Weekly grocery budget tracking."""

import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Protocol
from uuid import uuid4

from grocery_health.domain.budget import BudgetCheck, BudgetEntry
from grocery_health.domain.nutrition import NutritionFacts
from grocery_health.domain.profile import UserProfile
from grocery_health.domain.timestamps import utc_timestamp
from grocery_health.errors import NotFoundError, ValidationError

_logger = logging.getLogger(__name__)


class BudgetRepository(Protocol):
    """Persistence interface for budget entries."""

    def list_entries(self) -> list[BudgetEntry]:
        """Return stored entries, newest first."""

    def save_entries(self, entries: list[BudgetEntry]) -> None:
        """Replace the stored entries."""


def week_start(now: datetime) -> datetime:
    """Midnight of the Sunday that starts the week containing ``now``."""
    days_since_sunday = (now.weekday() + 1) % 7
    start_day = now.date() - timedelta(days=days_since_sunday)
    return datetime.combine(start_day, time.min, tzinfo=now.tzinfo)


@dataclass
class BudgetService:
    """Records purchases and checks them against the weekly budget."""

    repository: BudgetRepository
    default_price: float = 5.00
    lock: threading.RLock = field(default_factory=threading.RLock)

    def add_entry(
        self,
        product_code: str,
        product_name: str,
        price: float | None = None,
        nutrition: NutritionFacts | None = None,
        now: datetime | None = None,
    ) -> BudgetEntry:
        """Record a purchase. A missing price uses the default price."""
        resolved_price = self.default_price if price is None else price
        if (
            isinstance(resolved_price, bool)
            or not isinstance(resolved_price, int | float)
            or not math.isfinite(resolved_price)
            or resolved_price < 0
        ):
            raise ValidationError("price must be a finite, non-negative number")
        entry = BudgetEntry(
            id=uuid4().hex,
            product_code=product_code,
            product_name=product_name,
            price=float(resolved_price),
            timestamp=utc_timestamp(now),
            nutrition=nutrition,
        )
        with self.lock:
            entries = self.repository.list_entries()
            entries.insert(0, entry)
            self.repository.save_entries(entries)
        _logger.info("Recorded purchase of %s for %.2f", product_name, entry.price)
        return entry

    def remove_entry(self, entry_id: str) -> None:
        """Delete an entry by id."""
        with self.lock:
            entries = self.repository.list_entries()
            kept = [entry for entry in entries if entry.id != entry_id]
            if len(kept) == len(entries):
                raise NotFoundError(f"Budget entry {entry_id} not found")
            self.repository.save_entries(kept)

    def clear(self) -> None:
        """Remove every entry."""
        with self.lock:
            self.repository.save_entries([])

    def entries(self) -> list[BudgetEntry]:
        """Entries newest first."""
        return sorted(
            self.repository.list_entries(),
            key=lambda entry: entry.timestamp,
            reverse=True,
        )

    def weekly_spent(self, now: datetime | None = None) -> float:
        """Total spent since the start of the current week."""
        start = week_start(utc_timestamp(now))
        return sum(
            entry.price
            for entry in self.repository.list_entries()
            if entry.timestamp >= start
        )

    def budget_check(
        self, price: float, profile: UserProfile, now: datetime | None = None
    ) -> BudgetCheck:
        """Compare this week's spending plus ``price`` with the budget."""
        spent = self.weekly_spent(now)
        return BudgetCheck(
            spent=spent,
            new_total=spent + price,
            weekly_budget=profile.weekly_budget,
        )
