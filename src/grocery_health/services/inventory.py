"""Grocery inventory ledger."""

import logging
import math
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Protocol, TypeVar
from uuid import uuid4

from grocery_health.domain.inventory import GroceryItem, PurchaseInfo
from grocery_health.domain.timestamps import utc_timestamp
from grocery_health.errors import StorageError, ValidationError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class InventoryRepository(Protocol):
    """Persistence interface for the grocery inventory."""

    def list_items(self) -> list[GroceryItem]:
        """Return all stored items in insertion order."""

    def save_items(self, items: list[GroceryItem]) -> None:
        """Replace the stored items."""


@dataclass
class InventoryLedger:
    """Owns grocery items and their remaining servings.

    Every read and write happens under ``lock``. The lock is re-entrant so
    callers that need several ledger operations to appear as one unit (meal
    consumption) can hold it across them with :meth:`run`.

    Storage failures are retried by :meth:`run` after the lock is released,
    so the backoff never blocks other ledger users. Nested calls run once and
    leave retrying to the outermost call.
    """

    repository: InventoryRepository
    retry_attempts: int = 0
    retry_delay_seconds: float = 0.5
    lock: threading.RLock = field(default_factory=threading.RLock)
    _local: threading.local = field(
        default_factory=threading.local, init=False, repr=False
    )

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the ledger lock for a group of operations."""
        with self.lock:
            depth = getattr(self._local, "depth", 0)
            self._local.depth = depth + 1
            try:
                yield
            finally:
                self._local.depth = depth

    def run(self, action: str, operation: Callable[[], T]) -> T:
        """Run ``operation`` as one unit, retrying storage failures."""
        if getattr(self._local, "depth", 0):
            return operation()
        attempt = 0
        while True:
            try:
                with self.transaction():
                    return operation()
            except StorageError as exc:
                attempt += 1
                if attempt > self.retry_attempts:
                    raise
                _logger.warning(
                    "Ledger %s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
            time.sleep(self.retry_delay_seconds)

    def add_item(
        self, purchase: PurchaseInfo, now: datetime | None = None
    ) -> GroceryItem:
        """Add a purchased product with all of its servings remaining."""
        _require_non_negative("total_quantity", purchase.total_quantity)
        _require_non_negative("price", purchase.price)
        servings_per_container = (
            purchase.servings_per_container
            if purchase.servings_per_container is not None
            else purchase.total_quantity
        )
        _require_non_negative("servings_per_container", servings_per_container)
        item = GroceryItem(
            id=uuid4().hex,
            name=purchase.name,
            brand=purchase.brand,
            total_quantity=float(purchase.total_quantity),
            remaining_quantity=float(purchase.total_quantity),
            serving_size=purchase.serving_size,
            servings_per_container=float(servings_per_container),
            nutrition=purchase.nutrition,
            price=float(purchase.price),
            date_added=utc_timestamp(now),
            ingredient_statement=purchase.ingredient_statement,
        )

        def append() -> None:
            items = self.repository.list_items()
            items.append(item)
            self.repository.save_items(items)

        self.run("add item", append)
        _logger.info(
            "Added %s (%s servings) to inventory", item.name, item.total_quantity
        )
        return item

    def deplete(self, item_id: str, servings: float) -> GroceryItem | None:
        """Remove servings from one item.

        Unknown ids are ignored. Returns the updated item, or ``None`` when
        the item is unknown or was pruned because it ran out.
        """
        self.deplete_many([(item_id, servings)])
        return self.get_item(item_id)

    def deplete_many(self, deductions: Iterable[tuple[str, float]]) -> None:
        """Apply several deductions as one unit with a single write.

        Remaining quantities are clamped at 0 and emptied items are pruned.
        All deductions are validated before any is applied.
        """
        pending = list(deductions)
        for _, servings in pending:
            _require_non_negative("servings", servings)
        if pending:
            self.run("deplete", lambda: self._apply_deductions(pending))

    def _apply_deductions(self, pending: list[tuple[str, float]]) -> None:
        items = self.repository.list_items()
        by_id = {item.id: item for item in items}
        changed = False
        for item_id, servings in pending:
            item = by_id.get(item_id)
            if item is None:
                _logger.info("Skipping deduction for unknown item %s", item_id)
                continue
            remaining = max(0.0, item.remaining_quantity - servings)
            by_id[item_id] = replace(item, remaining_quantity=remaining)
            changed = True
        if not changed:
            return
        updated = [by_id[item.id] for item in items]
        kept = [item for item in updated if item.remaining_quantity > 0]
        for pruned in (item for item in updated if item.remaining_quantity <= 0):
            _logger.info("Pruned %s from inventory", pruned.name)
        self.repository.save_items(kept)

    def list_active(self) -> list[GroceryItem]:
        """Return items that still have servings left."""
        items = self.run("read inventory", self.repository.list_items)
        return [item for item in items if item.is_active]

    def get_item(self, item_id: str) -> GroceryItem | None:
        """Return an active item by id."""
        for item in self.list_active():
            if item.id == item_id:
                return item
        return None

    def resolve_item_id(self, ingredient_name: str) -> str | None:
        """Best-effort match of an ingredient name to an active item id."""
        item = match_item(ingredient_name, self.list_active())
        return item.id if item else None

    def snapshot(self) -> list[GroceryItem]:
        """Return the stored items, including any not yet pruned."""
        return self.run("read inventory", self.repository.list_items)

    def restore(self, items: list[GroceryItem]) -> None:
        """Put back items captured with :meth:`snapshot`."""
        self.run("restore inventory", lambda: self.repository.save_items(list(items)))

    def clear(self) -> None:
        """Remove every item."""
        self.run("clear inventory", lambda: self.repository.save_items([]))


def match_item(name: str, items: Iterable[GroceryItem]) -> GroceryItem | None:
    """Return the first item whose name contains ``name``, ignoring case.

    Unmatched names return ``None``; callers treat that as "not linked to
    the inventory" rather than an error.
    """
    needle = name.strip().lower()
    if not needle:
        return None
    for item in items:
        if needle in item.name.lower():
            return item
    return None


def _require_non_negative(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{name} must be a finite, non-negative number")
