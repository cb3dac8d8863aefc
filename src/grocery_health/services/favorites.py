"""Favorite products and grocery purchase history."""

import logging
import math
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Protocol, TypeVar
from uuid import uuid4

from grocery_health.domain.budget import FavoriteItem, GroceryHistoryEntry
from grocery_health.domain.timestamps import utc_timestamp
from grocery_health.errors import (
    DependencyDegradedError,
    NotFoundError,
    ValidationError,
)
from grocery_health.services.retry import call_with_retry

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class FavoritesRepository(Protocol):
    """Persistence interface for favorites."""

    def list_favorites(self) -> list[FavoriteItem]:
        """Return stored favorites, newest first."""

    def save_favorites(self, favorites: list[FavoriteItem]) -> None:
        """Replace the stored favorites."""


class GroceryHistoryRepository(Protocol):
    """Persistence interface for grocery history."""

    def list_history(self) -> list[GroceryHistoryEntry]:
        """Return stored history entries."""

    def save_history(self, entries: list[GroceryHistoryEntry]) -> None:
        """Replace the stored history entries."""


def iso_week_key(moment: datetime) -> str:
    """ISO week identifier such as ``2026-W42``."""
    year, week, _ = moment.isocalendar()
    return f"{year}-W{week:02d}"


def _require_price(price: float) -> float:
    if (
        isinstance(price, bool)
        or not isinstance(price, int | float)
        or not math.isfinite(price)
        or price < 0
    ):
        raise ValidationError("price must be a finite, non-negative number")
    return float(price)


def _require_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError("name must not be empty")
    return cleaned


@dataclass
class FavoritesService:
    """Create, update and delete favorite products.

    Writes replace the whole collection, so each one runs under ``lock``.
    """

    repository: FavoritesRepository
    lock: threading.RLock = field(default_factory=threading.RLock)

    def list_favorites(self) -> list[FavoriteItem]:
        """Favorites newest first."""
        return self.repository.list_favorites()

    def create(
        self, name: str, brand: str, price: float, now: datetime | None = None
    ) -> FavoriteItem:
        """Save a new favorite."""
        timestamp = utc_timestamp(now)
        favorite = FavoriteItem(
            id=uuid4().hex,
            name=_require_name(name),
            brand=brand.strip(),
            price=_require_price(price),
            created_at=timestamp,
            updated_at=timestamp,
        )
        with self.lock:
            favorites = self.repository.list_favorites()
            favorites.insert(0, favorite)
            self.repository.save_favorites(favorites)
        return favorite

    def update(  # noqa: PLR0913
        self,
        favorite_id: str,
        *,
        name: str | None = None,
        brand: str | None = None,
        price: float | None = None,
        now: datetime | None = None,
    ) -> FavoriteItem:
        """Change the name, brand or price of a favorite."""
        new_name = _require_name(name) if name is not None else None
        new_price = _require_price(price) if price is not None else None
        with self.lock:
            favorites = self.repository.list_favorites()
            for index, favorite in enumerate(favorites):
                if favorite.id != favorite_id:
                    continue
                updated = replace(
                    favorite,
                    name=new_name if new_name is not None else favorite.name,
                    brand=brand.strip() if brand is not None else favorite.brand,
                    price=new_price if new_price is not None else favorite.price,
                    updated_at=utc_timestamp(now),
                )
                favorites[index] = updated
                self.repository.save_favorites(favorites)
                return updated
        raise NotFoundError(f"Favorite {favorite_id} not found")

    def delete(self, favorite_id: str) -> None:
        """Remove a favorite."""
        with self.lock:
            favorites = self.repository.list_favorites()
            kept = [favorite for favorite in favorites if favorite.id != favorite_id]
            if len(kept) == len(favorites):
                raise NotFoundError(f"Favorite {favorite_id} not found")
            self.repository.save_favorites(kept)


@dataclass
class GroceryHistoryService:
    """Records purchases by week and carries last week's list forward.

    Writes run under ``lock``.
    """

    repository: GroceryHistoryRepository
    lock: threading.RLock = field(default_factory=threading.RLock)

    def list_history(self) -> list[GroceryHistoryEntry]:
        """Entries newest first."""
        return sorted(
            self.repository.list_history(), key=lambda entry: entry.date, reverse=True
        )

    def record(
        self, product_name: str, price: float, date: datetime | None = None
    ) -> GroceryHistoryEntry:
        """Add a purchase to the history."""
        entry = GroceryHistoryEntry(
            id=uuid4().hex,
            product_name=_require_name(product_name),
            price=_require_price(price),
            date=utc_timestamp(date),
        )
        with self.lock:
            entries = self.repository.list_history()
            entries.append(entry)
            self.repository.save_history(entries)
        return entry

    def merge_previous_week(
        self, now: datetime | None = None
    ) -> list[GroceryHistoryEntry]:
        """Copy last ISO week's entries into the current week.

        Each source entry is tagged with the current week's key, so a second
        merge in the same week copies nothing. Returns the new entries.
        """
        moment = utc_timestamp(now)
        target = iso_week_key(moment)
        previous = iso_week_key(moment - timedelta(weeks=1))
        merged: list[GroceryHistoryEntry] = []
        with self.lock:
            entries = self.repository.list_history()
            for index, entry in enumerate(entries):
                if iso_week_key(entry.date) != previous or target in entry.merged_into:
                    continue
                merged.append(
                    GroceryHistoryEntry(
                        id=uuid4().hex,
                        product_name=entry.product_name,
                        price=entry.price,
                        date=moment,
                    )
                )
                entries[index] = replace(
                    entry, merged_into=(*entry.merged_into, target)
                )
            if merged:
                self.repository.save_history(entries + merged)
        _logger.info("Merged %s entries from %s into %s", len(merged), previous, target)
        return merged


class FavoritesClient(Protocol):
    """Interface for the remote favorites and history service."""

    async def list_favorites(self) -> list[FavoriteItem]:
        """Return all favorites."""

    async def create_favorite(
        self, name: str, brand: str, price: float
    ) -> FavoriteItem:
        """Create a favorite."""

    async def update_favorite(
        self, favorite_id: str, changes: dict[str, object]
    ) -> FavoriteItem:
        """Update a favorite."""

    async def delete_favorite(self, favorite_id: str) -> None:
        """Delete a favorite."""

    async def record_history(
        self, product_name: str, price: float, date: datetime
    ) -> GroceryHistoryEntry:
        """Record a grocery history entry."""

    async def merge_previous_week(self) -> list[GroceryHistoryEntry]:
        """Ask the service to merge last week's entries."""


@dataclass
class RemoteFavoritesService:
    """Calls the remote favorites service with retries.

    Any failure surfaces as :class:`DependencyDegradedError`.
    """

    client: FavoritesClient
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.5
    timeout_seconds: float = 15.0

    async def list_favorites(self) -> list[FavoriteItem]:
        """Fetch favorites."""
        return await self._call("list favorites", self.client.list_favorites)

    async def add_favorite(self, name: str, brand: str, price: float) -> FavoriteItem:
        """Create a favorite."""
        _require_price(price)
        return await self._call(
            "add favorite", lambda: self.client.create_favorite(name, brand, price)
        )

    async def update_favorite(
        self,
        favorite_id: str,
        *,
        name: str | None = None,
        brand: str | None = None,
        price: float | None = None,
    ) -> FavoriteItem:
        """Update the given fields of a favorite."""
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = name
        if brand is not None:
            changes["brand"] = brand
        if price is not None:
            changes["price"] = _require_price(price)
        return await self._call(
            "update favorite",
            lambda: self.client.update_favorite(favorite_id, changes),
        )

    async def remove_favorite(self, favorite_id: str) -> None:
        """Delete a favorite."""
        await self._call(
            "remove favorite", lambda: self.client.delete_favorite(favorite_id)
        )

    async def record_purchase(
        self, product_name: str, price: float, date: datetime | None = None
    ) -> GroceryHistoryEntry:
        """Record a purchase in the remote history."""
        _require_price(price)
        when = utc_timestamp(date)
        return await self._call(
            "record history",
            lambda: self.client.record_history(product_name, price, when),
        )

    async def merge_previous_week(self) -> list[GroceryHistoryEntry]:
        """Bring last week's purchases into this week."""
        return await self._call(
            "merge previous week", self.client.merge_previous_week
        )

    async def _call(self, action: str, func: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call_with_retry(
                func,
                action=action,
                attempts=self.retry_attempts,
                delay_seconds=self.retry_delay_seconds,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception as exc:
            raise DependencyDegradedError(action) from exc
