"""HTTP client for the favorites and grocery history service."""

from dataclasses import dataclass
from datetime import datetime

import httpx

from grocery_health.adapters.codecs import favorite_from_json, history_entry_from_json
from grocery_health.domain.budget import FavoriteItem, GroceryHistoryEntry
from grocery_health.services.favorites import FavoritesClient


@dataclass
class HttpxFavoritesClient(FavoritesClient):
    """HTTPX-backed favorites client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15
    admin_token: str | None = None

    @classmethod
    def create(
        cls, base_url: str, admin_token: str | None = None
    ) -> "HttpxFavoritesClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            admin_token=admin_token,
        )

    async def list_favorites(self) -> list[FavoriteItem]:
        """Fetch all favorites."""
        payload = await self._request("GET", "/api/favorites")
        return [favorite_from_json(row) for row in payload.get("favorites", [])]

    async def create_favorite(
        self, name: str, brand: str, price: float
    ) -> FavoriteItem:
        """Create a favorite."""
        payload = await self._request(
            "POST",
            "/api/favorites",
            json={"name": name, "brand": brand, "price": price},
        )
        return favorite_from_json(payload["favorite"])

    async def update_favorite(
        self, favorite_id: str, changes: dict[str, object]
    ) -> FavoriteItem:
        """Patch a favorite."""
        payload = await self._request(
            "PATCH", f"/api/favorites/{favorite_id}", json=changes
        )
        return favorite_from_json(payload["favorite"])

    async def delete_favorite(self, favorite_id: str) -> None:
        """Delete a favorite."""
        await self._request("DELETE", f"/api/favorites/{favorite_id}")

    async def record_history(
        self, product_name: str, price: float, date: datetime
    ) -> GroceryHistoryEntry:
        """Record a grocery history entry."""
        payload = await self._request(
            "POST",
            "/api/history",
            json={
                "productName": product_name,
                "price": price,
                "date": date.isoformat(),
            },
        )
        return history_entry_from_json(payload["entry"])

    async def merge_previous_week(self) -> list[GroceryHistoryEntry]:
        """Merge last ISO week's entries into the current week."""
        payload = await self._request("POST", "/api/history/merge-previous-week")
        return [history_entry_from_json(row) for row in payload.get("merged", [])]

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, path: str, json: dict[str, object] | None = None
    ) -> dict[str, object]:
        headers = {"Accept": "application/json"}
        if self.admin_token:
            headers["X-Admin-Token"] = self.admin_token
        response = await self.http_client.request(
            method,
            f"{self.base_url}{path}",
            json=json,
            headers=headers,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return {}
        return response.json()
