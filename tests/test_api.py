"""Tests for the favorites and history API."""

import asyncio
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from grocery_health.adapters.favorites_client import HttpxFavoritesClient
from grocery_health.api.app import create_app
from grocery_health.containers import AppContainer

HEADERS = {"X-Admin-Token": "admin-token"}


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def test_health_needs_no_token(container: AppContainer) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_api_requires_token(container: AppContainer) -> None:
    client = _client(container)

    assert client.get("/api/favorites").status_code == 401
    wrong = client.get("/api/favorites", headers={"X-Admin-Token": "nope"})
    assert wrong.status_code == 401


def test_api_open_without_configured_token(container: AppContainer) -> None:
    container.settings = container.settings.model_copy(update={"admin_token": None})

    assert _client(container).get("/api/favorites").status_code == 200


def test_favorites_endpoints(container: AppContainer) -> None:
    client = _client(container)

    created = client.post(
        "/api/favorites",
        json={"name": "Oats", "brand": "Quaker", "price": 4.5},
        headers=HEADERS,
    )
    assert created.status_code == 201
    favorite = created.json()["favorite"]
    assert favorite["name"] == "Oats"
    assert favorite["createdAt"] == favorite["updatedAt"]

    patched = client.patch(
        f"/api/favorites/{favorite['id']}", json={"price": 3.75}, headers=HEADERS
    )
    assert patched.status_code == 200
    assert patched.json()["favorite"]["price"] == 3.75

    listing = client.get("/api/favorites", headers=HEADERS).json()
    assert [item["id"] for item in listing["favorites"]] == [favorite["id"]]

    deleted = client.delete(f"/api/favorites/{favorite['id']}", headers=HEADERS)
    assert deleted.json() == {"success": True}
    assert client.get("/api/favorites", headers=HEADERS).json() == {"favorites": []}


def test_favorites_errors(container: AppContainer) -> None:
    client = _client(container)

    missing = client.patch("/api/favorites/missing", json={"price": 1}, headers=HEADERS)
    assert missing.status_code == 404
    assert "missing" in missing.json()["error"]

    negative = client.post(
        "/api/favorites", json={"name": "Oats", "price": -1}, headers=HEADERS
    )
    assert negative.status_code == 422

    blank = client.post(
        "/api/favorites", json={"name": "   ", "price": 1}, headers=HEADERS
    )
    assert blank.status_code == 422
    assert client.delete("/api/favorites/missing", headers=HEADERS).status_code == 404


def test_history_endpoints(container: AppContainer) -> None:
    client = _client(container)
    last_week = (datetime.now(tz=UTC) - timedelta(days=7)).replace(tzinfo=None)

    recorded = client.post(
        "/api/history",
        json={"productName": "Eggs", "price": 4.0, "date": last_week.isoformat()},
        headers=HEADERS,
    )
    assert recorded.status_code == 201
    entry = recorded.json()["entry"]
    assert entry["productName"] == "Eggs"
    assert entry["date"].endswith("+00:00")
    assert entry["mergedInto"] == []

    merged = client.post("/api/history/merge-previous-week", headers=HEADERS).json()
    assert [item["productName"] for item in merged["merged"]] == ["Eggs"]
    again = client.post("/api/history/merge-previous-week", headers=HEADERS).json()
    assert again == {"merged": []}

    entries = client.get("/api/history", headers=HEADERS).json()["entries"]
    assert len(entries) == 2
    assert entries[0]["date"] > entries[1]["date"]


def _favorites_client(app: FastAPI, admin_token: str | None) -> HttpxFavoritesClient:
    return HttpxFavoritesClient(
        base_url="http://testserver",
        http_client=httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
        admin_token=admin_token,
    )


def test_favorites_client_sends_admin_token(container: AppContainer) -> None:
    app = create_app(container)

    async def scenario() -> tuple[object, object]:
        client = _favorites_client(app, "admin-token")
        try:
            created = await client.create_favorite("Oats", "Quaker", 4.5)
            listed = await client.list_favorites()
        finally:
            await client.close()
        return created, listed

    created, listed = asyncio.run(scenario())

    assert listed == [created]


def test_favorites_client_without_token_is_rejected(container: AppContainer) -> None:
    app = create_app(container)

    async def scenario() -> None:
        client = _favorites_client(app, None)
        try:
            await client.list_favorites()
        finally:
            await client.close()

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.response.status_code == 401
