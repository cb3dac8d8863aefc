"""Favorites and grocery history endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from grocery_health.adapters.codecs import favorite_to_json, history_entry_to_json
from grocery_health.api.models import (  # noqa: TC001
    FavoriteCreate,
    FavoriteUpdate,
    HistoryCreate,
)

if TYPE_CHECKING:
    from grocery_health.containers import AppContainer

_logger = logging.getLogger(__name__)


def _container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_token(
    request: Request, x_admin_token: str | None = Header(default=None)
) -> None:
    """Check the admin token when one is configured."""
    expected = _container(request).settings.admin_token
    if expected and x_admin_token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


router = APIRouter(prefix="/api", dependencies=[Depends(require_token)])


@router.get("/favorites")
def list_favorites(request: Request) -> dict[str, object]:
    """Return favorites, newest first."""
    favorites = _container(request).favorites_service.list_favorites()
    return {"favorites": [favorite_to_json(item) for item in favorites]}


@router.post("/favorites", status_code=status.HTTP_201_CREATED)
def create_favorite(body: FavoriteCreate, request: Request) -> dict[str, object]:
    """Save a favorite."""
    favorite = _container(request).favorites_service.create(
        name=body.name, brand=body.brand, price=body.price
    )
    _logger.info("Created favorite %s", favorite.id)
    return {"favorite": favorite_to_json(favorite)}


@router.patch("/favorites/{favorite_id}")
def update_favorite(
    favorite_id: str, body: FavoriteUpdate, request: Request
) -> dict[str, object]:
    """Change a favorite's name, brand or price."""
    favorite = _container(request).favorites_service.update(
        favorite_id, name=body.name, brand=body.brand, price=body.price
    )
    return {"favorite": favorite_to_json(favorite)}


@router.delete("/favorites/{favorite_id}")
def delete_favorite(favorite_id: str, request: Request) -> dict[str, bool]:
    """Remove a favorite."""
    _container(request).favorites_service.delete(favorite_id)
    return {"success": True}


@router.get("/history")
def list_history(request: Request) -> dict[str, object]:
    """Return grocery history, newest first."""
    entries = _container(request).grocery_history_service.list_history()
    return {"entries": [history_entry_to_json(entry) for entry in entries]}


@router.post("/history", status_code=status.HTTP_201_CREATED)
def record_history(body: HistoryCreate, request: Request) -> dict[str, object]:
    """Record a purchase."""
    entry = _container(request).grocery_history_service.record(
        body.product_name, body.price, body.date
    )
    return {"entry": history_entry_to_json(entry)}


@router.post("/history/merge-previous-week")
def merge_previous_week(request: Request) -> dict[str, object]:
    """Copy last week's purchases into this week."""
    merged = _container(request).grocery_history_service.merge_previous_week()
    return {"merged": [history_entry_to_json(entry) for entry in merged]}
