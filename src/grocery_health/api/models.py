"""Request bodies for the favorites and history API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FavoriteCreate(BaseModel):
    """New favorite payload."""

    name: str = Field(min_length=1)
    brand: str = ""
    price: float = Field(ge=0, allow_inf_nan=False)


class FavoriteUpdate(BaseModel):
    """Partial favorite update."""

    name: str | None = Field(default=None, min_length=1)
    brand: str | None = None
    price: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class HistoryCreate(BaseModel):
    """Grocery history entry payload."""

    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(alias="productName", min_length=1)
    price: float = Field(ge=0, allow_inf_nan=False)
    date: datetime | None = None
