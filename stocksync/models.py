"""Pydantic models for records mirrored from the server."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class Category(BaseModel):
    """Category record as returned by the server."""

    id: str
    name: str
    user_id: str
    created_at: datetime
    updated_at: datetime


class StockItem(BaseModel):
    """Stock item record as returned by the server."""

    id: str
    name: str
    description: str | None = None
    category_id: str | None = None
    user_id: str
    photos: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class CategoryDraft(BaseModel):
    """Validated input for a new category."""

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class ItemDraft(BaseModel):
    """Validated input for a new item. A category is required."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category_id: str = Field(..., min_length=1)
    photos: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class ItemChanges(BaseModel):
    """Validated partial update for an item."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category_id: str | None = None
    photos: list[str] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value
