"""Pydantic schemas for stock items."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ItemBase(BaseModel):
    """Base schema for items."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category_id: str | None = None
    # Data URLs or externally hosted image URLs, in display order
    photos: list[str] = Field(default_factory=list)


class ItemCreate(ItemBase):
    """Schema for creating an item."""

    pass


class ItemUpdate(BaseModel):
    """Schema for a partial item update."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category_id: str | None = None
    photos: list[str] | None = None
    updated_at: datetime | None = None


class ItemResponse(ItemBase):
    """Schema for item response."""

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BulkDeleteResponse(BaseModel):
    """Schema for delete-by-filter response."""

    deleted: int
