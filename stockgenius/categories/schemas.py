"""Pydantic schemas for categories."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CategoryCreate(BaseModel):
    """Schema for creating a category."""

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        """Trim surrounding whitespace before length checks."""
        return value.strip() if isinstance(value, str) else value


class CategoryUpdate(BaseModel):
    """Schema for renaming a category."""

    name: str | None = Field(None, min_length=1, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        """Trim surrounding whitespace before length checks."""
        return value.strip() if isinstance(value, str) else value


class CategoryResponse(BaseModel):
    """Schema for category response."""

    id: str
    name: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
