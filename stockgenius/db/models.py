"""SQLAlchemy database models."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.mysql import CHAR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys.

    Returns:
        str: UUID as 36-character string.
    """
    return str(uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime with microsecond precision."""
    return datetime.now(UTC).replace(tzinfo=None)


class Category(Base):
    """Category grouping stock items for one owner.

    Attributes:
        id: Primary key UUID.
        user_id: Owner identifier (token subject).
        name: Display name, unique per owner ignoring case.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "categories"
    __table_args__ = (Index("ix_categories_user_id", "user_id"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    items: Mapped[list["Item"]] = relationship(
        "Item",
        back_populates="category",
        cascade="all, delete-orphan",
    )


class Item(Base):
    """Stock item with optional category and photos.

    Attributes:
        id: Primary key UUID.
        user_id: Owner identifier (token subject).
        name: Item name.
        description: Optional free text.
        category_id: Optional FK to category (deleted with it).
        photos: Ordered list of data URLs or remote image URLs.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "items"
    __table_args__ = (
        Index("ix_items_user_id", "user_id"),
        Index("ix_items_category_id", "category_id"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=True
    )
    photos: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    category: Mapped["Category | None"] = relationship("Category", back_populates="items")
