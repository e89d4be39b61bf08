"""Database module."""

from stockgenius.db.database import SessionLocal, engine, init_db
from stockgenius.db.models import Base, Category, Item

__all__ = [
    "SessionLocal",
    "engine",
    "init_db",
    "Base",
    "Category",
    "Item",
]
