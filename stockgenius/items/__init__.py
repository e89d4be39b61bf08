"""Stock items module."""

from stockgenius.items.router import router
from stockgenius.items.schemas import ItemCreate, ItemResponse, ItemUpdate
from stockgenius.items.service import ItemService

__all__ = [
    "router",
    "ItemService",
    "ItemCreate",
    "ItemUpdate",
    "ItemResponse",
]
