"""Categories module."""

from stockgenius.categories.router import router
from stockgenius.categories.schemas import CategoryCreate, CategoryResponse, CategoryUpdate
from stockgenius.categories.service import CategoryService

__all__ = [
    "router",
    "CategoryService",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
]
