"""Item service layer."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from stockgenius.db.models import Category, Item, utcnow
from stockgenius.items.schemas import ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)

ORDERABLE_FIELDS = {
    "name": Item.name,
    "created_at": Item.created_at,
    "updated_at": Item.updated_at,
}


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class ItemService:
    """Service class for item operations scoped to one owner."""

    def __init__(self, db: Session, owner_id: str):
        """Initialize item service.

        Args:
            db: Database session.
            owner_id: Owner identifier from the access token.
        """
        self.db = db
        self.owner_id = owner_id

    def _query(self):
        return self.db.query(Item).filter(Item.user_id == self.owner_id)

    def _check_category(self, category_id: str | None) -> None:
        if category_id is None:
            return
        exists = (
            self.db.query(Category.id)
            .filter(Category.id == category_id, Category.user_id == self.owner_id)
            .first()
        )
        if not exists:
            raise ValueError("Category not found")

    def list_items(
        self,
        category_id: str | None = None,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[Item]:
        """List the owner's items.

        Args:
            category_id: Only return items in this category.
            order_by: Field to order by.
            descending: Reverse the ordering (newest first by default).

        Returns:
            list[Item]: Ordered items.

        Raises:
            ValueError: If the order field is not allowed.
        """
        column = ORDERABLE_FIELDS.get(order_by)
        if column is None:
            raise ValueError(f"Cannot order items by '{order_by}'")

        query = self._query()
        if category_id is not None:
            query = query.filter(Item.category_id == category_id)
        return query.order_by(column.desc() if descending else column.asc()).all()

    def get_item(self, item_id: str) -> Item | None:
        """Get an item by ID."""
        return self._query().filter(Item.id == item_id).first()

    def create_item(self, data: ItemCreate) -> Item:
        """Create an item.

        Args:
            data: Item creation data.

        Returns:
            Item: Created item.

        Raises:
            ValueError: If the category does not belong to the owner.
        """
        self._check_category(data.category_id)

        item = Item(
            user_id=self.owner_id,
            name=data.name,
            description=data.description,
            category_id=data.category_id,
            photos=list(data.photos),
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"Created item {item.id} with {len(item.photos)} photo(s)")
        return item

    def update_item(self, item_id: str, data: ItemUpdate) -> Item | None:
        """Apply a partial update to an item.

        Only fields present in the request are changed. ``updated_at`` is taken
        from the request when given, otherwise stamped now.

        Args:
            item_id: Item UUID.
            data: Update data.

        Returns:
            Item | None: Updated item or None if not found.

        Raises:
            ValueError: If the new category does not belong to the owner.
        """
        item = self.get_item(item_id)
        if not item:
            return None

        update_data = data.model_dump(exclude_unset=True)
        if "category_id" in update_data:
            self._check_category(update_data["category_id"])

        updated_at = update_data.pop("updated_at", None)
        for field, value in update_data.items():
            if field == "name" and value is None:
                continue
            setattr(item, field, value)
        item.updated_at = _to_naive_utc(updated_at) if updated_at else utcnow()

        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: str) -> bool:
        """Delete an item.

        Returns:
            bool: True if deleted, False if not found.
        """
        item = self.get_item(item_id)
        if not item:
            return False

        self.db.delete(item)
        self.db.commit()
        return True

    def delete_items_in_category(self, category_id: str) -> int:
        """Delete every item in a category.

        Args:
            category_id: Category UUID.

        Returns:
            int: Number of items deleted.
        """
        deleted = (
            self._query()
            .filter(Item.category_id == category_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Deleted {deleted} item(s) in category {category_id}")
        return deleted


def get_item_service(db: Session, owner_id: str) -> ItemService:
    """Factory function for ItemService."""
    return ItemService(db, owner_id)
