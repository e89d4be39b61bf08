"""Category service layer."""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockgenius.categories.schemas import CategoryCreate, CategoryUpdate
from stockgenius.db.models import Category

logger = logging.getLogger(__name__)

# Columns a client may order by
ORDERABLE_FIELDS = {
    "name": Category.name,
    "created_at": Category.created_at,
    "updated_at": Category.updated_at,
}


class CategoryService:
    """Service class for category operations scoped to one owner."""

    def __init__(self, db: Session, owner_id: str):
        """Initialize category service.

        Args:
            db: Database session.
            owner_id: Owner identifier from the access token.
        """
        self.db = db
        self.owner_id = owner_id

    def _query(self):
        return self.db.query(Category).filter(Category.user_id == self.owner_id)

    def _find_by_name(self, name: str, exclude_id: str | None = None) -> Category | None:
        query = self._query().filter(func.lower(Category.name) == name.lower())
        if exclude_id:
            query = query.filter(Category.id != exclude_id)
        return query.first()

    def list_categories(self, order_by: str = "name", descending: bool = False) -> list[Category]:
        """List the owner's categories.

        Args:
            order_by: Field to order by.
            descending: Reverse the ordering.

        Returns:
            list[Category]: Ordered categories.

        Raises:
            ValueError: If the order field is not allowed.
        """
        column = ORDERABLE_FIELDS.get(order_by)
        if column is None:
            raise ValueError(f"Cannot order categories by '{order_by}'")
        return self._query().order_by(column.desc() if descending else column.asc()).all()

    def get_category(self, category_id: str) -> Category | None:
        """Get a category by ID.

        Args:
            category_id: Category UUID.

        Returns:
            Category | None: Category if found.
        """
        return self._query().filter(Category.id == category_id).first()

    def create_category(self, data: CategoryCreate) -> Category:
        """Create a category.

        Args:
            data: Category creation data.

        Returns:
            Category: Created category.

        Raises:
            ValueError: If a category with the same name (ignoring case) exists.
        """
        if self._find_by_name(data.name):
            raise ValueError(f"Category '{data.name}' already exists")

        category = Category(user_id=self.owner_id, name=data.name)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info(f"Created category {category.id} for owner {self.owner_id}")
        return category

    def create_categories(self, data: list[CategoryCreate]) -> list[Category]:
        """Create several categories in one transaction.

        Names already present, or repeated within the batch, are skipped.

        Args:
            data: Category creation data.

        Returns:
            list[Category]: Created categories in input order.
        """
        seen = set()
        created = []
        for entry in data:
            key = entry.name.lower()
            if key in seen or self._find_by_name(entry.name):
                continue
            seen.add(key)
            category = Category(user_id=self.owner_id, name=entry.name)
            self.db.add(category)
            created.append(category)

        self.db.commit()
        for category in created:
            self.db.refresh(category)
        return created

    def update_category(self, category_id: str, data: CategoryUpdate) -> Category | None:
        """Rename a category.

        Args:
            category_id: Category UUID.
            data: Update data.

        Returns:
            Category | None: Updated category or None if not found.

        Raises:
            ValueError: If the new name clashes with another category.
        """
        category = self.get_category(category_id)
        if not category:
            return None

        if data.name and data.name.lower() != category.name.lower():
            if self._find_by_name(data.name, exclude_id=category_id):
                raise ValueError(f"Category '{data.name}' already exists")
        if data.name:
            category.name = data.name

        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: str) -> bool:
        """Delete a category and every item in it.

        Args:
            category_id: Category UUID.

        Returns:
            bool: True if deleted, False if not found.
        """
        category = self.get_category(category_id)
        if not category:
            return False

        self.db.delete(category)
        self.db.commit()
        logger.info(f"Deleted category {category_id} for owner {self.owner_id}")
        return True


def get_category_service(db: Session, owner_id: str) -> CategoryService:
    """Factory function for CategoryService.

    Args:
        db: Database session.
        owner_id: Owner identifier.

    Returns:
        CategoryService: Service instance.
    """
    return CategoryService(db, owner_id)
