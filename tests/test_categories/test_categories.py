"""Tests for the categories API."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from stockgenius.categories.schemas import CategoryCreate
from stockgenius.db.models import Category, Item

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


class TestCategorySchemas:
    """Tests for category Pydantic schemas."""

    def test_name_is_stripped(self):
        """Surrounding whitespace is removed."""
        assert CategoryCreate(name="  Cables ").name == "Cables"

    def test_blank_name_rejected(self):
        """Whitespace-only names are invalid."""
        with pytest.raises(ValueError):
            CategoryCreate(name="   ")


class TestListCategories:
    """Tests for listing categories."""

    def test_list_empty(self, authenticated_client: TestClient):
        """Test listing categories when none exist."""
        response = authenticated_client.get("/api/categories")

        assert response.status_code == 200
        assert response.json() == []

    def test_list_ordered_by_name(self, authenticated_client: TestClient, db: Session):
        """Categories come back in name order by default."""
        for name in ["Tools", "Cables", "Motors"]:
            db.add(Category(user_id=OWNER_ID, name=name))
        db.commit()

        response = authenticated_client.get("/api/categories")

        assert [c["name"] for c in response.json()] == ["Cables", "Motors", "Tools"]

    def test_list_descending(self, authenticated_client: TestClient, db: Session):
        """Ordering can be reversed."""
        for name in ["Tools", "Cables"]:
            db.add(Category(user_id=OWNER_ID, name=name))
        db.commit()

        response = authenticated_client.get(
            "/api/categories", params={"order_by": "name", "descending": "true"}
        )

        assert [c["name"] for c in response.json()] == ["Tools", "Cables"]

    def test_list_unknown_order_field(self, authenticated_client: TestClient):
        """Ordering by an unknown field is a client error."""
        response = authenticated_client.get("/api/categories", params={"order_by": "user_id"})
        assert response.status_code == 400

    def test_list_scoped_to_owner(self, authenticated_client: TestClient, db: Session):
        """Other owners' categories are not visible."""
        db.add(Category(user_id=OTHER_OWNER_ID, name="Hidden"))
        db.commit()

        response = authenticated_client.get("/api/categories")
        assert response.json() == []


class TestCreateCategory:
    """Tests for creating categories."""

    def test_create(self, authenticated_client: TestClient):
        """Test creating a category."""
        response = authenticated_client.post("/api/categories", json={"name": "Cables"})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Cables"
        assert data["user_id"] == OWNER_ID
        assert data["id"]

    def test_create_duplicate_ignores_case(
        self, authenticated_client: TestClient, test_category: Category
    ):
        """Names are unique per owner regardless of case."""
        response = authenticated_client.post("/api/categories", json={"name": "FASTENERS"})

        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    def test_same_name_other_owner(self, authenticated_client: TestClient, db: Session):
        """Another owner's category does not block the name."""
        db.add(Category(user_id=OTHER_OWNER_ID, name="Cables"))
        db.commit()

        response = authenticated_client.post("/api/categories", json={"name": "Cables"})
        assert response.status_code == 201

    def test_create_empty_name(self, authenticated_client: TestClient):
        """Empty names fail validation."""
        response = authenticated_client.post("/api/categories", json={"name": ""})
        assert response.status_code == 422

    def test_bulk_create_skips_existing(
        self, authenticated_client: TestClient, test_category: Category
    ):
        """Bulk creation skips names that already exist or repeat."""
        response = authenticated_client.post(
            "/api/categories/bulk",
            json=[{"name": "RF"}, {"name": "fasteners"}, {"name": "rf"}, {"name": "HFO"}],
        )

        assert response.status_code == 201
        assert [c["name"] for c in response.json()] == ["RF", "HFO"]


class TestUpdateCategory:
    """Tests for renaming categories."""

    def test_rename(self, authenticated_client: TestClient, test_category: Category):
        """Test renaming a category."""
        response = authenticated_client.patch(
            f"/api/categories/{test_category.id}", json={"name": "Screws"}
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Screws"

    def test_rename_case_only(self, authenticated_client: TestClient, test_category: Category):
        """Changing only the case of a name is allowed."""
        response = authenticated_client.patch(
            f"/api/categories/{test_category.id}", json={"name": "FASTENERS"}
        )

        assert response.status_code == 200
        assert response.json()["name"] == "FASTENERS"

    def test_rename_conflict(
        self, authenticated_client: TestClient, test_category: Category, db: Session
    ):
        """Renaming onto another category's name fails."""
        db.add(Category(user_id=OWNER_ID, name="Cables"))
        db.commit()

        response = authenticated_client.patch(
            f"/api/categories/{test_category.id}", json={"name": "cables"}
        )
        assert response.status_code == 400

    def test_rename_not_found(self, authenticated_client: TestClient):
        """Test renaming a nonexistent category."""
        response = authenticated_client.patch("/api/categories/missing", json={"name": "X"})
        assert response.status_code == 404


class TestDeleteCategory:
    """Tests for deleting categories."""

    def test_delete_cascades_items(
        self,
        authenticated_client: TestClient,
        test_category: Category,
        test_item: Item,
        db: Session,
    ):
        """Deleting a category removes its items."""
        response = authenticated_client.delete(f"/api/categories/{test_category.id}")

        assert response.status_code == 204
        db.expire_all()
        assert db.query(Category).count() == 0
        assert db.query(Item).count() == 0

    def test_delete_not_found(self, authenticated_client: TestClient):
        """Test deleting a nonexistent category."""
        response = authenticated_client.delete("/api/categories/missing")
        assert response.status_code == 404

    def test_delete_other_owner(self, authenticated_client: TestClient, db: Session):
        """Another owner's category cannot be deleted."""
        category = Category(user_id=OTHER_OWNER_ID, name="Theirs")
        db.add(category)
        db.commit()

        response = authenticated_client.delete(f"/api/categories/{category.id}")
        assert response.status_code == 404
