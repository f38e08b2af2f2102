"""Tests for categories API endpoints."""

import pytest

from budgetplan.config import settings

OTHER_ORG_ID = settings.default_organization_id + 1


class TestCategoriesAPI:
    """Test categories CRUD endpoints."""

    def test_list_categories(self, client, expense_category, income_category):
        """Should return categories."""
        response = client.get("/api/v1/categories")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {c["name"] for c in data["items"]} == {"Groceries", "Salary"}

    def test_filter_by_type(self, client, expense_category, income_category):
        response = client.get("/api/v1/categories", params={"category_type": "income"})
        assert [c["name"] for c in response.json()["items"]] == ["Salary"]

    def test_create_category(self, client):
        """Should create a new category."""
        response = client.post("/api/v1/categories", json={
            "name": "New Category",
            "color": "#ff0000",
            "icon": "star"
        })
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "New Category"
        assert data["category_type"] == "expense"
        assert data["is_system"] is False

    def test_create_subcategory(self, client, expense_category):
        """Should create a subcategory nested under its parent."""
        response = client.post("/api/v1/categories", json={
            "name": "Bakery",
            "parent_id": expense_category.id,
            "color": "#00ff00"
        })
        assert response.status_code == 201
        assert response.json()["parent_id"] == expense_category.id

        tree = client.get("/api/v1/categories").json()
        assert len(tree["items"]) == 1
        assert tree["items"][0]["children"][0]["name"] == "Bakery"

    def test_subcategory_type_must_match_parent(self, client, income_category):
        response = client.post("/api/v1/categories", json={
            "name": "Bonus",
            "parent_id": income_category.id,
            "category_type": "expense"
        })
        assert response.status_code == 422

    def test_update_category(self, client, expense_category):
        response = client.patch(f"/api/v1/categories/{expense_category.id}", json={"name": "Food"})
        assert response.status_code == 200
        assert response.json()["name"] == "Food"

    def test_other_organization_cannot_see_category(self, client, expense_category):
        response = client.get(
            f"/api/v1/categories/{expense_category.id}",
            headers={"X-Organization-Id": str(OTHER_ORG_ID)}
        )
        assert response.status_code == 404
        assert "not found" in response.json()["detail"]
