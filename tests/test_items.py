"""
Component tests for the item catalog routes.
"""
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from tests.conftest import auth


class TestCreateItem:

    def test_create_item(self, test_client: TestClient, register):
        user, token = register()

        response = test_client.post(
            "/items",
            json={"name": "  Smartphone ", "description": "128GB", "category": "Electronics", "price": 299.99},
            headers=auth(token),
        )

        assert response.status_code == 201
        item = response.json()
        assert item["name"] == "Smartphone"
        assert item["price"] == 299.99
        assert item["owner"] == user["id"]
        assert "id" in item and "created_at" in item

    def test_only_name_and_price_are_required(self, test_client: TestClient, register):
        _, token = register()

        response = test_client.post("/items", json={"name": "Pen", "price": 2}, headers=auth(token))

        assert response.status_code == 201
        assert response.json()["description"] == ""

    def test_missing_price_is_rejected(self, test_client: TestClient, register):
        _, token = register()

        response = test_client.post("/items", json={"name": "Pen"}, headers=auth(token))

        assert response.status_code == 400
        assert "price" in response.json()["fields"]

    def test_negative_price_is_rejected(self, test_client: TestClient, register):
        _, token = register()

        response = test_client.post("/items", json={"name": "Pen", "price": -1}, headers=auth(token))

        assert response.status_code == 400

    def test_create_requires_authentication(self, test_client: TestClient):
        response = test_client.post("/items", json={"name": "Pen", "price": 2})

        assert response.status_code == 401


class TestReadItems:

    def test_list_items_needs_no_authentication(self, test_client: TestClient, register, make_item):
        _, john = register()
        _, jane = register(name="jane", email="jane@x.com")
        make_item(john, name="Pen")
        make_item(jane, name="Book")

        response = test_client.get("/items")

        assert response.status_code == 200
        assert sorted(i["name"] for i in response.json()) == ["Book", "Pen"]

    def test_get_item(self, test_client: TestClient, register, make_item):
        _, token = register()
        item = make_item(token)

        response = test_client.get(f"/items/{item['id']}", headers=auth(token))

        assert response.status_code == 200
        assert response.json() == item

    def test_get_missing_item_returns_404(self, test_client: TestClient, register):
        _, token = register()

        response = test_client.get(f"/items/{ObjectId()}", headers=auth(token))

        assert response.status_code == 404
        assert response.json() == {"error": "Item not found"}

    def test_get_with_malformed_id_returns_400(self, test_client: TestClient, register):
        _, token = register()

        response = test_client.get("/items/not-an-id", headers=auth(token))

        assert response.status_code == 400


class TestUpdateItem:

    def test_patch_whitelisted_fields(self, test_client: TestClient, register, make_item):
        _, token = register()
        item = make_item(token)

        response = test_client.patch(f"/items/{item['id']}", json={"price": 10, "category": "Sale"}, headers=auth(token))

        assert response.status_code == 200
        assert response.json()["price"] == 10
        assert response.json()["category"] == "Sale"
        assert response.json()["name"] == item["name"]

    def test_disallowed_key_rejects_whole_patch(self, test_client: TestClient, register, make_item):
        _, token = register()
        item = make_item(token, price=299.99)

        response = test_client.patch(f"/items/{item['id']}", json={"price": 10, "hacked": True}, headers=auth(token))

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid updates"
        # nothing was applied
        assert test_client.get(f"/items/{item['id']}", headers=auth(token)).json()["price"] == 299.99

    def test_patch_missing_item_returns_404(self, test_client: TestClient, register):
        _, token = register()

        response = test_client.patch(f"/items/{ObjectId()}", json={"price": 10}, headers=auth(token))

        assert response.status_code == 404

    def test_any_authenticated_user_may_update(self, test_client: TestClient, register, make_item):
        _, owner = register()
        _, other = register(name="jane", email="jane@x.com")
        item = make_item(owner)

        response = test_client.patch(f"/items/{item['id']}", json={"name": "Renamed"}, headers=auth(other))

        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"


class TestDeleteItem:

    def test_delete_returns_deleted_item(self, test_client: TestClient, register, make_item):
        _, token = register()
        item = make_item(token)

        response = test_client.delete(f"/items/{item['id']}", headers=auth(token))

        assert response.status_code == 200
        assert response.json()["id"] == item["id"]
        assert test_client.get(f"/items/{item['id']}", headers=auth(token)).status_code == 404

    def test_delete_missing_item_returns_404(self, test_client: TestClient, register):
        _, token = register()

        response = test_client.delete(f"/items/{ObjectId()}", headers=auth(token))

        assert response.status_code == 404


def test_unexpected_failure_is_a_500_without_details(app, monkeypatch):
    def boom():
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(app.state.catalog, "list_all", boom)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/items")

    assert response.status_code == 500
    assert response.json() == {"error": "Something went wrong"}


class TestNonFinitePrice:
    """Infinity and NaN parse as JSON numbers but are not valid prices."""

    @staticmethod
    def _raw(token):
        return {**auth(token), "Content-Type": "application/json"}

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
    def test_create_rejects_non_finite_price_without_storing(self, test_client: TestClient, register, literal):
        _, token = register()

        response = test_client.post("/items", content=f'{{"name": "Pen", "price": {literal}}}', headers=self._raw(token))

        assert response.status_code == 400
        assert "price" in response.json()["fields"]
        assert test_client.get("/items").json() == []

    def test_patch_rejects_non_finite_price(self, test_client: TestClient, register, make_item):
        _, token = register()
        item = make_item(token, price=5)

        response = test_client.patch(f"/items/{item['id']}", content='{"price": Infinity}', headers=self._raw(token))

        assert response.status_code == 400
        assert test_client.get(f"/items/{item['id']}", headers=auth(token)).json()["price"] == 5
