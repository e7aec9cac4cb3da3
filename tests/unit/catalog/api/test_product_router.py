"""HTTP tests for the /products endpoints."""

import pytest
from fastapi.testclient import TestClient

from src.catalog.api.http.app import create_app
from src.catalog.core.storage.record_storage import InMemoryRecordStorage, YamlRecordStorage
from src.catalog.entities.service.product import ProductRepository

VALID_PARAMS = {
    "sku": "ABCD-E123",
    "name": "Widget",
    "description": "A widget",
    "price_amount": "19.99",
    "price_currency": "USD",
    "tax_amount": "1.50",
    "tax_currency": "USD",
    "stock": 5,
}


@pytest.fixture
def saved_product(repository, make_product):
    product = make_product()
    repository.save(product)
    return product


class TestListProducts:
    def test_empty(self, client):
        response = client.get("/products")

        assert response.status_code == 200
        assert response.json() == []

    def test_lists_in_id_order(self, client, repository, make_product):
        for name in ("First", "Second"):
            repository.save(make_product(name=name))

        response = client.get("/products")

        assert response.status_code == 200
        assert [item["name"] for item in response.json()] == ["First", "Second"]
        assert [item["id"] for item in response.json()] == [1, 2]


class TestShowProduct:
    def test_found(self, client, saved_product):
        response = client.get(f"/products/{saved_product.id}")

        assert response.status_code == 200
        assert response.json() == {
            "id": 1,
            "sku": "PROD-A001",
            "name": "Product A",
            "description": "Description for Product A",
            "price_amount": 59.99,
            "price_currency": "USD",
            "tax_amount": 6.0,
            "tax_currency": "USD",
            "stock": 40,
        }

    @pytest.mark.parametrize("product_id", ["999", "abc"])
    def test_not_found(self, client, product_id):
        response = client.get(f"/products/{product_id}")

        assert response.status_code == 404
        assert response.json() == {"errors": ["Record not found"]}


class TestCreateProduct:
    def test_created(self, client, repository):
        response = client.post("/products", json={"product": VALID_PARAMS})

        assert response.status_code == 201
        assert response.headers["location"] == "/products/1"
        body = response.json()
        assert body["id"] == 1
        assert body["price_amount"] == 19.99
        assert repository.find(1).name == "Widget"

    def test_unknown_attributes_are_dropped(self, client, repository):
        params = {**VALID_PARAMS, "colour": "red", "id": 77}

        response = client.post("/products", json={"product": params})

        assert response.status_code == 201
        assert response.json()["id"] == 1

    def test_invalid(self, client, repository):
        params = {**VALID_PARAMS, "name": "", "sku": "abcd-1234", "stock": 0}

        response = client.post("/products", json={"product": params})

        assert response.status_code == 422
        assert response.json() == {
            "errors": {
                "name": ["can't be blank"],
                "sku": ["is invalid"],
                "stock": ["must be greater than 0"],
            }
        }
        assert repository.count() == 0

    def test_not_a_number(self, client):
        params = {**VALID_PARAMS, "price_amount": "free"}

        response = client.post("/products", json={"product": params})

        assert response.status_code == 422
        assert response.json() == {"errors": {"price_amount": ["is not a number"]}}

    @pytest.mark.parametrize("amount", [1e30, "1e26"])
    def test_amount_out_of_range(self, client, repository, amount):
        params = {**VALID_PARAMS, "price_amount": amount}

        response = client.post("/products", json={"product": params})

        assert response.status_code == 422
        assert response.json() == {"errors": {"price_amount": ["is not a number"]}}
        assert repository.count() == 0

    @pytest.mark.parametrize(
        "body",
        [{}, {"product": {}}, {"product": "widget"}, {"item": VALID_PARAMS}, [VALID_PARAMS]],
    )
    def test_missing_product_param(self, client, body):
        response = client.post("/products", json=body)

        assert response.status_code == 400

    def test_without_body(self, client):
        response = client.post("/products")

        assert response.status_code == 400


class TestUpdateProduct:
    @pytest.mark.parametrize("method", ["patch", "put"])
    def test_updated(self, client, repository, saved_product, method):
        response = client.request(
            method.upper(), f"/products/{saved_product.id}", json={"product": {"stock": 12}}
        )

        assert response.status_code == 200
        assert response.json()["stock"] == 12
        assert response.json()["name"] == "Product A"
        assert repository.find(saved_product.id).stock == 12

    def test_invalid_leaves_record_unchanged(self, client, repository, saved_product):
        response = client.patch(
            f"/products/{saved_product.id}", json={"product": {"price_amount": -1}}
        )

        assert response.status_code == 422
        assert response.json() == {"errors": {"price_amount": ["must be greater than 0"]}}
        assert repository.find(saved_product.id) == saved_product

    def test_amount_out_of_range(self, client, repository, saved_product):
        response = client.put(
            f"/products/{saved_product.id}", json={"product": {"tax_amount": 1e30}}
        )

        assert response.status_code == 422
        assert response.json() == {"errors": {"tax_amount": ["is not a number"]}}
        assert repository.find(saved_product.id).tax_amount == saved_product.tax_amount

    def test_not_found(self, client):
        response = client.patch("/products/5", json={"product": {"stock": 1}})

        assert response.status_code == 404
        assert response.json() == {"errors": ["Record not found"]}

    def test_missing_product_param(self, client, saved_product):
        response = client.patch(f"/products/{saved_product.id}", json={"stock": 1})

        assert response.status_code == 400


class TestDeleteProduct:
    def test_deleted(self, client, repository, saved_product):
        response = client.delete(f"/products/{saved_product.id}")

        assert response.status_code == 204
        assert response.content == b""
        assert repository.count() == 0

    def test_not_found(self, client):
        response = client.delete("/products/1")

        assert response.status_code == 404


class TestStoreErrors:
    def test_corrupt_store(self, client, write_store):
        write_store("invalid: [unterminated\n")

        response = client.get("/products")

        assert response.status_code == 500
        assert response.json() == {"errors": ["Record store is corrupt"]}

    def test_missing_store_that_must_exist(self, store_path):
        repository = ProductRepository(YamlRecordStorage(store_path, require_existing=True))
        client = TestClient(create_app(repository))

        response = client.get("/products")

        assert response.status_code == 503
        assert response.json() == {"errors": ["Record store unavailable"]}


class TestMiddleware:
    def test_request_id_is_echoed(self, client):
        response = client.get("/products", headers={"X-Request-ID": "abc-123"})

        assert response.headers["x-request-id"] == "abc-123"

    def test_security_headers(self, client):
        response = client.get("/products")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"


def test_in_memory_repository():
    client = TestClient(create_app(ProductRepository(InMemoryRecordStorage())))

    created = client.post("/products", json={"product": VALID_PARAMS})
    listed = client.get("/products")

    assert created.status_code == 201
    assert [item["sku"] for item in listed.json()] == ["ABCD-E123"]
