"""Integration tests for the product catalog API (/api/v1/products/)."""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient

from modules.catalog.models import Product

pytestmark = pytest.mark.integration

PRODUCTS_URL = "/api/v1/products/"


@pytest.fixture()
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture()
def product_payload():
    return {
        "name": "Kurta",
        "category": "ethnic",
        "allowed_payment_methods": ["card", "upi"],
        "variants": [
            {
                "color": "Indigo",
                "sizes": [
                    {"size": "S", "stock": 4, "price": "899.00"},
                    {"size": "M", "stock": 2, "price": "949.00"},
                ],
                "images": [{"url": "https://cdn.example.com/kurta.jpg"}],
            }
        ],
    }


class TestBrowsing:
    def test_anonymous_list(self, api_client, make_listing):
        make_listing("Linen Shirt")
        make_listing("Denim Jacket")

        response = api_client.get(PRODUCTS_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["count"] == 2
        assert {p["name"] for p in data["results"]} == {"Linen Shirt", "Denim Jacket"}

    def test_page_size_via_limit(self, api_client, make_listing):
        for idx in range(3):
            make_listing(f"Shirt {idx}")

        response = api_client.get(f"{PRODUCTS_URL}?limit=2")

        data = response.json()
        assert len(data["results"]) == 2
        assert data["next"] is not None

    def test_search(self, api_client, make_listing):
        make_listing("Linen Shirt")
        make_listing("Denim Jacket")

        response = api_client.get(f"{PRODUCTS_URL}?search=denim")

        assert [p["name"] for p in response.json()["results"]] == ["Denim Jacket"]

    def test_anonymous_retrieve(self, api_client, listing):
        response = api_client.get(f"{PRODUCTS_URL}{listing.product.id}/")

        assert response.status_code == 200
        product = response.json()["product"]
        assert product["variants"][0]["sizes"][0]["stock"] == 5

    def test_unknown_product(self, api_client):
        response = api_client.get(f"{PRODUCTS_URL}not-a-uuid/")
        assert response.status_code == 404
        assert response.json()["code"] == "PRODUCT_NOT_FOUND"


class TestManagement:
    def test_seller_creates_product(self, client_for, seller, product_payload):
        response = client_for(seller).post(PRODUCTS_URL, product_payload, format="json")

        assert response.status_code == 201
        product = response.json()["product"]
        assert product["owner_id"] == str(seller.id)
        assert sorted(product["allowed_payment_methods"]) == ["card", "upi"]
        assert len(product["variants"][0]["sizes"]) == 2

    def test_shopper_cannot_create(self, client_for, shopper, product_payload):
        response = client_for(shopper).post(PRODUCTS_URL, product_payload, format="json")

        assert response.status_code == 403
        assert not Product.objects.exists()

    def test_invalid_payload(self, client_for, seller, product_payload):
        payload = {**product_payload, "variants": []}
        response = client_for(seller).post(PRODUCTS_URL, payload, format="json")

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_PRODUCT_DATA"
        assert data["errors"][0]["field"] == "variants"

    def test_owner_updates_size(self, client_for, seller, listing):
        response = client_for(seller).patch(
            f"{PRODUCTS_URL}sizes/{listing.size.id}/",
            {"stock": 12, "price": "120.00"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["size"]["stock"] == 12
        listing.size.refresh_from_db()
        assert listing.size.stock == 12

    def test_other_seller_cannot_update_size(self, client_for, make_user, listing):
        rival = make_user("rival", role="owner")
        response = client_for(rival).patch(
            f"{PRODUCTS_URL}sizes/{listing.size.id}/", {"stock": 0}, format="json"
        )

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_PRODUCT_OWNER"

    def test_owner_deletes_product(self, client_for, seller, listing):
        response = client_for(seller).delete(f"{PRODUCTS_URL}{listing.product.id}/")

        assert response.status_code == 200
        assert not Product.objects.filter(id=listing.product.id).exists()
