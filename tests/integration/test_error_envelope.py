"""Integration tests for the standard error envelope."""

from unittest.mock import patch

import pytest
from rest_framework.test import APIClient

pytestmark = pytest.mark.integration


@pytest.fixture()
def auth_client(shopper):
    """APIClient with a force-authenticated shopper."""
    client = APIClient()
    client.force_authenticate(user=shopper)
    return client


class TestErrorEnvelope:
    def test_auth_error(self, api_client):
        response = api_client.get("/api/v1/orders/")
        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "NOT_AUTHENTICATED"
        assert data["message"]

    def test_malformed_json(self, auth_client):
        response = auth_client.post(
            "/api/v1/orders/", data="{", content_type="application/json"
        )
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "PARSE_ERROR"

    def test_method_not_allowed(self, auth_client):
        response = auth_client.put("/api/v1/cart/clear/")
        assert response.status_code == 405
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"

    def test_domain_error_extra_fields(self, auth_client):
        response = auth_client.post(
            "/api/v1/coupons/validate/", {"order_amount": "-5"}, format="json"
        )
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_COUPON_DATA"
        assert {e["field"] for e in data["errors"]} == {"coupon_code", "order_amount"}

    def test_unhandled_error_is_generic(self, api_client, settings):
        settings.DEBUG = False
        with patch(
            "modules.catalog.services.CatalogService.list_products",
            side_effect=RuntimeError("db exploded"),
        ):
            response = api_client.get("/api/v1/products/")

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
        }
