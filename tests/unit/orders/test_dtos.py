"""Unit tests for Order DTOs.

Covers:
- CheckoutDTO: camelCase aliases, code and payment method normalisation,
  frozen immutability.
- ShippingAddressDTO: completeness check.
- DashboardQueryDTO: defaults, sort direction, blank status.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.dtos import CheckoutDTO, DashboardQueryDTO, ShippingAddressDTO

pytestmark = pytest.mark.unit


class TestCheckoutDTO:
    def test_reads_camel_case_payload(self, checkout_payload):
        line_id = uuid4()
        dto = CheckoutDTO.model_validate(
            {**checkout_payload, "couponCode": " save10 ", "quantities": {str(line_id): 2}}
        )

        assert dto.shipping_address.postal_code == "560001"
        assert dto.payment_method == "cod"
        assert dto.coupon_code == "SAVE10"
        assert dto.quantities == {line_id: 2}

    def test_accepts_field_names(self):
        dto = CheckoutDTO(payment_method=" UPI ", coupon_code="")
        assert dto.payment_method == "upi"
        assert dto.coupon_code is None

    def test_missing_pieces_are_left_to_the_service(self):
        dto = CheckoutDTO.model_validate({})
        assert dto.shipping_address is None
        assert dto.payment_method is None

    def test_is_frozen(self, checkout):
        dto = checkout()
        with pytest.raises(ValidationError):
            dto.payment_method = "card"


class TestShippingAddressDTO:
    def test_complete(self):
        address = ShippingAddressDTO(street="1 Main", city="Pune", state="MH", postalCode="411001")
        assert address.is_complete

    def test_whitespace_only_field_is_incomplete(self):
        address = ShippingAddressDTO(street="  ", city="Pune", state="MH", postalCode="411001")
        assert not address.is_complete


class TestDashboardQueryDTO:
    def test_defaults(self):
        query = DashboardQueryDTO()
        assert (query.page, query.limit, query.sort_by, query.order) == (
            1,
            10,
            "createdAt",
            "desc",
        )

    def test_unknown_direction_means_descending(self):
        assert DashboardQueryDTO(order="sideways").order == "desc"
        assert DashboardQueryDTO(order="ASC").order == "asc"

    def test_blank_status_is_ignored(self):
        assert DashboardQueryDTO(status="").status is None

    def test_page_must_be_positive(self):
        with pytest.raises(ValidationError):
            DashboardQueryDTO(page=0)
