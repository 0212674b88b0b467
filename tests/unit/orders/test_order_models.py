"""Unit tests for Order and OrderItem models."""

import re
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from modules.orders.models import Order, OrderItem

pytestmark = pytest.mark.unit


class TestOrderModel:
    def test_order_number_is_generated(self, shopper, make_order):
        order = make_order(shopper)
        assert re.match(r"^ORD-\d{8}-[0-9A-F]{6}$", order.order_number)

    def test_order_numbers_are_unique(self, shopper, make_order):
        numbers = {make_order(shopper).order_number for _ in range(5)}
        assert len(numbers) == 5

    def test_uuid7_primary_key(self, shopper, make_order):
        assert make_order(shopper).id.version == 7

    def test_defaults(self, shopper, make_order):
        order = make_order(shopper)
        assert order.status == "pending"
        assert order.payment_status == "pending"
        assert order.discount_amount == Decimal("0.00")
        assert order.coupon_code == ""

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            ("pending", "processing", True),
            ("pending", "delivered", True),
            ("shipped", "shipped", True),
            ("shipped", "processing", False),
            ("delivered", "pending", False),
            ("delivered", "cancelled", True),
            ("cancelled", "pending", False),
            ("pending", "unknown", False),
        ],
    )
    def test_can_transition_to(self, current, target, allowed):
        assert Order(status=current).can_transition_to(target) is allowed

    def test_negative_total_is_rejected(self, shopper, make_order):
        with pytest.raises(IntegrityError), transaction.atomic():
            make_order(shopper, total="-1.00", subtotal="0.00")


class TestOrderItemModel:
    def test_line_total_is_derived(self, shopper, make_order, listing):
        item = OrderItem.objects.create(
            order=make_order(shopper),
            product=listing.product,
            variant_id=listing.variant.id,
            size_id=listing.size.id,
            product_name="Linen Shirt",
            color="Blue",
            size_label="M",
            quantity=3,
            unit_price=Decimal("49.50"),
        )
        assert item.line_total == Decimal("148.50")

    def test_product_deletion_keeps_the_snapshot(self, shopper, make_order, listing):
        item = OrderItem.objects.create(
            order=make_order(shopper),
            product=listing.product,
            variant_id=listing.variant.id,
            size_id=listing.size.id,
            product_name="Linen Shirt",
            color="Blue",
            size_label="M",
            quantity=1,
            unit_price=Decimal("100.00"),
        )
        listing.product.delete()

        item.refresh_from_db()
        assert item.product_id is None
        assert item.product_name == "Linen Shirt"
