"""Checkout concurrency integration tests.

Proves that row locks taken by ``OrderService.create_order`` serialize
concurrent stock debits and coupon redemptions.

Scenarios:
- One size with **stock = 5**; 10 buyers check out 1 unit each at once.
  Exactly 5 succeed, 5 raise ``InsufficientStock``, final stock is 0.
- A universal coupon with **usage_limit = 3**; 10 buyers redeem it at once.
  Exactly 3 orders are placed and ``usage_count`` ends at 3.

Uses ``TransactionTestCase`` so each thread sees committed data.  Skipped
on backends without ``SELECT ... FOR UPDATE`` (SQLite).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock

import django
from django.test import TransactionTestCase, skipUnlessDBFeature
from django.utils import timezone

from modules.accounts.models import CartItem, User
from modules.accounts.repositories.django_repository import (
    CartDjangoRepository,
    UserDjangoRepository,
)
from modules.catalog.cache import CatalogCache
from modules.catalog.exceptions import InsufficientStock
from modules.catalog.models import Product, Size, Variant
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.coupons.engine import CouponEngine
from modules.coupons.exceptions import InvalidCoupon
from modules.coupons.models import Coupon
from modules.coupons.repositories.django_repository import CouponDjangoRepository
from modules.notifications.sink import NotificationSink
from modules.orders.dtos import CheckoutDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

logger = logging.getLogger(__name__)

INITIAL_STOCK = 5
COUPON_LIMIT = 3
NUM_WORKERS = 10

CHECKOUT = {
    "shippingAddress": {
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "postalCode": "560001",
    },
    "paymentMethod": "cod",
}


@skipUnlessDBFeature("has_select_for_update")
class TestCheckoutConcurrency(TransactionTestCase):
    """Concurrent checkouts never oversell stock or coupons."""

    def _setup(self, stock: int) -> None:
        seller = User.objects.create_user(
            username="seller", email="seller@example.com", password="x", role="owner"
        )
        self.product = Product.objects.create(name="Gamer PC", category="pc", owner=seller)
        self.variant = Variant.objects.create(product=self.product, color="Black")
        self.size = Size.objects.create(
            variant=self.variant, size="ATX", stock=stock, price=Decimal("2999.99")
        )
        self.buyers = []
        for idx in range(NUM_WORKERS):
            buyer = User.objects.create_user(
                username=f"buyer{idx}",
                email=f"buyer{idx}@example.com",
                password="x",
                is_email_verified=True,
            )
            CartItem.objects.create(
                user=buyer,
                product=self.product,
                variant_id=self.variant.id,
                size_id=self.size.id,
                quantity=1,
                unit_price=self.size.price,
            )
            self.buyers.append(buyer)

    def _checkout_in_thread(self, buyer, payload) -> str:
        """Returns 'success', 'insufficient' or 'coupon_rejected'.

        Each thread opens its own DB connection so transactions really
        overlap.
        """
        django.db.connections.close_all()

        order_repository = OrderDjangoRepository()
        service = OrderService(
            order_repository=order_repository,
            user_repository=UserDjangoRepository(),
            cart_repository=CartDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            coupon_engine=CouponEngine(CouponDjangoRepository(), order_repository),
            sink=Mock(spec=NotificationSink),
            cache=CatalogCache(),
        )
        try:
            service.create_order(buyer, CheckoutDTO.model_validate(payload))
            logger.warning("%s: order created", buyer.username)
            return "success"
        except InsufficientStock:
            logger.warning("%s: InsufficientStock (expected)", buyer.username)
            return "insufficient"
        except InvalidCoupon:
            logger.warning("%s: InvalidCoupon (expected)", buyer.username)
            return "coupon_rejected"
        finally:
            django.db.connections.close_all()

    def _run(self, payload) -> list:
        results = []
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [
                pool.submit(self._checkout_in_thread, buyer, payload) for buyer in self.buyers
            ]
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def test_concurrent_checkouts_exhaust_stock(self):
        """10 buyers, 1 unit each, stock 5: exactly 5 succeed."""
        self._setup(stock=INITIAL_STOCK)

        results = self._run(CHECKOUT)

        self.assertEqual(results.count("success"), INITIAL_STOCK)
        self.assertEqual(results.count("insufficient"), NUM_WORKERS - INITIAL_STOCK)

        self.size.refresh_from_db()
        self.assertEqual(self.size.stock, 0)
        # Conservation: initial = sold + remaining
        self.assertEqual(Order.objects.count() + self.size.stock, INITIAL_STOCK)

    def test_concurrent_redemptions_respect_usage_limit(self):
        """10 buyers redeem a coupon limited to 3 uses: exactly 3 orders."""
        self._setup(stock=NUM_WORKERS)
        now = timezone.now()
        coupon = Coupon.objects.create(
            code="RUSH",
            name="Rush",
            type="universal",
            discount_type="percentage",
            discount_value=Decimal("10"),
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=1),
            usage_limit=COUPON_LIMIT,
        )

        results = self._run({**CHECKOUT, "couponCode": "RUSH"})

        self.assertEqual(results.count("success"), COUPON_LIMIT)
        self.assertEqual(results.count("coupon_rejected"), NUM_WORKERS - COUPON_LIMIT)

        coupon.refresh_from_db()
        self.assertEqual(coupon.usage_count, COUPON_LIMIT)
        self.size.refresh_from_db()
        self.assertEqual(self.size.stock, NUM_WORKERS - COUPON_LIMIT)
