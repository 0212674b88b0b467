from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest

from django.utils import timezone
from rest_framework.test import APIClient

from modules.accounts.models import CartItem, User
from modules.accounts.repositories.django_repository import (
    CartDjangoRepository,
    UserDjangoRepository,
)
from modules.catalog.cache import CatalogCache
from modules.catalog.models import Product, Size, Variant
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.coupons.constants import CouponType, DiscountType
from modules.coupons.engine import CouponEngine
from modules.coupons.models import Coupon
from modules.coupons.repositories.django_repository import CouponDjangoRepository
from modules.notifications.sink import NotificationSink
from modules.orders.dtos import CheckoutDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_catalog_cache():
    from django.core.cache import caches

    caches["catalog"].clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    """Factory: ``make_user("ana", role="owner", verified=False, days_ago=40)``."""

    def _make(username, role="user", verified=True, days_ago=0):
        user = User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password="testpass123",
            role=role,
            is_email_verified=verified,
        )
        if days_ago:
            user.date_joined = timezone.now() - timedelta(days=days_ago)
            user.save(update_fields=["date_joined"])
        return user

    return _make


@pytest.fixture()
def shopper(make_user):
    return make_user("shopper")


@pytest.fixture()
def other_shopper(make_user):
    return make_user("other-shopper")


@pytest.fixture()
def seller(make_user):
    return make_user("seller", role="owner")


@pytest.fixture()
def admin_user(make_user):
    return make_user("admin", role="admin")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass
class Listing:
    """A product with one variant and one size, as most tests need."""

    product: Product
    variant: Variant
    size: Size


@pytest.fixture()
def make_listing(seller):
    def _make(
        name="Linen Shirt",
        price="100.00",
        stock=5,
        owner=None,
        color="Blue",
        size="M",
        payment_methods=None,
    ):
        product = Product.objects.create(
            name=name,
            category="shirts",
            owner=owner or seller,
            **(
                {"allowed_payment_methods": payment_methods}
                if payment_methods is not None
                else {}
            ),
        )
        variant = Variant.objects.create(product=product, color=color)
        size_row = Size.objects.create(
            variant=variant, size=size, stock=stock, price=Decimal(price)
        )
        return Listing(product=product, variant=variant, size=size_row)

    return _make


@pytest.fixture()
def listing(make_listing):
    return make_listing()


@pytest.fixture()
def add_to_cart():
    def _add(user, listing, quantity=1):
        return CartItem.objects.create(
            user=user,
            product=listing.product,
            variant_id=listing.variant.id,
            size_id=listing.size.id,
            quantity=quantity,
            unit_price=listing.size.price,
        )

    return _add


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_coupon():
    def _make(
        code,
        type=CouponType.UNIVERSAL,
        discount_type=DiscountType.PERCENTAGE,
        value="10",
        **fields,
    ):
        now = timezone.now()
        fields.setdefault("valid_from", now - timedelta(days=1))
        fields.setdefault("valid_until", now + timedelta(days=30))
        return Coupon.objects.create(
            code=code,
            name=fields.pop("name", code.title()),
            type=type,
            discount_type=discount_type,
            discount_value=Decimal(value),
            **fields,
        )

    return _make


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def sink():
    return Mock(spec=NotificationSink)


@pytest.fixture()
def coupon_repository():
    return CouponDjangoRepository()


@pytest.fixture()
def coupon_engine(coupon_repository):
    return CouponEngine(coupon_repository, OrderDjangoRepository())


@pytest.fixture()
def order_service(sink):
    order_repository = OrderDjangoRepository()
    return OrderService(
        order_repository=order_repository,
        user_repository=UserDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        coupon_engine=CouponEngine(CouponDjangoRepository(), order_repository),
        sink=sink,
        cache=CatalogCache(),
    )


@pytest.fixture()
def checkout_payload():
    return {
        "shippingAddress": {
            "street": "12 MG Road",
            "city": "Bengaluru",
            "state": "KA",
            "postalCode": "560001",
        },
        "paymentMethod": "cod",
    }


@pytest.fixture()
def checkout(checkout_payload):
    """Factory building a ``CheckoutDTO`` from the default payload plus overrides."""

    def _build(**overrides):
        return CheckoutDTO.model_validate({**checkout_payload, **overrides})

    return _build


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_order():
    """Persist an order row directly, bypassing checkout."""

    def _make(user, total="100.00", **fields):
        return Order.objects.create(
            user=user,
            subtotal=Decimal(fields.pop("subtotal", total)),
            total_amount=Decimal(total),
            shipping_street="12 MG Road",
            shipping_city="Bengaluru",
            shipping_state="KA",
            shipping_postal_code="560001",
            payment_method=fields.pop("payment_method", "cod"),
            **fields,
        )

    return _make
