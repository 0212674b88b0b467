from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from modules.accounts.constants import UserRole
from modules.accounts.models import CartItem
from modules.accounts.repositories.django_repository import (
    CartDjangoRepository,
    UserDjangoRepository,
)
from modules.catalog.models import Product, Size, Variant
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.coupons.constants import CouponType, DiscountType
from modules.coupons.engine import CouponEngine
from modules.coupons.models import Coupon
from modules.coupons.repositories.django_repository import CouponDjangoRepository
from modules.orders.dtos import CheckoutDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

CATALOG = [
    ("Classic Tee", "tshirts", ["Black", "White"], Decimal("499.00")),
    ("Slim Jeans", "jeans", ["Indigo"], Decimal("1499.00")),
    ("Hooded Sweatshirt", "hoodies", ["Grey", "Navy"], Decimal("1999.00")),
    ("Running Shoes", "shoes", ["Red"], Decimal("2999.00")),
]
SIZES = ["S", "M", "L", "XL"]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        admin, seller, shopper = self._seed_users()
        products = self._seed_products(seller)
        coupons = self._seed_coupons(admin)
        orders_created = self._seed_orders(shopper, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"products={len(products)}, "
                f"coupons={len(coupons)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        admin, _ = User.objects.get_or_create(
            username="admin",
            defaults={
                "email": "admin@example.com",
                "role": UserRole.ADMIN,
                "is_email_verified": True,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        seller, _ = User.objects.get_or_create(
            username="seller",
            defaults={
                "email": "seller@example.com",
                "role": UserRole.OWNER,
                "is_email_verified": True,
            },
        )
        shopper, _ = User.objects.get_or_create(
            username="shopper",
            defaults={
                "email": "shopper@example.com",
                "role": UserRole.USER,
                "is_email_verified": True,
            },
        )
        for user, password in ((admin, "admin123"), (seller, "seller123"), (shopper, "shopper123")):
            if not user.password:
                user.set_password(password)
                user.save(update_fields=["password"])
        return admin, seller, shopper

    def _seed_products(self, owner) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        for name, category, colors, price in CATALOG:
            product, created = Product.objects.get_or_create(
                name=name,
                owner=owner,
                defaults={"category": category, "description": f"{name} ({category})"},
            )
            if created:
                for color in colors:
                    variant = Variant.objects.create(product=product, color=color)
                    for label in SIZES:
                        Size.objects.create(
                            variant=variant,
                            size=label,
                            stock=random.randint(5, 40),
                            price=price,
                            original_price=price + Decimal("200.00"),
                        )
            products.append(product)
        return products

    def _seed_coupons(self, admin) -> list[Coupon]:
        self.stdout.write("Creating coupons...")
        now = timezone.now()
        specs = [
            ("FESTIVE20", CouponType.UNIVERSAL, DiscountType.PERCENTAGE, Decimal("20"), 100),
            ("FLAT250", CouponType.UNIVERSAL, DiscountType.FIXED, Decimal("250"), None),
        ]
        coupons: list[Coupon] = []
        for code, kind, discount_type, value, limit in specs:
            coupon, _ = Coupon.objects.get_or_create(
                code=code,
                defaults={
                    "name": code.title(),
                    "type": kind,
                    "discount_type": discount_type,
                    "discount_value": value,
                    "valid_from": now - timedelta(days=1),
                    "valid_until": now + timedelta(days=90),
                    "usage_limit": limit,
                    "minimum_order_value": Decimal("999"),
                    "maximum_discount": Decimal("1000"),
                    "created_by": admin,
                },
            )
            coupons.append(coupon)
        return coupons

    def _seed_orders(self, shopper, products: list[Product]) -> int:
        if Order.objects.filter(user=shopper).exists():
            return 0
        self.stdout.write("Creating a sample order...")

        product = products[0]
        variant = product.variants.first()
        size = variant.sizes.order_by("size").first()
        with transaction.atomic():
            CartItem.objects.create(
                user=shopper,
                product=product,
                variant_id=variant.id,
                size_id=size.id,
                quantity=2,
                unit_price=size.price,
            )
            order_repository = OrderDjangoRepository()
            service = OrderService(
                order_repository=order_repository,
                user_repository=UserDjangoRepository(),
                cart_repository=CartDjangoRepository(),
                product_repository=ProductDjangoRepository(),
                coupon_engine=CouponEngine(CouponDjangoRepository(), order_repository),
            )
            service.create_order(
                shopper,
                CheckoutDTO.model_validate(
                    {
                        "shippingAddress": {
                            "street": "12 MG Road",
                            "city": "Bengaluru",
                            "state": "Karnataka",
                            "postalCode": "560001",
                        },
                        "paymentMethod": "cod",
                    }
                ),
            )
        return 1
