"""User, cart and wishlist models.

Business rules implemented:
- Email is unique; only users with ``is_email_verified`` can check out.
- ``role`` drives authorization: ``owner`` sells products, ``admin``
  manages the whole store.
- Cart lines snapshot ``unit_price`` when added and are cleared by checkout.
  ``variant_id`` / ``size_id`` are plain references (not foreign keys) so a
  catalog change surfaces as a checkout error rather than a silent delete.
- A product appears at most once in a user's wishlist; deleting the product
  removes it from every wishlist.
"""

from __future__ import annotations

import uuid6
from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models

from modules.accounts.constants import UserRole
from modules.core.models import BaseModel


class User(AbstractUser):
    """Custom user with a UUIDv7 key, role and email verification flag."""

    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    email = models.EmailField(unique=True)
    role = models.CharField(
        max_length=10,
        choices=UserRole.choices,
        default=UserRole.USER,
    )
    is_email_verified = models.BooleanField(default=False)

    class Meta:
        db_table = "users"
        ordering = ["-date_joined"]

    def __str__(self) -> str:
        return self.email or self.username


class CartItem(BaseModel):
    """One line of a user's cart."""

    user = models.ForeignKey(
        "accounts.User",
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="+",
    )
    variant_id = models.UUIDField()
    size_id = models.UUIDField()
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="cart_items_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity}"


class WishlistItem(BaseModel):
    """A product the user saved for later."""

    user = models.ForeignKey(
        "accounts.User",
        on_delete=models.CASCADE,
        related_name="wishlist_items",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="+",
    )

    class Meta:
        db_table = "wishlist_items"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "product"],
                name="wishlist_items_unique_product",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.product_id}"
