"""Coupon, UserCoupon and CouponUsage models.

Business rules implemented:
- ``code`` is unique and stored uppercase; look-ups are case-insensitive.
- ``discount_value`` is non-negative and at most 100 for percentages.
- ``usage_count`` never exceeds ``usage_limit`` (CHECK constraint; the
  increment itself is a conditional UPDATE in the repository).
- ``UserCoupon`` assigns a welcome/user/loyalty coupon to one user;
  ``is_used`` flips once, together with the order that consumed it.
- ``CouponUsage`` tracks a universal coupon per user; ``order`` is null
  while the row is a reservation and set once an order consumes it.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.coupons.constants import CouponType, DiscountType


class Coupon(BaseModel):
    """Discount policy shared by every coupon type.

    Per-type behaviour lives in ``CouponEngine``'s eligibility dispatch,
    not in subclasses.
    """

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    type = models.CharField(max_length=20, choices=CouponType.choices)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    minimum_order_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    maximum_discount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    applicable_products = models.ManyToManyField(
        "catalog.Product",
        blank=True,
        related_name="coupons",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_coupons",
    )

    class Meta:
        db_table = "coupons"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["type", "is_active"], name="coupons_type_active_idx"),
            models.Index(fields=["valid_from", "valid_until"], name="coupons_window_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(discount_value__gte=0),
                name="coupons_discount_non_negative",
            ),
            models.CheckConstraint(
                condition=~models.Q(discount_type="percentage")
                | models.Q(discount_value__lte=100),
                name="coupons_percentage_max_100",
            ),
            models.CheckConstraint(
                condition=models.Q(usage_limit__isnull=True)
                | models.Q(usage_count__lte=models.F("usage_limit")),
                name="coupons_usage_within_limit",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.code} ({self.type})"


class UserCoupon(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="coupon_assignments",
    )
    coupon = models.ForeignKey(
        "coupons.Coupon",
        on_delete=models.CASCADE,
        related_name="assignments",
    )
    is_used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "user_coupons"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "coupon"],
                name="user_coupons_unique_assignment",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "is_used"], name="user_coupons_user_used_idx"),
        ]

    def __str__(self) -> str:
        state = "used" if self.is_used else "open"
        return f"{self.coupon_id} -> {self.user_id} ({state})"


class CouponUsage(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="coupon_usages",
    )
    coupon = models.ForeignKey(
        "coupons.Coupon",
        on_delete=models.CASCADE,
        related_name="usages",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "coupon_usages"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "coupon"],
                name="coupon_usages_unique_user",
            ),
        ]

    @property
    def is_reserved(self) -> bool:
        return self.order_id is None

    def __str__(self) -> str:
        state = "reserved" if self.is_reserved else f"order {self.order_id}"
        return f"{self.coupon_id} -> {self.user_id} ({state})"
