"""Catalog models: Product -> Variant -> Size (+ variant media).

Business rules implemented:
- A product accepts a non-empty subset of the supported payment methods;
  an unset list means every method.
- ``Size`` is the stock-keeping unit.  ``stock`` can never go negative
  (``PositiveIntegerField`` plus a CHECK constraint); checkout debits it
  with a conditional UPDATE so concurrent requests cannot oversell.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.catalog.constants import MediaType, PaymentMethod, default_payment_methods
from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class Product(BaseModel):
    """Product aggregate root, owned by a seller."""

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=100, db_index=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="products",
    )
    allowed_payment_methods = models.JSONField(default=default_payment_methods)

    class Meta:
        db_table = "products"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["category"], name="products_category_idx"),
        ]

    # ------------------------------------------------------------------
    # Payment methods
    # ------------------------------------------------------------------

    @property
    def payment_methods(self) -> list[str]:
        return list(self.allowed_payment_methods or default_payment_methods())

    def accepts_payment_method(self, method: str) -> bool:
        return method in self.payment_methods

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        methods = self.allowed_payment_methods
        if methods is not None:
            if not methods:
                raise ValidationError(
                    {"allowed_payment_methods": "At least one payment method is required."}
                )
            unknown = set(methods) - set(PaymentMethod.values)
            if unknown:
                raise ValidationError(
                    {"allowed_payment_methods": f"Unknown payment methods: {sorted(unknown)}"}
                )

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                owner_id=str(self.owner_id),
                name=self.name,
            )

    def __str__(self) -> str:
        return self.name


class Variant(BaseModel):
    """Colour-level grouping of sizes."""

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="variants",
    )
    color = models.CharField(max_length=50)

    class Meta:
        db_table = "product_variants"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.product} / {self.color}"


class Size(BaseModel):
    """Innermost stock-keeping unit: one size label with its own stock and price."""

    variant = models.ForeignKey(
        "catalog.Variant",
        on_delete=models.CASCADE,
        related_name="sizes",
    )
    size = models.CharField(max_length=20)
    stock = models.PositiveIntegerField(default=0)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "product_sizes"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name="product_sizes_stock_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="product_sizes_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.variant} / {self.size} ({self.stock})"


class ProductImage(BaseModel):
    variant = models.ForeignKey(
        "catalog.Variant",
        on_delete=models.CASCADE,
        related_name="images",
    )
    url = models.URLField(max_length=500)
    public_id = models.CharField(max_length=255, blank=True, default="")
    media_type = models.CharField(
        max_length=10,
        choices=MediaType.choices,
        default=MediaType.IMAGE,
    )

    class Meta:
        db_table = "product_images"
        ordering = ["created_at"]


def common_payment_methods(products: Iterable[Product]) -> list[str]:
    """Payment methods accepted by every product, in canonical order."""
    products = list(products)
    if not products:
        return []
    common = set(PaymentMethod.values)
    for product in products:
        common &= set(product.payment_methods)
    return [method for method in PaymentMethod.values if method in common]
