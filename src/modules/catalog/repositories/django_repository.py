"""Django ORM implementation of the catalog repository.

Look-ups follow the Null Object convention: missing or malformed ids
yield ``None`` (or an absent key) rather than an exception, and the
service layer decides which domain error that becomes.

Stock mutations are single conditional ``UPDATE`` statements.  Even on
backends where ``select_for_update`` is a no-op (SQLite), the
``stock__gte`` guard makes an oversell impossible: the losing request
updates zero rows.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from modules.catalog.models import Product, Size
from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

_PREFETCH = ("variants__sizes", "variants__images")


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return (
                Product.objects.select_related("owner")
                .prefetch_related(*_PREFETCH)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"category": "shirts"}
            {"name__icontains": "linen"}
        """
        queryset = Product.objects.select_related("owner").prefetch_related(*_PREFETCH)
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_many(self, ids: Iterable[Any]) -> Dict[Any, Product]:
        ids = list(ids)
        if not ids:
            return {}
        try:
            products = Product.objects.prefetch_related("variants__sizes").filter(
                id__in=ids
            )
            return {product.id: product for product in products}
        except (ValueError, ValidationError):
            return {}

    def get_size(self, size_id: Any) -> Optional[Size]:
        try:
            return (
                Size.objects.select_related("variant__product")
                .filter(id=size_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.deleted", product_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Stock primitives
    # ------------------------------------------------------------------

    def lock_sizes(self, size_ids: Iterable[Any]) -> Dict[Any, Size]:
        ids = sorted(set(size_ids), key=str)
        if not ids:
            return {}
        sizes = (
            Size.objects.select_for_update()
            .filter(id__in=ids)
            .order_by("id")
        )
        return {size.id: size for size in sizes}

    def debit_stock(self, size_id: Any, quantity: int) -> bool:
        updated = Size.objects.filter(id=size_id, stock__gte=quantity).update(
            stock=F("stock") - quantity
        )
        return updated == 1

    def credit_stock(self, size_id: Any, quantity: int) -> bool:
        updated = Size.objects.filter(id=size_id).update(stock=F("stock") + quantity)
        return updated == 1

    def restore_stock(self, size_id: Any, stock: int) -> None:
        Size.objects.filter(id=size_id).update(stock=stock)
