"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
The Order aggregate (Order + OrderItems) is persisted atomically.

Concurrency control on status updates and cancellation uses
``select_for_update()`` on the order row.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q, QuerySet, Sum

from modules.orders.constants import OPEN_STATUSES, OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_EAGER = ("items__product", "status_history")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def _queryset(self) -> QuerySet:
        return Order.objects.select_related("user").prefetch_related(*_EAGER)

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        items = data.pop("items")
        order = Order(**data)
        order.save()

        OrderItem.objects.bulk_create(
            [_build_item(order, item) for item in items]
        )

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self._queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items (with product) so the caller can iterate
        over them while the row is locked.  Returns ``None`` for
        non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update(of=("self",))
                .select_related("user")
                .prefetch_related(*_EAGER)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        return list(self.query(filters))

    def query(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = self._queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        entity.save()
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        deleted, _ = Order.objects.filter(id=id).delete()
        if deleted:
            logger.info("order.deleted_row", order_id=str(id))
        return bool(deleted)

    # ------------------------------------------------------------------
    # Order-specific queries
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: Any,
        status: str,
        *,
        old_status: Optional[str] = None,
        changed_by: Any = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            changed_by=changed_by,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    def count_open_orders(self, user_id: Any) -> int:
        return Order.objects.filter(user_id=user_id, status__in=OPEN_STATUSES).count()

    def for_owner(self, owner_id: Any) -> QuerySet:
        owned = OrderItem.objects.filter(product__owner_id=owner_id).values("order_id")
        return Order.objects.filter(id__in=owned)

    def owns_any_product(self, order: Order, owner_id: Any) -> bool:
        return any(
            item.product is not None and item.product.owner_id == owner_id
            for item in order.items.all()
        )

    def dashboard(
        self,
        *,
        owner_id: Any = None,
        status: Optional[str] = None,
        ordering: str = "-created_at",
    ) -> QuerySet:
        queryset = self.for_owner(owner_id) if owner_id is not None else Order.objects.all()
        if status:
            queryset = queryset.filter(status=status)
        return (
            queryset.select_related("user")
            .prefetch_related(*_EAGER)
            .order_by(ordering, "-id")
        )

    def statistics(self, queryset: QuerySet) -> Dict[str, Any]:
        per_status = {
            f"{value}_orders": Count("id", filter=Q(status=value))
            for value in OrderStatus.values
        }
        stats = queryset.order_by().aggregate(
            total_revenue=Sum("total_amount"),
            total_orders=Count("id"),
            **per_status,
        )
        stats["total_revenue"] = stats["total_revenue"] or Decimal("0.00")
        return stats


def _build_item(order: Order, data: Dict[str, Any]) -> OrderItem:
    item = OrderItem(order=order, **data)
    # bulk_create skips save(), so derive the total here.
    item.line_total = item.quantity * item.unit_price
    return item
