"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised after checkout commits; payload is the full order."""

    event_name = "orderCreated"


@dataclass(frozen=True)
class OrderUpdated(DomainEvent):
    """Raised after a status change commits."""

    event_name = "orderUpdated"


@dataclass(frozen=True)
class OrderDeleted(DomainEvent):
    """Raised after an order is deleted and its effects compensated."""

    event_name = "orderDeleted"


def order_payload(order) -> Dict[str, Any]:
    """Primitive snapshot of an order with denormalised user/product fields.

    Assumes ``items`` are prefetched.
    """
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user": {
            "id": order.user_id,
            "username": order.user.username,
            "email": order.user.email,
        },
        "status": order.status,
        "subtotal": order.subtotal,
        "discount_amount": order.discount_amount,
        "total_amount": order.total_amount,
        "shipping_address": order.shipping_address,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "coupon": (
            {
                "code": order.coupon_code,
                "coupon_id": order.coupon_id,
                "type": order.coupon_type,
                "discount_amount": order.discount_amount,
            }
            if order.coupon_code
            else None
        ),
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": item.product_name,
                "variant_id": item.variant_id,
                "size_id": item.size_id,
                "color": item.color,
                "size": item.size_label,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "line_total": item.line_total,
            }
            for item in order.items.all()
        ],
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
