"""Domain events for the Coupons bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class CouponCreated(DomainEvent):
    event_name = "couponCreated"


@dataclass(frozen=True)
class CouponUpdated(DomainEvent):
    event_name = "couponUpdated"


@dataclass(frozen=True)
class CouponDeleted(DomainEvent):
    event_name = "couponDeleted"


@dataclass(frozen=True)
class CouponAssigned(DomainEvent):
    """An administrator assigned a coupon to a user."""

    event_name = "couponAssigned"


@dataclass(frozen=True)
class CouponIssued(DomainEvent):
    """A coupon was issued automatically (registration, loyalty milestone)."""

    event_name = "coupon:assigned"


def coupon_payload(coupon) -> Dict[str, Any]:
    """Primitive snapshot of a coupon for realtime clients."""
    return {
        "id": coupon.id,
        "code": coupon.code,
        "name": coupon.name,
        "type": coupon.type,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "valid_from": coupon.valid_from,
        "valid_until": coupon.valid_until,
        "is_active": coupon.is_active,
        "usage_limit": coupon.usage_limit,
        "usage_count": coupon.usage_count,
        "minimum_order_value": coupon.minimum_order_value,
        "maximum_discount": coupon.maximum_discount,
    }
