"""Order domain constants.

Defines status choices and the status flow used by the monotonic
transition rule.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


# A status may only move forward along this list; ``cancelled`` is reachable
# from anywhere.
STATUS_FLOW: list[str] = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
]

OPEN_STATUSES: set[str] = set(STATUS_FLOW) - {OrderStatus.CANCELLED}

ORDER_NUMBER_MAX_RETRIES = 5

# Public sort keys accepted by the dashboard -> model fields.
DASHBOARD_SORT_FIELDS: dict[str, str] = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "totalAmount": "total_amount",
    "total_amount": "total_amount",
    "status": "status",
    "orderNumber": "order_number",
    "order_number": "order_number",
}
