"""Order DRF serializers (read side).

Input is parsed into Pydantic DTOs (``dtos.py``); these serializers
only shape responses.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.accounts.serializers import UserSummarySerializer
from modules.orders.models import Order, OrderItem, OrderStatusHistory


class OrderItemSerializer(serializers.ModelSerializer):
    """Line item snapshot."""

    product_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "variant_id",
            "size_id",
            "color",
            "size_label",
            "quantity",
            "unit_price",
            "line_total",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    changed_by = serializers.UUIDField(source="changed_by_id", read_only=True, allow_null=True)

    class Meta:
        model = OrderStatusHistory
        fields = ["id", "old_status", "new_status", "changed_by", "notes", "created_at"]
        read_only_fields = fields


class AppliedCouponSerializer(serializers.Serializer):
    code = serializers.CharField(source="coupon_code")
    coupon_id = serializers.UUIDField(allow_null=True)
    type = serializers.CharField(source="coupon_type")
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items, history and buyer."""

    user = UserSummarySerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    shipping_address = serializers.DictField(read_only=True)
    coupon = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user",
            "status",
            "subtotal",
            "discount_amount",
            "total_amount",
            "shipping_address",
            "payment_method",
            "payment_status",
            "coupon",
            "items",
            "status_history",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_coupon(self, order: Order):
        if not order.coupon_code:
            return None
        return AppliedCouponSerializer(order).data


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no history)."""

    user = UserSummarySerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user",
            "status",
            "subtotal",
            "discount_amount",
            "total_amount",
            "payment_method",
            "payment_status",
            "coupon_code",
            "items",
            "created_at",
        ]
        read_only_fields = fields
