"""Coupon DRF serializers (read side)."""

from __future__ import annotations

from rest_framework import serializers

from modules.coupons.models import Coupon, CouponUsage, UserCoupon


class CouponSerializer(serializers.ModelSerializer):
    applicable_products = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    created_by = serializers.UUIDField(source="created_by_id", read_only=True)

    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "name",
            "description",
            "type",
            "discount_type",
            "discount_value",
            "valid_from",
            "valid_until",
            "is_active",
            "usage_limit",
            "usage_count",
            "minimum_order_value",
            "maximum_discount",
            "applicable_products",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class UserCouponSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(read_only=True)
    coupon_id = serializers.UUIDField(read_only=True)
    order_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = UserCoupon
        fields = ["id", "user_id", "coupon_id", "is_used", "used_at", "order_id", "created_at"]
        read_only_fields = fields


class CouponUsageSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(read_only=True)
    coupon_id = serializers.UUIDField(read_only=True)
    order_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = CouponUsage
        fields = ["id", "user_id", "coupon_id", "order_id", "created_at"]
        read_only_fields = fields


class CouponAnalyticsSerializer(serializers.Serializer):
    coupon_id = serializers.UUIDField()
    coupon_code = serializers.CharField()
    coupon_name = serializers.CharField()
    type = serializers.CharField()
    total_assigned = serializers.IntegerField()
    total_used = serializers.IntegerField()
    total_unused = serializers.IntegerField()
    usage_percentage = serializers.FloatField()
