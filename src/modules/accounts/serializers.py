"""Account DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.accounts.models import CartItem, User, WishlistItem


class UserSummarySerializer(serializers.ModelSerializer):
    """Denormalised user fields embedded in order and coupon payloads."""

    class Meta:
        model = User
        fields = ["id", "username", "email", "role"]
        read_only_fields = fields


class CartItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "variant_id",
            "size_id",
            "quantity",
            "unit_price",
            "created_at",
        ]
        read_only_fields = fields


class WishlistItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = WishlistItem
        fields = ["id", "product_id", "created_at"]
        read_only_fields = fields
