"""Catalog DRF serializers (read side).

Writes go through Pydantic DTOs in ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.catalog.models import Product, ProductImage, Size, Variant


class SizeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Size
        fields = ["id", "size", "stock", "price", "original_price"]
        read_only_fields = fields


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ["id", "url", "public_id", "media_type"]
        read_only_fields = fields


class VariantSerializer(serializers.ModelSerializer):
    sizes = SizeSerializer(many=True, read_only=True)
    images = ProductImageSerializer(many=True, read_only=True)

    class Meta:
        model = Variant
        fields = ["id", "color", "sizes", "images"]
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer with nested variants, sizes and media."""

    variants = VariantSerializer(many=True, read_only=True)
    owner_id = serializers.UUIDField(read_only=True)
    allowed_payment_methods = serializers.ListField(
        source="payment_methods", child=serializers.CharField(), read_only=True
    )

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "category",
            "owner_id",
            "allowed_payment_methods",
            "variants",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
