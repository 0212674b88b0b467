"""Catalog domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed


class ProductNotFound(NotFound):
    code = "PRODUCT_NOT_FOUND"
    default_message = "Product not found"


class VariantNotFound(NotFound):
    code = "VARIANT_NOT_FOUND"
    default_message = "Variant not found"


class SizeNotFound(NotFound):
    code = "SIZE_NOT_FOUND"
    default_message = "Size not found"


class InsufficientStock(Conflict):
    """Requested quantity exceeds the size's remaining stock."""

    code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock"


class ProductAccessDenied(Forbidden):
    """Caller neither owns the product nor is an administrator."""

    code = "NOT_PRODUCT_OWNER"
    default_message = "You can only manage your own products"


class InvalidProductData(ValidationFailed):
    code = "INVALID_PRODUCT_DATA"
