"""Catalog domain constants."""

from django.db import models


class PaymentMethod(models.TextChoices):
    COD = "cod", "Cash on delivery"
    CARD = "card", "Card"
    UPI = "upi", "UPI"
    WALLET = "wallet", "Wallet"


class MediaType(models.TextChoices):
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"


def default_payment_methods() -> list[str]:
    return list(PaymentMethod.values)


CATALOG_CACHE_PREFIX = "products"
