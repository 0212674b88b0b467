"""Coupon domain constants."""

from django.db import models


class CouponType(models.TextChoices):
    WELCOME = "welcome", "Welcome"
    USER = "user", "User"
    UNIVERSAL = "universal", "Universal"
    LOYALTY = "loyalty", "Loyalty"


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed amount"


# At most one unused assignment of these types per user.
SINGLE_ACTIVE_TYPES: frozenset[str] = frozenset({CouponType.WELCOME, CouponType.LOYALTY})

WELCOME_ELIGIBILITY_DAYS = 30

CODE_MAX_RETRIES = 5

# Realtime audiences
STAFF_AUDIENCE = "role:staff"


def user_audience(user_id) -> str:
    return f"user:{user_id}"
