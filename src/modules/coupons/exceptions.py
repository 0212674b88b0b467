"""Coupon domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import (
    Conflict,
    InvariantViolation,
    NotFound,
    ValidationFailed,
)


class CouponNotFound(NotFound):
    code = "COUPON_NOT_FOUND"
    default_message = "Coupon not found"


class CouponAlreadyExists(Conflict):
    code = "COUPON_EXISTS"
    default_message = "Coupon code already exists"


class CouponAlreadyAssigned(Conflict):
    code = "COUPON_ALREADY_ASSIGNED"
    default_message = "Coupon already assigned to this user"


class InvalidCouponData(ValidationFailed):
    code = "INVALID_COUPON_DATA"
    default_message = "Invalid coupon data"


class InvalidCoupon(ValidationFailed):
    """The coupon cannot be redeemed; the message says why."""

    code = "INVALID_COUPON"
    default_message = "Invalid coupon"


class CouponReservationMissing(InvariantViolation):
    """The assignment/reservation vanished between validation and commit.

    Signals a race or corrupted data, never a user mistake.
    """
