"""Coupon DTOs for the Service Layer.

Pydantic v2 contracts between the API layer and the coupon services.
DTOs are immutable (``frozen=True``).

Normalisation mirrors what the admin UI sends: codes are upper-cased,
non-positive ``usage_limit`` / ``maximum_discount`` mean "no limit", a
negative minimum order becomes zero, and naive datetimes are read in the
server time zone.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.utils import timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.coupons.constants import CouponType, DiscountType


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def _check_discount(discount_type: Optional[str], value: Optional[Decimal]) -> None:
    if value is not None and value < 0:
        raise ValueError("Discount value cannot be negative")
    if discount_type == DiscountType.PERCENTAGE and value is not None and value > 100:
        raise ValueError("Percentage discount cannot exceed 100%")


def _check_window(valid_from: Optional[datetime], valid_until: Optional[datetime]) -> None:
    if valid_from and valid_until and valid_from >= valid_until:
        raise ValueError("Valid until date must be after valid from date")


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateCouponDTO(BaseModel):
    """Immutable DTO for coupon creation."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    type: CouponType
    discount_type: DiscountType
    discount_value: Decimal
    valid_from: datetime
    valid_until: datetime
    minimum_order_value: Decimal = Decimal("0")
    maximum_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    applicable_products: List[UUID] = []

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Coupon code must not be empty")
        return v

    @field_validator("valid_from", "valid_until")
    @classmethod
    def make_aware(cls, v: datetime) -> datetime:
        return _aware(v)

    @field_validator("minimum_order_value")
    @classmethod
    def clamp_minimum(cls, v: Decimal) -> Decimal:
        return max(Decimal("0"), v)

    @field_validator("maximum_discount")
    @classmethod
    def positive_cap_or_none(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v if v is not None and v > 0 else None

    @field_validator("usage_limit")
    @classmethod
    def positive_limit_or_none(cls, v: Optional[int]) -> Optional[int]:
        return v if v is not None and v > 0 else None

    @model_validator(mode="after")
    def check_policy(self):
        _check_discount(self.discount_type, self.discount_value)
        _check_window(self.valid_from, self.valid_until)
        return self


class UpdateCouponDTO(BaseModel):
    """Partial update; only fields present in the request are applied.

    Cross-field rules (window order, percentage cap) are re-checked by the
    service against the merged coupon state.
    """

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[CouponType] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None
    minimum_order_value: Optional[Decimal] = None
    maximum_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    applicable_products: Optional[List[UUID]] = None

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().upper()
        if not v:
            raise ValueError("Coupon code must not be empty")
        return v

    @field_validator("valid_from", "valid_until")
    @classmethod
    def make_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _aware(v)

    @field_validator("discount_value")
    @classmethod
    def non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        _check_discount(None, v)
        return v

    def changes(self) -> dict:
        """Fields explicitly sent by the client (``None`` clears a limit)."""
        return self.model_dump(exclude_unset=True)


class AssignCouponDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    coupon_id: UUID
    user_id: UUID


class ValidateCouponDTO(BaseModel):
    """Dry-run request: ``{"coupon_code": "...", "order_amount": 250}``."""

    model_config = ConfigDict(frozen=True)

    coupon_code: str = Field(min_length=1)
    order_amount: Decimal = Field(ge=0)


class CouponQueryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Optional[CouponType] = None
    is_active: Optional[bool] = None
