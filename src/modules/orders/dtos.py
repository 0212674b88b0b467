"""Order DTOs for the Service Layer.

Pydantic v2 contracts between the API layer and ``OrderService``.
DTOs are immutable (``frozen=True``).

- ``ShippingAddressDTO``: address snapshot for checkout.
- ``CheckoutDTO``: checkout request; field presence is checked by the
  service so each missing piece maps to its own error code.
- ``UpdateOrderStatusDTO``: status change request.
- ``DashboardQueryDTO``: dashboard filters, sort and page window.
"""

from __future__ import annotations

from typing import Dict, Optional
from uuid import UUID

from django.conf import settings
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ShippingAddressDTO(BaseModel):
    """Immutable shipping address snapshot."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = Field(default="", alias="postalCode")

    @property
    def is_complete(self) -> bool:
        return all((self.street, self.city, self.state, self.postal_code))


class CheckoutDTO(BaseModel):
    """Immutable DTO for checkout requests.

    ``quantities`` maps a cart line id to the quantity to buy, overriding
    the quantity stored on the line.  A blank ``coupon_code`` means no
    coupon.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    shipping_address: Optional[ShippingAddressDTO] = Field(
        default=None, alias="shippingAddress"
    )
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    quantities: Dict[UUID, int] = Field(default_factory=dict)
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")

    @field_validator("coupon_code")
    @classmethod
    def blank_code_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().upper()

    @field_validator("payment_method")
    @classmethod
    def normalise_payment_method(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().lower()


class UpdateOrderStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = ""
    notes: str = ""


class DashboardQueryDTO(BaseModel):
    """Immutable dashboard query (page/limit window, status filter, sort)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    status: Optional[str] = None
    sort_by: str = Field(default="createdAt", alias="sortBy")
    order: str = "desc"

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, v: int) -> int:
        return min(v, settings.DASHBOARD_MAX_PAGE_SIZE)

    @field_validator("order")
    @classmethod
    def normalise_order(cls, v: str) -> str:
        return "asc" if v.lower() == "asc" else "desc"

    @field_validator("status")
    @classmethod
    def blank_status_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None
