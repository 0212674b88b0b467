"""Catalog DTOs for the Service Layer.

Pydantic v2 contracts between the API layer and ``CatalogService``.
DTOs are immutable (``frozen=True``).
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.catalog.constants import MediaType, PaymentMethod, default_payment_methods

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


def _check_payment_methods(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    if not v:
        raise ValueError("At least one payment method is required.")
    unknown = sorted(set(v) - set(PaymentMethod.values))
    if unknown:
        raise ValueError(f"Unknown payment methods: {', '.join(unknown)}.")
    return list(dict.fromkeys(v))


class ImageDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    public_id: str = ""
    media_type: MediaType = MediaType.IMAGE


class SizeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: str = Field(min_length=1, max_length=20)
    stock: int = Field(default=0, ge=0)
    price: Decimal = Field(ge=0)
    original_price: Optional[Decimal] = Field(default=None, ge=0)


class VariantDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    color: str = Field(min_length=1, max_length=50)
    sizes: List[SizeDTO] = Field(min_length=1)
    images: List[ImageDTO] = []


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation (nested variants and sizes)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    category: str = Field(min_length=1, max_length=100)
    allowed_payment_methods: List[str] = Field(default_factory=default_payment_methods)
    variants: List[VariantDTO] = Field(min_length=1)

    @field_validator("allowed_payment_methods")
    @classmethod
    def payment_methods_supported(cls, v: List[str]) -> List[str]:
        return _check_payment_methods(v)


class UpdateProductDTO(BaseModel):
    """Partial update; only supplied fields change."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    allowed_payment_methods: Optional[List[str]] = None

    @field_validator("allowed_payment_methods")
    @classmethod
    def payment_methods_supported(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_payment_methods(v)


class UpdateSizeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    stock: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    original_price: Optional[Decimal] = Field(default=None, ge=0)


class ProductQueryDTO(BaseModel):
    """Listing filters; also the catalog cache key."""

    model_config = ConfigDict(frozen=True)

    category: Optional[str] = None
    search: Optional[str] = None
    owner_id: Optional[UUID] = None

    def cache_key(self) -> str:
        return self.model_dump_json()
