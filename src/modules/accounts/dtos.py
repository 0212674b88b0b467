"""Cart and wishlist DTOs for the Service Layer (Pydantic v2, immutable)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from modules.accounts.models import CartItem, WishlistItem


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class AddCartItemDTO(BaseModel):
    """Add ``quantity`` of one size to the cart (merged with an identical line)."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    variant_id: UUID
    size_id: UUID
    quantity: int = Field(default=1, ge=1)


class UpdateCartItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: int = Field(ge=1)


class AddWishlistItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class CartLineOutputDTO(BaseModel):
    """A cart line with the live state of the size it references."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    product_id: UUID
    product_name: Optional[str]
    variant_id: UUID
    color: Optional[str]
    size_id: UUID
    size: Optional[str]
    quantity: int
    unit_price: Decimal
    current_price: Optional[Decimal]
    stock: Optional[int]
    line_total: Decimal
    available: bool

    @classmethod
    def from_entity(cls, line: CartItem, product, variant, size) -> CartLineOutputDTO:
        return cls(
            id=line.id,
            product_id=line.product_id,
            product_name=product.name if product else None,
            variant_id=line.variant_id,
            color=variant.color if variant else None,
            size_id=line.size_id,
            size=size.size if size else None,
            quantity=line.quantity,
            unit_price=line.unit_price,
            current_price=size.price if size else None,
            stock=size.stock if size else None,
            line_total=line.unit_price * line.quantity,
            available=size is not None and size.stock >= line.quantity,
        )


class CartOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[CartLineOutputDTO]
    item_count: int
    subtotal: Decimal


class WishlistItemOutputDTO(BaseModel):
    """A saved product summarised by its first variant and size."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    product_id: UUID
    name: str
    description: str
    category: str
    price: Decimal
    stock: int
    images: List[str]
    added_at: datetime

    @classmethod
    def from_entity(cls, item: WishlistItem) -> WishlistItemOutputDTO:
        product = item.product
        variants = list(product.variants.all())
        first_variant = variants[0] if variants else None
        sizes = list(first_variant.sizes.all()) if first_variant else []
        first_size = sizes[0] if sizes else None
        return cls(
            id=item.id,
            product_id=product.id,
            name=product.name,
            description=product.description,
            category=product.category,
            price=first_size.price if first_size else Decimal("0.00"),
            stock=first_size.stock if first_size else 0,
            images=[image.url for image in first_variant.images.all()] if first_variant else [],
            added_at=item.created_at,
        )


class WishlistOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[WishlistItemOutputDTO]
    count: int
