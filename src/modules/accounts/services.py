"""Cart and wishlist service layer (Use Cases).

Business rules enforced:
- A line references an existing product / variant / size triple.
- Adding an identical triple merges into the existing line.
- A line's quantity never exceeds the size's current stock.
- ``unit_price`` is re-snapshotted from the size whenever the line changes.
- A wishlist references existing products, each at most once.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import structlog
from django.db import transaction

from modules.accounts.dtos import (
    CartLineOutputDTO,
    CartOutputDTO,
    WishlistItemOutputDTO,
    WishlistOutputDTO,
)
from modules.accounts.exceptions import (
    AlreadyInWishlist,
    CartItemNotFound,
    WishlistItemNotFound,
)
from modules.accounts.models import CartItem, WishlistItem
from modules.catalog.exceptions import (
    InsufficientStock,
    ProductNotFound,
    SizeNotFound,
    VariantNotFound,
)

if TYPE_CHECKING:
    from modules.accounts.dtos import AddCartItemDTO, AddWishlistItemDTO, UpdateCartItemDTO
    from modules.accounts.repositories.interfaces import ICartRepository, IWishlistRepository
    from modules.catalog.models import Product, Size, Variant
    from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def find_variant(product: Product, variant_id) -> Optional[Variant]:
    for variant in product.variants.all():
        if variant.id == variant_id:
            return variant
    return None


def find_size(variant: Variant, size_id) -> Optional[Size]:
    for size in variant.sizes.all():
        if size.id == size_id:
            return size
    return None


class CartService:
    """Application service for the shopping cart."""

    def __init__(
        self,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._cart_repo = cart_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cart(self, user) -> CartOutputDTO:
        """Cart lines enriched with live catalog data.

        Lines whose product, variant or size has disappeared are kept and
        flagged ``available=False`` so the shopper can remove them.
        """
        lines = self._cart_repo.lines_for(user.pk)
        products = self._product_repo.get_many({line.product_id for line in lines})

        items = []
        for line in lines:
            product = products.get(line.product_id)
            variant = find_variant(product, line.variant_id) if product else None
            size = find_size(variant, line.size_id) if variant else None
            items.append(CartLineOutputDTO.from_entity(line, product, variant, size))

        subtotal = sum((item.line_total for item in items), Decimal("0.00"))
        return CartOutputDTO(
            items=items,
            item_count=sum(item.quantity for item in items),
            subtotal=subtotal,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, user, dto: AddCartItemDTO) -> CartItem:
        """Add a size to the cart or grow the matching line.

        Raises:
            ProductNotFound / VariantNotFound / SizeNotFound: bad reference.
            InsufficientStock: resulting quantity exceeds stock.
        """
        log = logger.bind(user_id=str(user.pk), size_id=str(dto.size_id))

        product = self._product_repo.get_by_id(str(dto.product_id))
        if not product:
            raise ProductNotFound(f"Product {dto.product_id} not found")
        variant = find_variant(product, dto.variant_id)
        if not variant:
            raise VariantNotFound(f"Variant not found for product {product.name}")
        size = find_size(variant, dto.size_id)
        if not size:
            raise SizeNotFound(f"Size not found for product {product.name}")

        line = self._cart_repo.find_line(user.pk, product.id, variant.id, size.id)
        quantity = dto.quantity + (line.quantity if line else 0)
        self._check_stock(product, size, quantity)

        if line is None:
            line = CartItem(
                user=user,
                product=product,
                variant_id=variant.id,
                size_id=size.id,
            )
        line.quantity = quantity
        line.unit_price = size.price
        line = self._cart_repo.save(line)

        log.info("cart.item_added", line_id=str(line.id), quantity=quantity)
        return line

    @transaction.atomic
    def update_item(self, user, line_id: str, dto: UpdateCartItemDTO) -> CartItem:
        line = self._cart_repo.get_line(user.pk, line_id)
        if not line:
            raise CartItemNotFound()

        size = self._product_repo.get_size(line.size_id)
        if not size:
            raise SizeNotFound()
        self._check_stock(size.variant.product, size, dto.quantity)

        line.quantity = dto.quantity
        line.unit_price = size.price
        line = self._cart_repo.save(line)
        logger.info("cart.item_updated", line_id=str(line.id), quantity=dto.quantity)
        return line

    @transaction.atomic
    def remove_item(self, user, line_id: str) -> None:
        line = self._cart_repo.get_line(user.pk, line_id)
        if not line:
            raise CartItemNotFound()
        self._cart_repo.delete(line.id)
        logger.info("cart.item_removed", line_id=str(line_id))

    @transaction.atomic
    def clear(self, user) -> int:
        return self._cart_repo.clear(user.pk)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_stock(product: Product, size: Size, quantity: int) -> None:
        if size.stock < quantity:
            raise InsufficientStock(
                f"Insufficient stock for {product.name} ({size.size}). "
                f"Available: {size.stock}, Requested: {quantity}"
            )


class WishlistService:
    """Application service for the wishlist."""

    def __init__(
        self,
        wishlist_repository: IWishlistRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._wishlist_repo = wishlist_repository
        self._product_repo = product_repository

    def get_wishlist(self, user) -> WishlistOutputDTO:
        items = [
            WishlistItemOutputDTO.from_entity(item)
            for item in self._wishlist_repo.items_for(user.pk)
        ]
        return WishlistOutputDTO(items=items, count=len(items))

    @transaction.atomic
    def add_item(self, user, dto: AddWishlistItemDTO) -> WishlistItem:
        """Save a product to the wishlist.

        Raises:
            ProductNotFound: no such product.
            AlreadyInWishlist: the product is already saved.
        """
        product = self._product_repo.get_by_id(str(dto.product_id))
        if not product:
            raise ProductNotFound(f"Product {dto.product_id} not found")

        item, created = self._wishlist_repo.add(user.pk, product.id)
        if not created:
            raise AlreadyInWishlist()

        logger.info("wishlist.item_added", user_id=str(user.pk), product_id=str(product.id))
        return item

    @transaction.atomic
    def remove_item(self, user, product_id: str) -> None:
        if not self._wishlist_repo.remove(user.pk, product_id):
            raise WishlistItemNotFound()
        logger.info("wishlist.item_removed", user_id=str(user.pk), product_id=str(product_id))
