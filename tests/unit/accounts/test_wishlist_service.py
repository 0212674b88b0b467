"""Unit tests for WishlistService."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.accounts.dtos import AddWishlistItemDTO
from modules.accounts.exceptions import AlreadyInWishlist, WishlistItemNotFound
from modules.accounts.models import WishlistItem
from modules.accounts.repositories.django_repository import WishlistDjangoRepository
from modules.accounts.services import WishlistService
from modules.catalog.exceptions import ProductNotFound
from modules.catalog.models import ProductImage, Size
from modules.catalog.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def wishlist():
    return WishlistService(
        wishlist_repository=WishlistDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


def _add(listing):
    return AddWishlistItemDTO(product_id=listing.product.id)


class TestAddItem:
    def test_saves_product(self, wishlist, shopper, listing):
        item = wishlist.add_item(shopper, _add(listing))

        assert item.product_id == listing.product.id
        assert WishlistItem.objects.filter(user=shopper).count() == 1

    def test_same_product_twice_conflicts(self, wishlist, shopper, listing):
        wishlist.add_item(shopper, _add(listing))
        with pytest.raises(AlreadyInWishlist, match="Product already in wishlist"):
            wishlist.add_item(shopper, _add(listing))
        assert WishlistItem.objects.filter(user=shopper).count() == 1

    def test_unknown_product(self, wishlist, shopper):
        with pytest.raises(ProductNotFound):
            wishlist.add_item(shopper, AddWishlistItemDTO(product_id=uuid4()))

    def test_wishlists_are_per_user(self, wishlist, shopper, other_shopper, listing):
        wishlist.add_item(shopper, _add(listing))
        wishlist.add_item(other_shopper, _add(listing))
        assert WishlistItem.objects.count() == 2

    def test_product_id_must_be_a_uuid(self):
        with pytest.raises(ValidationError):
            AddWishlistItemDTO(product_id="not-a-uuid")


class TestRemoveItem:
    def test_removes_product(self, wishlist, shopper, listing):
        wishlist.add_item(shopper, _add(listing))
        wishlist.remove_item(shopper, str(listing.product.id))
        assert not WishlistItem.objects.filter(user=shopper).exists()

    def test_product_not_in_wishlist(self, wishlist, shopper, listing):
        with pytest.raises(WishlistItemNotFound, match="Product not found in wishlist"):
            wishlist.remove_item(shopper, str(listing.product.id))

    def test_malformed_id_is_not_found(self, wishlist, shopper):
        with pytest.raises(WishlistItemNotFound):
            wishlist.remove_item(shopper, "not-a-uuid")

    def test_cannot_remove_from_another_users_wishlist(
        self, wishlist, shopper, other_shopper, listing
    ):
        wishlist.add_item(other_shopper, _add(listing))
        with pytest.raises(WishlistItemNotFound):
            wishlist.remove_item(shopper, str(listing.product.id))
        assert WishlistItem.objects.filter(user=other_shopper).exists()


class TestGetWishlist:
    def test_summarises_first_variant_and_size(self, wishlist, shopper, listing):
        Size.objects.create(
            variant=listing.variant, size="L", stock=9, price=Decimal("120.00")
        )
        ProductImage.objects.create(variant=listing.variant, url="https://cdn.example.com/a.jpg")
        wishlist.add_item(shopper, _add(listing))

        result = wishlist.get_wishlist(shopper)

        assert result.count == 1
        entry = result.items[0]
        assert entry.product_id == listing.product.id
        assert entry.name == "Linen Shirt"
        assert entry.price == Decimal("100.00")
        assert entry.stock == 5
        assert entry.images == ["https://cdn.example.com/a.jpg"]

    def test_product_without_variants(self, wishlist, shopper, listing):
        listing.variant.delete()
        wishlist.add_item(shopper, _add(listing))

        entry = wishlist.get_wishlist(shopper).items[0]

        assert entry.price == Decimal("0.00")
        assert entry.stock == 0
        assert entry.images == []

    def test_deleted_product_leaves_the_wishlist(self, wishlist, shopper, listing):
        wishlist.add_item(shopper, _add(listing))
        listing.product.delete()

        assert wishlist.get_wishlist(shopper).count == 0

    def test_empty(self, wishlist, shopper):
        result = wishlist.get_wishlist(shopper)
        assert result.items == []
        assert result.count == 0
