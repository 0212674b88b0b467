"""Account, cart and wishlist domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class EmailNotVerified(Forbidden):
    code = "EMAIL_NOT_VERIFIED"
    default_message = "Please verify your email before placing an order"


class CartItemNotFound(NotFound):
    code = "CART_ITEM_NOT_FOUND"
    default_message = "Cart item not found"


class InvalidCartData(ValidationFailed):
    code = "INVALID_CART_DATA"


class WishlistItemNotFound(NotFound):
    code = "WISHLIST_ITEM_NOT_FOUND"
    default_message = "Product not found in wishlist"


class AlreadyInWishlist(Conflict):
    code = "ALREADY_IN_WISHLIST"
    default_message = "Product already in wishlist"


class InvalidWishlistData(ValidationFailed):
    code = "INVALID_WISHLIST_DATA"
