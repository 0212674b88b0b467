"""Cart and wishlist API views."""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.accounts.dtos import AddCartItemDTO, AddWishlistItemDTO, UpdateCartItemDTO
from modules.accounts.exceptions import InvalidCartData, InvalidWishlistData
from modules.accounts.repositories.django_repository import (
    CartDjangoRepository,
    WishlistDjangoRepository,
)
from modules.accounts.serializers import CartItemSerializer, WishlistItemSerializer
from modules.accounts.services import CartService, WishlistService
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.core.validation import pydantic_errors


class CartViewSet(ViewSet):
    """The authenticated user's cart."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(
            cart_repository=CartDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/cart/"""
        cart = self._service.get_cart(request.user)
        return Response({"success": True, "cart": cart.model_dump(mode="json")})

    def create(self, request: Request) -> Response:
        """POST /api/v1/cart/"""
        try:
            dto = AddCartItemDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            raise InvalidCartData(
                "Invalid cart item", extra={"errors": pydantic_errors(exc)}
            ) from exc

        line = self._service.add_item(request.user, dto)
        return Response(
            {"success": True, "item": CartItemSerializer(line).data},
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/cart/{pk}/"""
        try:
            dto = UpdateCartItemDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            raise InvalidCartData(
                "Invalid quantity", extra={"errors": pydantic_errors(exc)}
            ) from exc

        line = self._service.update_item(request.user, pk, dto)
        return Response({"success": True, "item": CartItemSerializer(line).data})

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/cart/{pk}/"""
        self._service.remove_item(request.user, pk)
        return Response({"success": True, "message": "Item removed from cart"})

    @action(detail=False, methods=["delete"])
    def clear(self, request: Request) -> Response:
        """DELETE /api/v1/cart/clear/"""
        removed = self._service.clear(request.user)
        return Response({"success": True, "message": "Cart cleared", "removed": removed})


class WishlistViewSet(ViewSet):
    """The authenticated user's wishlist; entries are addressed by product id."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = WishlistService(
            wishlist_repository=WishlistDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/wishlist/"""
        wishlist = self._service.get_wishlist(request.user)
        return Response({"success": True, "wishlist": wishlist.model_dump(mode="json")})

    def create(self, request: Request) -> Response:
        """POST /api/v1/wishlist/"""
        try:
            dto = AddWishlistItemDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            raise InvalidWishlistData(
                "Invalid product ID format", extra={"errors": pydantic_errors(exc)}
            ) from exc

        item = self._service.add_item(request.user, dto)
        return Response(
            {
                "success": True,
                "message": "Product added to wishlist",
                "item": WishlistItemSerializer(item).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/wishlist/{product_id}/"""
        self._service.remove_item(request.user, pk)
        return Response({"success": True, "message": "Product removed from wishlist"})
