"""Django ORM implementations of the user, cart and wishlist repositories."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from modules.accounts.models import CartItem, User, WishlistItem
from modules.accounts.repositories.interfaces import (
    ICartRepository,
    IUserRepository,
    IWishlistRepository,
)

logger = structlog.get_logger(__name__)


class UserDjangoRepository(IUserRepository):
    """Concrete User repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[User]:
        try:
            return User.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[User]:
        try:
            return User.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[User]:
        queryset = User.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: User) -> User:
        entity.save()
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        deleted, _ = User.objects.filter(id=id).delete()
        return deleted > 0


class CartDjangoRepository(ICartRepository):
    """Concrete cart repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[CartItem]:
        try:
            return CartItem.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[CartItem]:
        queryset = CartItem.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def lines_for(self, user_id: Any) -> List[CartItem]:
        return list(CartItem.objects.filter(user_id=user_id).order_by("created_at", "id"))

    def get_line(self, user_id: Any, line_id: Any) -> Optional[CartItem]:
        try:
            return CartItem.objects.filter(user_id=user_id, id=line_id).first()
        except (ValueError, ValidationError):
            return None

    def find_line(
        self, user_id: Any, product_id: Any, variant_id: Any, size_id: Any
    ) -> Optional[CartItem]:
        return CartItem.objects.filter(
            user_id=user_id,
            product_id=product_id,
            variant_id=variant_id,
            size_id=size_id,
        ).first()

    def save(self, entity: CartItem) -> CartItem:
        entity.save()
        return entity

    def delete(self, id: Any) -> bool:
        deleted, _ = CartItem.objects.filter(id=id).delete()
        return deleted > 0

    def clear(self, user_id: Any) -> int:
        deleted, _ = CartItem.objects.filter(user_id=user_id).delete()
        logger.info("cart.cleared", user_id=str(user_id), lines=deleted)
        return deleted


class WishlistDjangoRepository(IWishlistRepository):
    """Concrete wishlist repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[WishlistItem]:
        try:
            return WishlistItem.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[WishlistItem]:
        queryset = WishlistItem.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def items_for(self, user_id: Any) -> List[WishlistItem]:
        return list(
            WishlistItem.objects.filter(user_id=user_id)
            .select_related("product")
            .prefetch_related("product__variants__sizes", "product__variants__images")
            .order_by("created_at", "id")
        )

    def add(self, user_id: Any, product_id: Any) -> Tuple[WishlistItem, bool]:
        try:
            with transaction.atomic():
                return WishlistItem.objects.get_or_create(
                    user_id=user_id, product_id=product_id
                )
        except IntegrityError:
            # Lost a race with a concurrent add of the same product.
            return WishlistItem.objects.get(user_id=user_id, product_id=product_id), False

    def remove(self, user_id: Any, product_id: Any) -> bool:
        try:
            deleted, _ = WishlistItem.objects.filter(
                user_id=user_id, product_id=product_id
            ).delete()
        except (ValueError, ValidationError):
            return False
        return deleted > 0

    def save(self, entity: WishlistItem) -> WishlistItem:
        entity.save()
        return entity

    def delete(self, id: Any) -> bool:
        deleted, _ = WishlistItem.objects.filter(id=id).delete()
        return deleted > 0
