"""Cart and wishlist URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.accounts.views import CartViewSet, WishlistViewSet

router = DefaultRouter(trailing_slash=True)
router.register("cart", CartViewSet, basename="cart")
router.register("wishlist", WishlistViewSet, basename="wishlist")

urlpatterns = router.urls
