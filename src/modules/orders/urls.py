"""Order URL configuration.

``/orders/`` (checkout, list), ``/orders/{id}/`` (retrieve, status update,
delete) and ``/orders/dashboard/``.
"""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.orders.views import OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
