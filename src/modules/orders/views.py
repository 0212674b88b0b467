"""Order API views.

Exposes ``OrderService`` via HTTP using DRF ViewSets.  Domain errors
propagate to the envelope exception handler; views never catch them.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.repositories.django_repository import (
    CartDjangoRepository,
    UserDjangoRepository,
)
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import IsOwnerOrAdminRole
from modules.core.validation import pydantic_errors
from modules.coupons.engine import CouponEngine
from modules.coupons.repositories.django_repository import CouponDjangoRepository
from modules.orders.dtos import CheckoutDTO, DashboardQueryDTO, UpdateOrderStatusDTO
from modules.orders.exceptions import (
    InvalidOrderData,
    InvalidOrderStatus,
    InvalidQuantity,
    MissingShippingAddress,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import OrderListSerializer, OrderSerializer
from modules.orders.services import OrderService


def _checkout_dto(data) -> CheckoutDTO:
    try:
        return CheckoutDTO.model_validate(data)
    except PydanticValidationError as exc:
        errors = pydantic_errors(exc)
        field = exc.errors()[0]["loc"][0] if exc.errors() else None
        if field in {"shipping_address", "shippingAddress"}:
            raise MissingShippingAddress(extra={"errors": errors}) from exc
        if field == "quantities":
            raise InvalidQuantity(extra={"errors": errors}) from exc
        raise InvalidOrderData(extra={"errors": errors}) from exc


class OrderViewSet(GenericViewSet):
    """ViewSet for checkout and order management.

    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repository = OrderDjangoRepository()
        self._service = OrderService(
            order_repository=order_repository,
            user_repository=UserDjangoRepository(),
            cart_repository=CartDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            coupon_engine=CouponEngine(CouponDjangoRepository(), order_repository),
        )

    def get_permissions(self):
        if self.action in {"update", "partial_update"}:
            return [IsOwnerOrAdminRole()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "dashboard"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        dto = _checkout_dto(request.data)
        order = self._service.create_order(request.user, dto)

        body = {
            "success": True,
            "message": "Order created successfully",
            "order": OrderSerializer(order).data,
        }
        if order.discount_amount > 0:
            body["savings"] = f"{order.discount_amount:.2f}"
        return Response(body, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_orders(self.request.user)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, user, payment method, date and total ranges) is
        handled by ``OrderFilter``; non-admins only ever see their own.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(OrderListSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(request.user, pk)
        return Response({"success": True, "order": OrderSerializer(order).data})

    @action(detail=False, methods=["get"])
    def dashboard(self, request: Request) -> Response:
        """GET /api/v1/orders/dashboard/?page=&limit=&status=&sortBy=&order="""
        try:
            query = DashboardQueryDTO.model_validate(request.query_params.dict())
        except PydanticValidationError as exc:
            raise InvalidOrderData(
                "Invalid dashboard query", extra={"errors": pydantic_errors(exc)}
            ) from exc

        result = self._service.dashboard(request.user, query)
        return Response(
            {
                "success": True,
                "orders": OrderListSerializer(result["orders"], many=True).data,
                "pagination": result["pagination"],
                "statistics": result["statistics"],
                "role": result["role"],
            }
        )

    # ------------------------------------------------------------------
    # Status update / delete
    # ------------------------------------------------------------------

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/orders/{pk}/"""
        try:
            dto = UpdateOrderStatusDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            raise InvalidOrderStatus(extra={"errors": pydantic_errors(exc)}) from exc

        order = self._service.update_status(request.user, pk, dto)
        return Response(
            {
                "success": True,
                "message": "Order status updated successfully",
                "order": OrderSerializer(order).data,
            }
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/

        Restores stock and releases the coupon before removing the order.
        """
        self._service.delete_order(request.user, pk)
        return Response(
            {"success": True, "message": "Order cancelled and stock restored successfully"}
        )
