"""Coupon API views.

Staff (admin/owner) manage coupons; any authenticated user can list
redeemable coupons, see their own and dry-run a code against their cart.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.accounts.repositories.django_repository import (
    CartDjangoRepository,
    UserDjangoRepository,
)
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import IsOwnerOrAdminRole
from modules.core.validation import first_error_message, pydantic_errors
from modules.coupons.dtos import (
    AssignCouponDTO,
    CouponQueryDTO,
    CreateCouponDTO,
    UpdateCouponDTO,
    ValidateCouponDTO,
)
from modules.coupons.engine import CouponEngine
from modules.coupons.exceptions import InvalidCouponData
from modules.coupons.models import Coupon, UserCoupon
from modules.coupons.repositories.django_repository import CouponDjangoRepository
from modules.coupons.serializers import (
    CouponAnalyticsSerializer,
    CouponSerializer,
    CouponUsageSerializer,
    UserCouponSerializer,
)
from modules.coupons.services import CouponService
from modules.orders.repositories.django_repository import OrderDjangoRepository


def _dto(dto_class, data, message=None):
    try:
        return dto_class.model_validate(data)
    except PydanticValidationError as exc:
        raise InvalidCouponData(
            message or first_error_message(exc),
            extra={"errors": pydantic_errors(exc)},
        ) from exc


class CouponViewSet(GenericViewSet):
    """ViewSet for coupon administration and redemption preview."""

    queryset = Coupon.objects.all()
    serializer_class = CouponSerializer
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        repository = CouponDjangoRepository()
        self._service = CouponService(
            repository=repository,
            engine=CouponEngine(repository, OrderDjangoRepository()),
            user_repository=UserDjangoRepository(),
            cart_repository=CartDjangoRepository(),
        )

    def get_permissions(self):
        if self.action in {"list", "mine", "validate"}:
            return [IsAuthenticated()]
        return [IsOwnerOrAdminRole()]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/coupons/?type=&is_active="""
        query = _dto(
            CouponQueryDTO,
            {k: v for k, v in request.query_params.items() if k in {"type", "is_active"}},
        )
        coupons = self._service.list_coupons(request.user, query)
        page = self.paginate_queryset(coupons)
        return self.get_paginated_response(CouponSerializer(page, many=True).data)

    @action(detail=False, methods=["get"])
    def mine(self, request: Request) -> Response:
        """GET /api/v1/coupons/mine/"""
        coupons = self._service.user_coupons(request.user)
        return Response(
            {"success": True, "coupons": CouponSerializer(coupons, many=True).data}
        )

    @action(detail=False, methods=["get"])
    def analytics(self, request: Request) -> Response:
        """GET /api/v1/coupons/analytics/?coupon_id="""
        coupon_id = request.query_params.get("coupon_id") or None
        rows = self._service.analytics(coupon_id)
        return Response(
            {"success": True, "analytics": CouponAnalyticsSerializer(rows, many=True).data}
        )

    @action(detail=False, methods=["post"])
    def validate(self, request: Request) -> Response:
        """POST /api/v1/coupons/validate/

        Dry run: never reserves or consumes anything.
        """
        dto = _dto(
            ValidateCouponDTO,
            request.data,
            "Valid coupon code and order amount are required",
        )
        result = self._service.validate_coupon(request.user, dto)
        body = {"success": result.is_valid, "message": result.message}
        if result.is_valid:
            body["coupon"] = CouponSerializer(result.coupon).data
            body["discount_amount"] = f"{result.discount_amount:.2f}"
        else:
            body["code"] = "INVALID_COUPON"
        return Response(body, status=status.HTTP_200_OK)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/coupons/"""
        dto = _dto(CreateCouponDTO, request.data)
        coupon = self._service.create_coupon(request.user, dto)
        return Response(
            {
                "success": True,
                "message": "Coupon created successfully",
                "coupon": CouponSerializer(coupon).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/coupons/{pk}/"""
        dto = _dto(UpdateCouponDTO, request.data)
        coupon = self._service.update_coupon(request.user, pk, dto)
        return Response(
            {
                "success": True,
                "message": "Coupon updated successfully",
                "coupon": CouponSerializer(coupon).data,
            }
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/coupons/{pk}/"""
        deleted = self._service.delete_coupon(request.user, pk)
        message = (
            "Coupon deleted successfully"
            if deleted
            else "Coupon deactivated (has been used by customers)"
        )
        return Response({"success": True, "message": message})

    @action(detail=False, methods=["post"])
    def assign(self, request: Request) -> Response:
        """POST /api/v1/coupons/assign/"""
        dto = _dto(AssignCouponDTO, request.data, "Coupon ID and User ID are required")
        assignment = self._service.assign_coupon(request.user, dto)
        serializer_class = (
            UserCouponSerializer if isinstance(assignment, UserCoupon) else CouponUsageSerializer
        )
        return Response(
            {
                "success": True,
                "message": "Coupon assigned successfully",
                "assignment": serializer_class(assignment).data,
            },
            status=status.HTTP_201_CREATED,
        )
