"""Catalog API views.

Anyone may browse; sellers (``owner`` role) and admins manage products.
Domain errors propagate to the envelope exception handler.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.catalog.dtos import (
    CreateProductDTO,
    ProductQueryDTO,
    UpdateProductDTO,
    UpdateSizeDTO,
)
from modules.catalog.exceptions import InvalidProductData
from modules.catalog.models import Product
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.serializers import ProductSerializer, SizeSerializer
from modules.catalog.services import CatalogService
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import IsOwnerOrAdminRole
from modules.core.validation import pydantic_errors


class ProductViewSet(GenericViewSet):
    """ViewSet for the product catalog.

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    ``CatalogService`` and its repository.
    """

    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CatalogService(repository=ProductDjangoRepository())

    def get_permissions(self):
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsOwnerOrAdminRole()]

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/products/?category=&search=&owner="""
        params = request.query_params
        try:
            query = ProductQueryDTO(
                category=params.get("category") or None,
                search=params.get("search") or None,
                owner_id=params.get("owner") or None,
            )
        except PydanticValidationError as exc:
            raise InvalidProductData(
                "Invalid product filters", extra={"errors": pydantic_errors(exc)}
            ) from exc

        products = self._service.list_products(query)
        page = self.paginate_queryset(products)
        serializer = ProductSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        product = self._service.get_product(pk)
        return Response({"success": True, "product": ProductSerializer(product).data})

    # ------------------------------------------------------------------
    # Create / Update / Destroy
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        try:
            dto = CreateProductDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            raise InvalidProductData(
                "Invalid product data", extra={"errors": pydantic_errors(exc)}
            ) from exc

        product = self._service.create_product(request.user, dto)
        return Response(
            {"success": True, "product": ProductSerializer(product).data},
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/"""
        try:
            dto = UpdateProductDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            raise InvalidProductData(
                "Invalid product data", extra={"errors": pydantic_errors(exc)}
            ) from exc

        product = self._service.update_product(request.user, pk, dto)
        return Response({"success": True, "product": ProductSerializer(product).data})

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/products/{pk}/"""
        self._service.delete_product(request.user, pk)
        return Response({"success": True, "message": "Product deleted"})

    @action(detail=False, methods=["patch"], url_path=r"sizes/(?P<size_id>[^/.]+)")
    def update_size(self, request: Request, size_id: str | None = None) -> Response:
        """PATCH /api/v1/products/sizes/{size_id}/

        Adjusts stock and pricing of a single size.
        """
        try:
            dto = UpdateSizeDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            raise InvalidProductData(
                "Invalid size data", extra={"errors": pydantic_errors(exc)}
            ) from exc

        size = self._service.update_size(request.user, size_id, dto)
        return Response({"success": True, "size": SizeSerializer(size).data})
