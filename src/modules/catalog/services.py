"""Catalog service layer (Use Cases).

Reads go through ``CatalogCache``; every write invalidates the product
prefix once the surrounding transaction commits, including stock
movements made by checkout and cancellation (see ``invalidate_after_commit``).

Business rules enforced:
- Only the owning seller or an administrator may change a product.
- Payment-method allow-lists are non-empty subsets of the supported tags.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import structlog
from django.db import transaction

from modules.catalog.cache import CatalogCache, catalog_cache
from modules.catalog.constants import CATALOG_CACHE_PREFIX
from modules.catalog.exceptions import ProductAccessDenied, ProductNotFound, SizeNotFound
from modules.catalog.models import Product, ProductImage, Size, Variant

if TYPE_CHECKING:
    from modules.catalog.dtos import (
        CreateProductDTO,
        ProductQueryDTO,
        UpdateProductDTO,
        UpdateSizeDTO,
    )
    from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def invalidate_after_commit(cache: CatalogCache = catalog_cache) -> None:
    """Drop cached catalog reads once the current transaction commits."""
    transaction.on_commit(lambda: cache.invalidate_prefix(CATALOG_CACHE_PREFIX))


class CatalogService:
    """Application service for the product catalog."""

    def __init__(
        self,
        repository: IProductRepository,
        cache: CatalogCache = catalog_cache,
    ) -> None:
        self._repo = repository
        self._cache = cache

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, query: ProductQueryDTO) -> List[Product]:
        key = f"list:{query.cache_key()}"
        cached = self._cache.get(CATALOG_CACHE_PREFIX, key)
        if cached is not None:
            return cached

        filters = {}
        if query.category:
            filters["category__iexact"] = query.category
        if query.search:
            filters["name__icontains"] = query.search
        if query.owner_id:
            filters["owner_id"] = query.owner_id

        products = self._repo.list(filters)
        self._cache.set(CATALOG_CACHE_PREFIX, key, products)
        return products

    def get_product(self, id: str) -> Product:
        """Retrieve a single product.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        key = f"detail:{id}"
        product = self._cache.get(CATALOG_CACHE_PREFIX, key)
        if product is not None:
            return product

        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found")
        self._cache.set(CATALOG_CACHE_PREFIX, key, product)
        return product

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, owner, dto: CreateProductDTO) -> Product:
        product = Product(
            name=dto.name,
            description=dto.description,
            category=dto.category,
            owner=owner,
            allowed_payment_methods=list(dto.allowed_payment_methods),
        )
        product = self._repo.save(product)

        for variant_dto in dto.variants:
            variant = Variant.objects.create(product=product, color=variant_dto.color)
            Size.objects.bulk_create(
                [
                    Size(
                        variant=variant,
                        size=size_dto.size,
                        stock=size_dto.stock,
                        price=size_dto.price,
                        original_price=size_dto.original_price,
                    )
                    for size_dto in variant_dto.sizes
                ]
            )
            ProductImage.objects.bulk_create(
                [
                    ProductImage(
                        variant=variant,
                        url=image.url,
                        public_id=image.public_id,
                        media_type=image.media_type,
                    )
                    for image in variant_dto.images
                ]
            )

        invalidate_after_commit(self._cache)
        logger.info(
            "catalog.product_created",
            product_id=str(product.id),
            variants=len(dto.variants),
        )
        return self._repo.get_by_id(str(product.id)) or product

    @transaction.atomic
    def update_product(self, actor, id: str, dto: UpdateProductDTO) -> Product:
        """Update the descriptive fields of a product.

        Raises:
            ProductNotFound: if the product does not exist.
            ProductAccessDenied: actor is neither owner nor admin.
        """
        product = self._get_owned(actor, id)
        for field in ("name", "description", "category", "allowed_payment_methods"):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)
        product = self._repo.save(product)

        invalidate_after_commit(self._cache)
        logger.info("catalog.product_updated", product_id=str(id))
        return product

    @transaction.atomic
    def update_size(self, actor, size_id: str, dto: UpdateSizeDTO) -> Size:
        size = self._repo.get_size(size_id)
        if not size:
            raise SizeNotFound(f"Size {size_id} not found")
        self._check_ownership(actor, size.variant.product)

        fields = []
        for field in ("stock", "price", "original_price"):
            value = getattr(dto, field)
            if value is not None:
                setattr(size, field, value)
                fields.append(field)
        if fields:
            size.save(update_fields=fields)

        invalidate_after_commit(self._cache)
        logger.info("catalog.size_updated", size_id=str(size_id), fields=fields)
        return size

    @transaction.atomic
    def delete_product(self, actor, id: str) -> None:
        """Delete a product with its variants, sizes and media.

        Past orders keep their line snapshots; the item's product
        reference is nulled.
        """
        self._get_owned(actor, id)
        self._repo.delete(id)
        invalidate_after_commit(self._cache)
        logger.info("catalog.product_deleted", product_id=str(id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_owned(self, actor, id: str) -> Product:
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found")
        self._check_ownership(actor, product)
        return product

    @staticmethod
    def _check_ownership(actor, product: Product) -> None:
        if getattr(actor, "role", None) == "admin":
            return
        if product.owner_id != actor.pk:
            raise ProductAccessDenied()
