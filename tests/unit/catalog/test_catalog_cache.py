"""Unit tests for the catalog read cache and its invalidation."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.catalog.cache import CatalogCache
from modules.catalog.constants import CATALOG_CACHE_PREFIX
from modules.catalog.dtos import ProductQueryDTO, UpdateSizeDTO
from modules.catalog.exceptions import InsufficientStock
from modules.catalog.models import Size
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.services import CatalogService

pytestmark = pytest.mark.unit


@pytest.fixture()
def cache():
    return CatalogCache()


@pytest.fixture()
def catalog(cache):
    return CatalogService(repository=ProductDjangoRepository(), cache=cache)


class TestCatalogCache:
    def test_miss_returns_default(self, cache):
        assert cache.get("products", "missing") is None
        assert cache.get("products", "missing", default=[]) == []

    def test_set_then_get(self, cache):
        cache.set("products", "list:a", ["x"])
        assert cache.get("products", "list:a") == ["x"]

    def test_falsy_values_are_cached(self, cache):
        cache.set("products", "list:empty", [])
        assert cache.get("products", "list:empty", default="miss") == []

    def test_invalidate_prefix_drops_every_key(self, cache):
        cache.set("products", "list:a", 1)
        cache.set("products", "detail:b", 2)
        cache.set("other", "k", 3)

        cache.invalidate_prefix("products")

        assert cache.get("products", "list:a") is None
        assert cache.get("products", "detail:b") is None
        assert cache.get("other", "k") == 3

    def test_zero_timeout_is_not_stored(self, cache):
        cache.set("products", "k", 1, timeout=0)
        assert cache.get("products", "k") is None

    def test_prefix_is_flushed_past_max_entries(self):
        small = CatalogCache(max_entries=2)
        small.set("bounded", "a", 1)
        small.set("bounded", "b", 2)
        assert small.get("bounded", "a") == 1

        small.set("bounded", "c", 3)

        assert small.get("bounded", "a") is None
        assert small.get("bounded", "b") is None
        assert small.get("bounded", "c") == 3

    def test_cap_is_per_prefix(self):
        small = CatalogCache(max_entries=1)
        small.set("left", "k", 1)
        small.set("right", "k", 2)
        assert small.get("left", "k") == 1
        assert small.get("right", "k") == 2


class TestCatalogServiceCaching:
    def test_product_list_is_served_from_cache(self, catalog, listing):
        query = ProductQueryDTO(category="shirts")
        assert [p.id for p in catalog.list_products(query)] == [listing.product.id]

        listing.product.delete()

        assert len(catalog.list_products(query)) == 1

    def test_size_update_invalidates_after_commit(
        self, catalog, listing, seller, django_capture_on_commit_callbacks
    ):
        product = catalog.get_product(str(listing.product.id))
        assert product.variants.all()[0].sizes.all()[0].stock == 5

        with django_capture_on_commit_callbacks(execute=True):
            catalog.update_size(seller, str(listing.size.id), UpdateSizeDTO(stock=9))

        product = catalog.get_product(str(listing.product.id))
        assert product.variants.all()[0].sizes.all()[0].stock == 9

    def test_checkout_invalidates_after_commit(
        self,
        catalog,
        cache,
        order_service,
        shopper,
        listing,
        add_to_cart,
        checkout,
        django_capture_on_commit_callbacks,
    ):
        catalog.list_products(ProductQueryDTO())
        cache.set(CATALOG_CACHE_PREFIX, "sentinel", True)
        add_to_cart(shopper, listing, quantity=2)

        with django_capture_on_commit_callbacks(execute=True):
            order_service.create_order(shopper, checkout())

        assert cache.get(CATALOG_CACHE_PREFIX, "sentinel") is None
        assert Size.objects.get(id=listing.size.id).stock == 3

    def test_rolled_back_checkout_keeps_the_cache(
        self,
        cache,
        order_service,
        shopper,
        listing,
        add_to_cart,
        checkout,
        django_capture_on_commit_callbacks,
    ):
        cache.set(CATALOG_CACHE_PREFIX, "sentinel", Decimal("1"))
        add_to_cart(shopper, listing, quantity=9)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(InsufficientStock):
                order_service.create_order(shopper, checkout())

        assert callbacks == []
        assert cache.get(CATALOG_CACHE_PREFIX, "sentinel") == Decimal("1")
