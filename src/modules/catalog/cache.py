"""Bounded TTL cache for catalog reads.

Entries live in the ``catalog`` cache alias and expire after
``CATALOG_CACHE_TTL`` seconds.  Keys are namespaced by a per-prefix version
number::

    catalog:<prefix>:<version>:<digest of key>

``invalidate_prefix`` bumps the version, so every entry written under the
old version becomes unreachable at once and ages out on its own.  Each
version also counts its writes; once ``CATALOG_CACHE_MAX_ENTRIES`` is
exceeded the prefix is invalidated, so no prefix holds more live entries
than the cap whatever the backend.
"""

from __future__ import annotations

import hashlib
import time
from typing import Any, Optional

import structlog
from django.conf import settings
from django.core.cache import caches

logger = structlog.get_logger(__name__)

_MISSING = object()


class CatalogCache:
    """get / set / invalidate-by-prefix over a Django cache alias."""

    def __init__(
        self,
        alias: str = "catalog",
        timeout: Optional[int] = None,
        max_entries: Optional[int] = None,
    ) -> None:
        self._alias = alias
        self._timeout = timeout
        self._max_entries = max_entries

    @property
    def _cache(self):
        return caches[self._alias]

    @property
    def timeout(self) -> int:
        if self._timeout is not None:
            return self._timeout
        return getattr(settings, "CATALOG_CACHE_TTL", 300)

    @property
    def max_entries(self) -> int:
        if self._max_entries is not None:
            return self._max_entries
        return getattr(settings, "CATALOG_CACHE_MAX_ENTRIES", 500)

    # ------------------------------------------------------------------
    # Key management
    # ------------------------------------------------------------------

    @staticmethod
    def _version_key(prefix: str) -> str:
        return f"catalog:{prefix}:version"

    def _version(self, prefix: str) -> int:
        key = self._version_key(prefix)
        version = self._cache.get(key)
        if version is None:
            # Clock-seeded: a culled version key must never reuse an old version.
            self._cache.add(key, time.time_ns(), timeout=None)
            version = self._cache.get(key, 0)
        return version

    @staticmethod
    def _entry_key(prefix: str, version: int, key: str) -> str:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return f"catalog:{prefix}:{version}:{digest}"

    def _key(self, prefix: str, key: str) -> str:
        return self._entry_key(prefix, self._version(prefix), key)

    def _count_write(self, prefix: str, version: int) -> int:
        key = f"catalog:{prefix}:{version}:count"
        self._cache.add(key, 0, timeout=self.timeout)
        try:
            return self._cache.incr(key)
        except ValueError:
            # Counter expired between add and incr.
            self._cache.set(key, 1, timeout=self.timeout)
            return 1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, prefix: str, key: str, default: Any = None) -> Any:
        value = self._cache.get(self._key(prefix, key), _MISSING)
        if value is _MISSING:
            logger.debug("catalog_cache.miss", prefix=prefix, key=key)
            return default
        logger.debug("catalog_cache.hit", prefix=prefix, key=key)
        return value

    def set(self, prefix: str, key: str, value: Any, timeout: Optional[int] = None) -> None:
        version = self._version(prefix)
        if self._count_write(prefix, version) > self.max_entries:
            logger.info("catalog_cache.full", prefix=prefix, max_entries=self.max_entries)
            self.invalidate_prefix(prefix)
            version = self._version(prefix)
            self._count_write(prefix, version)
        self._cache.set(
            self._entry_key(prefix, version, key),
            value,
            timeout=self.timeout if timeout is None else timeout,
        )

    def invalidate_prefix(self, prefix: str) -> None:
        key = self._version_key(prefix)
        try:
            self._cache.incr(key)
        except ValueError:
            self._cache.set(key, time.time_ns(), timeout=None)
        logger.info("catalog_cache.invalidated", prefix=prefix)


catalog_cache = CatalogCache()
