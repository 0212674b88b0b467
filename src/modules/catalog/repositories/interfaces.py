"""Catalog repository interface.

Besides the generic CRUD contract, exposes the stock primitives used by
checkout and cancellation: row-locking look-ups and conditional
(compare-and-swap) debit / credit of ``Size.stock``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Product, Size


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List products (variants, sizes and images prefetched)."""

    @abstractmethod
    def get_many(self, ids: Iterable[Any]) -> Dict[Any, Product]:
        """Products keyed by primary key; missing ids are simply absent."""

    @abstractmethod
    def get_size(self, size_id: Any) -> Optional[Size]:
        """Retrieve a size with its variant and product."""

    @abstractmethod
    def lock_sizes(self, size_ids: Iterable[Any]) -> Dict[Any, Size]:
        """Lock size rows (SELECT FOR UPDATE) in primary-key order."""

    @abstractmethod
    def debit_stock(self, size_id: Any, quantity: int) -> bool:
        """Decrement stock only if enough remains; ``False`` otherwise."""

    @abstractmethod
    def credit_stock(self, size_id: Any, quantity: int) -> bool:
        """Increment stock; ``False`` if the size no longer exists."""

    @abstractmethod
    def restore_stock(self, size_id: Any, stock: int) -> None:
        """Set stock back to a previously captured value."""
