"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: atomic creation with items, status history tracking, row
locking for status changes/cancellation and the dashboard statistics.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` holds the order fields plus ``items``: a list of dicts
        with ``product_id``, ``variant_id``, ``size_id``, ``product_name``,
        ``color``, ``size_label``, ``quantity`` and ``unit_price``.
        """

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order under a row-level lock (``None`` if missing)."""

    @abstractmethod
    def add_history(
        self,
        order_id: Any,
        status: str,
        *,
        old_status: Optional[str] = None,
        changed_by: Any = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def count_open_orders(self, user_id: Any) -> int:
        """Number of the user's orders that are not cancelled."""

    @abstractmethod
    def for_owner(self, owner_id: Any) -> QuerySet:
        """Orders containing at least one product owned by ``owner_id``."""

    @abstractmethod
    def owns_any_product(self, order: Order, owner_id: Any) -> bool:
        """Whether ``owner_id`` owns a product referenced by the order."""

    @abstractmethod
    def dashboard(
        self,
        *,
        owner_id: Any = None,
        status: Optional[str] = None,
        ordering: str = "-created_at",
    ) -> QuerySet:
        """Role-scoped queryset backing the dashboard."""

    @abstractmethod
    def statistics(self, queryset: QuerySet) -> Dict[str, Any]:
        """Revenue, order count and per-status counts over ``queryset``."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def query(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Lazy, eager-loading queryset for API filtering and pagination."""
