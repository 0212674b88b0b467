"""Coupon repository interface.

Besides CRUD over ``Coupon``, the contract covers the assignment and
reservation rows the engine reads, and the compare-and-swap writes that
consume and release them.  Every ``bind_*`` / ``increment_*`` method
reports whether its guarded UPDATE matched a row so the caller can tell a
lost race from success.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.coupons.models import Coupon, CouponUsage, UserCoupon


class ICouponRepository(IRepository["Coupon"]):
    """Repository contract for coupons and their per-user state."""

    # -- coupons -------------------------------------------------------

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Coupon]:
        """List coupons (newest first) with optional ORM filters."""

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[Coupon]:
        """Case-insensitive look-up regardless of state."""

    @abstractmethod
    def get_redeemable(
        self, code: str, now: datetime, *, lock: bool = False
    ) -> Optional[Coupon]:
        """Active coupon whose validity window contains ``now``."""

    @abstractmethod
    def redeemable_universal(self, now: datetime) -> List[Coupon]:
        """Active, in-window universal coupons still under their usage limit."""

    @abstractmethod
    def increment_usage(self, coupon_id: Any) -> bool:
        """``usage_count += 1`` unless the limit is reached."""

    @abstractmethod
    def decrement_usage(self, coupon_id: Any) -> bool:
        """``usage_count -= 1`` unless already zero."""

    @abstractmethod
    def has_consumption(self, coupon_id: Any) -> bool:
        """Whether any order has consumed the coupon."""

    @abstractmethod
    def analytics(self, coupon_id: Any = None) -> List[Dict[str, Any]]:
        """Assigned / used / unused counts per coupon."""

    # -- assignments (welcome / user / loyalty) ------------------------

    @abstractmethod
    def get_assignment(self, user_id: Any, coupon_id: Any) -> Optional[UserCoupon]:
        """Any assignment of the coupon to the user."""

    @abstractmethod
    def find_open_assignment(
        self, user_id: Any, coupon_id: Any, *, lock: bool = False
    ) -> Optional[UserCoupon]:
        """The user's unused assignment of the coupon."""

    @abstractmethod
    def find_open_assignment_of_type(self, user_id: Any, coupon_type: str) -> Optional[UserCoupon]:
        """Any unused assignment of a coupon of ``coupon_type``."""

    @abstractmethod
    def find_assignment_of_type(self, user_id: Any, coupon_type: str) -> Optional[UserCoupon]:
        """The user's earliest assignment of ``coupon_type``, used or not."""

    @abstractmethod
    def open_assignments(self, user_id: Any, now: datetime) -> List[Coupon]:
        """Redeemable coupons the user holds an unused assignment for."""

    @abstractmethod
    def create_assignment(self, user_id: Any, coupon: Coupon) -> UserCoupon:
        """Assign the coupon to the user."""

    @abstractmethod
    def bind_assignment(
        self, user_id: Any, coupon_id: Any, order_id: Any, used_at: datetime
    ) -> bool:
        """Mark the open assignment used by ``order_id``."""

    @abstractmethod
    def release_assignment(self, order_id: Any) -> int:
        """Reopen the assignment consumed by ``order_id``."""

    # -- universal reservations ----------------------------------------

    @abstractmethod
    def get_usage(self, user_id: Any, coupon_id: Any, *, lock: bool = False) -> Optional[CouponUsage]:
        """The user's usage row for the coupon (reserved or consumed)."""

    @abstractmethod
    def ensure_reservation(self, user_id: Any, coupon: Coupon) -> CouponUsage:
        """Return the user's usage row, creating an unbound one if absent."""

    @abstractmethod
    def create_reservations(self, user_id: Any, coupons: List[Coupon]) -> int:
        """Create unbound rows, skipping coupons already reserved."""

    @abstractmethod
    def bind_reservation(self, user_id: Any, coupon_id: Any, order_id: Any) -> bool:
        """Attach the unbound reservation to ``order_id``."""

    @abstractmethod
    def delete_reservation(self, order_id: Any) -> List[Any]:
        """Delete usage rows bound to ``order_id``; return their coupon ids."""
