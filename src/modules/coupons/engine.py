"""Coupon engine: redeemability, discount math and consumption.

One algorithm serves both the shopper's "is my coupon valid?" preview and
the checkout commit.  ``evaluate`` is strictly read-only; the commit path
calls it with ``lock=True`` inside the checkout transaction and then makes
the mutations explicit:

1. ``ensure_reservation`` gives a universal coupon its per-user row.
2. ``consume`` binds the assignment/reservation to the new order
   (compare-and-swap) and, for universal coupons, bumps ``usage_count``
   under the limit guard.
3. ``release`` reverses step 2 when the order is cancelled or deleted.

Checks run in a fixed order and the first failure wins:

* coupon exists, is active and ``valid_from <= now <= valid_until``;
* ``subtotal >= minimum_order_value``;
* product restriction intersects the cart;
* universal usage limit not reached;
* discount computed (percentage capped by ``maximum_discount``, fixed
  never above the subtotal);
* per-type eligibility gate, one dispatch entry per ``CouponType``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Optional
from uuid import UUID

import structlog
from django.utils import timezone

from modules.coupons.constants import (
    WELCOME_ELIGIBILITY_DAYS,
    CouponType,
    DiscountType,
)
from modules.coupons.exceptions import CouponReservationMissing, InvalidCoupon

if TYPE_CHECKING:
    from modules.coupons.models import Coupon
    from modules.coupons.repositories.interfaces import ICouponRepository
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class CouponEvaluation:
    """Outcome of ``CouponEngine.evaluate``."""

    is_valid: bool
    message: str
    coupon: Optional[Coupon] = None
    discount_amount: Decimal = Decimal("0.00")


def format_amount(value: Decimal) -> str:
    """``Decimal("500.00")`` -> ``"500"``, ``Decimal("49.50")`` -> ``"49.5"``."""
    normalized = Decimal(value).normalize()
    return format(normalized, "f")


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """Discount for ``subtotal`` under the coupon's policy, in cents."""
    subtotal = Decimal(subtotal)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = (Decimal(coupon.discount_value) / 100 * subtotal).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        if coupon.maximum_discount is not None and discount > coupon.maximum_discount:
            discount = Decimal(coupon.maximum_discount)
    else:
        discount = min(Decimal(coupon.discount_value), subtotal)
    return discount.quantize(CENT, rounding=ROUND_HALF_UP)


class CouponEngine:
    """Decides whether a code is redeemable and tracks its consumption."""

    def __init__(
        self,
        coupon_repository: ICouponRepository,
        order_repository: IOrderRepository,
    ) -> None:
        self._repo = coupon_repository
        self._orders = order_repository
        self._eligibility: Dict[str, Callable[..., Optional[str]]] = {
            CouponType.WELCOME: self._welcome_eligibility,
            CouponType.USER: self._assignment_eligibility(
                "This coupon is not available for your account"
            ),
            CouponType.LOYALTY: self._assignment_eligibility(
                "Loyalty coupon not available for your account"
            ),
            CouponType.UNIVERSAL: self._universal_eligibility,
        }

    # ------------------------------------------------------------------
    # Evaluation (read-only)
    # ------------------------------------------------------------------

    def evaluate(
        self,
        code: str,
        user,
        subtotal: Decimal,
        product_ids: Iterable[Any],
        *,
        lock: bool = False,
        now: Optional[datetime] = None,
    ) -> CouponEvaluation:
        now = now or timezone.now()
        subtotal = Decimal(subtotal)
        normalized = (code or "").strip().upper()
        log = logger.bind(code=normalized, user_id=str(user.pk))

        coupon = self._repo.get_redeemable(normalized, now, lock=lock) if normalized else None
        if coupon is None:
            return self._reject(log, "Coupon not found or expired")

        if coupon.minimum_order_value and subtotal < coupon.minimum_order_value:
            return self._reject(
                log,
                f"Minimum order value of ₹{format_amount(coupon.minimum_order_value)} required",
                coupon,
            )

        restricted = {product.id for product in coupon.applicable_products.all()}
        if restricted and not restricted & {_as_key(pid) for pid in product_ids}:
            return self._reject(log, "Coupon not applicable to products in your cart", coupon)

        if (
            coupon.type == CouponType.UNIVERSAL
            and coupon.usage_limit is not None
            and coupon.usage_count >= coupon.usage_limit
        ):
            return self._reject(log, "Coupon usage limit reached", coupon)

        discount = compute_discount(coupon, subtotal)

        check = self._eligibility.get(coupon.type)
        if check is None:
            return self._reject(log, "Invalid coupon type", coupon)
        reason = check(coupon, user, now=now, lock=lock)
        if reason:
            return self._reject(log, reason, coupon)

        log.info("coupon.evaluated", coupon_id=str(coupon.id), discount=str(discount))
        return CouponEvaluation(
            is_valid=True,
            message=f"Coupon applied successfully! You saved ₹{discount:.2f}",
            coupon=coupon,
            discount_amount=discount,
        )

    def apply(
        self, code: str, user, subtotal: Decimal, product_ids: Iterable[Any]
    ) -> CouponEvaluation:
        """Evaluate under row locks for the commit path.

        Raises:
            InvalidCoupon: the coupon is not redeemable; message says why.
        """
        result = self.evaluate(code, user, subtotal, product_ids, lock=True)
        if not result.is_valid:
            raise InvalidCoupon(result.message)
        return result

    # ------------------------------------------------------------------
    # Eligibility gates
    # ------------------------------------------------------------------

    def _welcome_eligibility(
        self, coupon: Coupon, user, *, now: datetime, lock: bool
    ) -> Optional[str]:
        if not self._repo.find_open_assignment(user.pk, coupon.id, lock=lock):
            return "Welcome coupon not available for your account"
        if self._orders.count_open_orders(user.pk) > 0:
            return "Welcome coupon is only valid for your first order"
        if now - user.date_joined > timedelta(days=WELCOME_ELIGIBILITY_DAYS):
            return "Welcome coupon expired (valid for 30 days after registration)"
        return None

    def _assignment_eligibility(self, message: str) -> Callable[..., Optional[str]]:
        def check(coupon: Coupon, user, *, now: datetime, lock: bool) -> Optional[str]:
            if not self._repo.find_open_assignment(user.pk, coupon.id, lock=lock):
                return message
            return None

        return check

    def _universal_eligibility(
        self, coupon: Coupon, user, *, now: datetime, lock: bool
    ) -> Optional[str]:
        usage = self._repo.get_usage(user.pk, coupon.id, lock=lock)
        if usage is not None and not usage.is_reserved:
            return "This coupon has already been used or is not available"
        return None

    # ------------------------------------------------------------------
    # Consumption (commit path)
    # ------------------------------------------------------------------

    def ensure_reservation(self, coupon: Coupon, user) -> None:
        """Create the caller's universal reservation row if it is missing."""
        if coupon.type == CouponType.UNIVERSAL:
            self._repo.ensure_reservation(user.pk, coupon)

    def consume(self, coupon: Coupon, user, order, *, now: Optional[datetime] = None) -> None:
        """Bind the coupon to ``order``.

        Raises:
            CouponReservationMissing: the row to bind is gone (race/corruption).
            InvalidCoupon: the universal usage limit was reached concurrently.
        """
        now = now or timezone.now()
        log = logger.bind(coupon_id=str(coupon.id), order_id=str(order.pk), user_id=str(user.pk))

        if coupon.type == CouponType.UNIVERSAL:
            if not self._repo.bind_reservation(user.pk, coupon.id, order.pk):
                log.error("coupon.reservation_missing", type=coupon.type)
                raise CouponReservationMissing()
            if not self._repo.increment_usage(coupon.id):
                log.warning("coupon.usage_limit_race")
                raise InvalidCoupon("Coupon usage limit reached")
        else:
            if not self._repo.bind_assignment(user.pk, coupon.id, order.pk, now):
                log.error("coupon.assignment_missing", type=coupon.type)
                raise CouponReservationMissing()

        log.info("coupon.consumed", type=coupon.type)

    def release(self, order) -> None:
        """Make the coupon consumed by ``order`` redeemable again."""
        if not order.coupon_code:
            return
        log = logger.bind(order_id=str(order.pk), code=order.coupon_code)

        if order.coupon_type == CouponType.UNIVERSAL:
            for coupon_id in self._repo.delete_reservation(order.pk):
                self._repo.decrement_usage(coupon_id)
            log.info("coupon.reservation_released")
        else:
            reopened = self._repo.release_assignment(order.pk)
            log.info("coupon.assignment_released", reopened=reopened)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _reject(log, message: str, coupon: Optional[Coupon] = None) -> CouponEvaluation:
        log.info(
            "coupon.rejected",
            reason=message,
            coupon_id=str(coupon.id) if coupon else None,
        )
        return CouponEvaluation(is_valid=False, message=message)


def _as_key(value: Any) -> Any:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return value
