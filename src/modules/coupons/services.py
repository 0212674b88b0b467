"""Coupon service layer (Use Cases).

``CouponService`` covers the admin surface (create, update, delete,
assign, analytics) and the shopper's reads plus the dry-run validation.
``CouponIssuanceService`` issues coupons automatically: the welcome
coupon and universal reservations at registration, and loyalty rewards.

Business rules enforced:
- Codes are unique case-insensitively (conflict on create/update).
- A coupon that any order consumed is deactivated instead of deleted.
- At most one unused welcome/loyalty assignment per user.
- Validation never writes: reservations are only created on checkout.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.accounts.exceptions import UserNotFound
from modules.coupons.constants import (
    CODE_MAX_RETRIES,
    SINGLE_ACTIVE_TYPES,
    STAFF_AUDIENCE,
    CouponType,
    DiscountType,
    user_audience,
)
from modules.coupons.events import (
    CouponAssigned,
    CouponCreated,
    CouponDeleted,
    CouponIssued,
    CouponUpdated,
    coupon_payload,
)
from modules.coupons.exceptions import (
    CouponAlreadyAssigned,
    CouponAlreadyExists,
    CouponNotFound,
    InvalidCouponData,
)
from modules.coupons.models import Coupon
from modules.notifications.sink import NotificationSink, notification_sink

if TYPE_CHECKING:
    from modules.accounts.repositories.interfaces import ICartRepository, IUserRepository
    from modules.coupons.dtos import (
        AssignCouponDTO,
        CouponQueryDTO,
        CreateCouponDTO,
        UpdateCouponDTO,
        ValidateCouponDTO,
    )
    from modules.coupons.engine import CouponEngine, CouponEvaluation
    from modules.coupons.repositories.interfaces import ICouponRepository

logger = structlog.get_logger(__name__)

_UPDATABLE_FIELDS = (
    "code",
    "name",
    "description",
    "type",
    "discount_type",
    "discount_value",
    "valid_from",
    "valid_until",
    "is_active",
    "minimum_order_value",
    "maximum_discount",
    "usage_limit",
)


def _is_staff(actor) -> bool:
    return getattr(actor, "role", None) in {"admin", "owner"}


class CouponService:
    """Application service for coupon administration and redemption preview."""

    def __init__(
        self,
        repository: ICouponRepository,
        engine: CouponEngine,
        user_repository: IUserRepository,
        cart_repository: ICartRepository,
        sink: NotificationSink = notification_sink,
    ) -> None:
        self._repo = repository
        self._engine = engine
        self._users = user_repository
        self._carts = cart_repository
        self._sink = sink

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_coupon(self, actor, dto: CreateCouponDTO) -> Coupon:
        """Create a coupon.

        Raises:
            CouponAlreadyExists: the code is taken (case-insensitive).
        """
        log = logger.bind(code=dto.code, actor_id=str(actor.pk))
        if self._repo.get_by_code(dto.code):
            log.warning("coupon.duplicate_code")
            raise CouponAlreadyExists()

        coupon = Coupon(
            code=dto.code,
            name=dto.name,
            description=dto.description,
            type=dto.type,
            discount_type=dto.discount_type,
            discount_value=dto.discount_value,
            valid_from=dto.valid_from,
            valid_until=dto.valid_until,
            minimum_order_value=dto.minimum_order_value,
            maximum_discount=dto.maximum_discount,
            usage_limit=dto.usage_limit,
            created_by=actor,
        )
        coupon = self._repo.save(coupon)
        if dto.applicable_products:
            coupon.applicable_products.set(dto.applicable_products)

        log.info("coupon.created", coupon_id=str(coupon.id))
        self._sink.emit(
            CouponCreated(
                payload={"coupon": coupon_payload(coupon), "created_by": actor.pk},
                audience=STAFF_AUDIENCE,
            )
        )
        return coupon

    @transaction.atomic
    def update_coupon(self, actor, coupon_id: str, dto: UpdateCouponDTO) -> Coupon:
        """Apply a partial update.

        Raises:
            CouponNotFound: no such coupon.
            CouponAlreadyExists: the new code belongs to another coupon.
            InvalidCouponData: the merged coupon breaks a policy rule.
        """
        coupon = self._get(coupon_id)
        changes = dto.changes()
        log = logger.bind(coupon_id=str(coupon.id), actor_id=str(actor.pk))

        new_code = changes.get("code")
        if new_code and new_code != coupon.code:
            other = self._repo.get_by_code(new_code)
            if other and other.id != coupon.id:
                log.warning("coupon.duplicate_code", code=new_code)
                raise CouponAlreadyExists()

        for field in _UPDATABLE_FIELDS:
            if field in changes:
                setattr(coupon, field, changes[field])
        self._check_policy(coupon)

        coupon = self._repo.save(coupon)
        if "applicable_products" in changes:
            coupon.applicable_products.set(changes["applicable_products"] or [])

        log.info("coupon.updated", fields=sorted(changes))
        self._sink.emit(
            CouponUpdated(
                payload={"coupon": coupon_payload(coupon), "updated_by": actor.pk},
                audience=STAFF_AUDIENCE,
            )
        )
        return coupon

    @transaction.atomic
    def delete_coupon(self, actor, coupon_id: str) -> bool:
        """Delete a coupon, or deactivate it when an order already used it.

        Returns ``True`` if the coupon was deleted, ``False`` if deactivated.
        """
        coupon = self._get(coupon_id)
        log = logger.bind(coupon_id=str(coupon.id), actor_id=str(actor.pk))

        if self._repo.has_consumption(coupon.id):
            coupon.is_active = False
            self._repo.save(coupon)
            log.info("coupon.deactivated")
            self._sink.emit(
                CouponUpdated(
                    payload={"coupon": coupon_payload(coupon), "updated_by": actor.pk},
                    audience=STAFF_AUDIENCE,
                )
            )
            return False

        self._repo.delete(coupon.id)
        log.info("coupon.deleted")
        self._sink.emit(
            CouponDeleted(
                payload={"coupon_id": coupon_id, "deleted_by": actor.pk},
                audience=STAFF_AUDIENCE,
            )
        )
        return True

    @transaction.atomic
    def assign_coupon(self, actor, dto: AssignCouponDTO):
        """Give a coupon to a user.

        Universal coupons get a reservation row; other types an assignment.

        Raises:
            CouponNotFound / UserNotFound: unknown ids.
            CouponAlreadyAssigned: the user already holds it, or already
                holds an unused coupon of the same single-active type.
        """
        coupon = self._get(dto.coupon_id)
        user = self._users.get_by_id(dto.user_id)
        if not user:
            raise UserNotFound()
        log = logger.bind(coupon_id=str(coupon.id), user_id=str(user.pk))

        if coupon.type == CouponType.UNIVERSAL:
            if self._repo.get_usage(user.pk, coupon.id):
                raise CouponAlreadyAssigned()
            assignment = self._repo.ensure_reservation(user.pk, coupon)
        else:
            if self._repo.get_assignment(user.pk, coupon.id):
                raise CouponAlreadyAssigned()
            if coupon.type in SINGLE_ACTIVE_TYPES and self._repo.find_open_assignment_of_type(
                user.pk, coupon.type
            ):
                raise CouponAlreadyAssigned(
                    f"User already has an unused {coupon.type} coupon"
                )
            assignment = self._repo.create_assignment(user.pk, coupon)

        log.info("coupon.assigned", actor_id=str(actor.pk))
        self._sink.emit(
            CouponAssigned(
                payload={
                    "coupon": coupon_payload(coupon),
                    "message": "New coupon assigned to your account!",
                },
                audience=user_audience(user.pk),
            )
        )
        return assignment

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_coupons(self, actor, query: CouponQueryDTO) -> List[Coupon]:
        """Staff see every coupon (filterable); shoppers see redeemable ones."""
        filters: Dict[str, Any] = {}
        if _is_staff(actor):
            if query.type:
                filters["type"] = query.type
            if query.is_active is not None:
                filters["is_active"] = query.is_active
            return self._repo.list(filters)

        now = timezone.now()
        filters.update(is_active=True, valid_from__lte=now, valid_until__gte=now)
        if query.type and query.type != CouponType.UNIVERSAL:
            filters["type"] = query.type
            filters["assignments__user_id"] = actor.pk
            filters["assignments__is_used"] = False
        elif query.type:
            filters["type"] = query.type
        return self._repo.list(filters)

    def user_coupons(self, user) -> List[Coupon]:
        """Coupons the user can redeem right now.

        Unused assignments plus universal coupons under their limit that the
        user has not consumed yet.
        """
        now = timezone.now()
        coupons = self._repo.open_assignments(user.pk, now)
        for coupon in self._repo.redeemable_universal(now):
            usage = self._repo.get_usage(user.pk, coupon.id)
            if usage is None or usage.is_reserved:
                coupons.append(coupon)
        return coupons

    def analytics(self, coupon_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if coupon_id is not None:
            self._get(coupon_id)
        return self._repo.analytics(coupon_id)

    def validate_coupon(self, user, dto: ValidateCouponDTO) -> CouponEvaluation:
        """Dry-run redemption against the caller's cart; never writes."""
        product_ids = {line.product_id for line in self._carts.lines_for(user.pk)}
        return self._engine.evaluate(dto.coupon_code, user, dto.order_amount, product_ids)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get(self, coupon_id) -> Coupon:
        coupon = self._repo.get_by_id(coupon_id)
        if not coupon:
            raise CouponNotFound()
        return coupon

    @staticmethod
    def _check_policy(coupon: Coupon) -> None:
        if coupon.discount_value is None or coupon.discount_value < 0:
            raise InvalidCouponData("Discount value cannot be negative")
        if coupon.discount_type == DiscountType.PERCENTAGE and coupon.discount_value > 100:
            raise InvalidCouponData("Percentage discount cannot exceed 100%")
        if coupon.valid_from >= coupon.valid_until:
            raise InvalidCouponData("Valid until date must be after valid from date")
        if coupon.minimum_order_value is None or coupon.minimum_order_value < 0:
            coupon.minimum_order_value = Decimal("0")
        if coupon.maximum_discount is not None and coupon.maximum_discount <= 0:
            coupon.maximum_discount = None
        if coupon.usage_limit is not None and coupon.usage_limit <= 0:
            coupon.usage_limit = None
        if coupon.usage_limit is not None and coupon.usage_count > coupon.usage_limit:
            raise InvalidCouponData("Usage limit cannot be below the current usage count")


class CouponIssuanceService:
    """Automatic coupon issuance (registration and loyalty milestones)."""

    def __init__(
        self,
        repository: ICouponRepository,
        sink: NotificationSink = notification_sink,
    ) -> None:
        self._repo = repository
        self._sink = sink

    @transaction.atomic
    def issue_welcome_coupon(self, user) -> Coupon:
        """Create and assign the user's personal welcome coupon.

        One per user: any earlier welcome assignment, used or not, is
        returned instead of issuing a new coupon.
        """
        existing = self._repo.find_assignment_of_type(user.pk, CouponType.WELCOME)
        if existing:
            return existing.coupon

        now = timezone.now()
        coupon = Coupon(
            code=self._unique_code(f"WELCOME{user.pk.hex[-6:].upper()}"),
            name="Welcome Bonus",
            description="Welcome to our store! Enjoy 10% off on your first order",
            type=CouponType.WELCOME,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal(settings.WELCOME_COUPON_PERCENT),
            valid_from=now,
            valid_until=now + timedelta(days=settings.WELCOME_COUPON_VALID_DAYS),
            minimum_order_value=Decimal(settings.WELCOME_COUPON_MIN_ORDER),
            maximum_discount=Decimal(settings.WELCOME_COUPON_MAX_DISCOUNT),
        )
        coupon = self._repo.save(coupon)
        self._repo.create_assignment(user.pk, coupon)

        logger.info("coupon.welcome_issued", user_id=str(user.pk), code=coupon.code)
        self._announce(user, coupon, "Welcome coupon assigned")
        return coupon

    @transaction.atomic
    def assign_universal_coupons(self, user) -> List[Coupon]:
        """Reserve every redeemable universal coupon for the user."""
        coupons = self._repo.redeemable_universal(timezone.now())
        if not coupons:
            return []
        created = self._repo.create_reservations(user.pk, coupons)

        logger.info(
            "coupon.universal_assigned",
            user_id=str(user.pk),
            available=len(coupons),
            created=created,
        )
        for coupon in coupons:
            self._announce(user, coupon, "Universal coupon assigned")
        return coupons

    @transaction.atomic
    def assign_loyalty_coupon(self, user) -> Optional[Coupon]:
        """Issue a fixed-amount loyalty reward.

        Returns ``None`` when the user still holds an unused loyalty coupon.
        """
        if self._repo.find_open_assignment_of_type(user.pk, CouponType.LOYALTY):
            logger.info("coupon.loyalty_skipped", user_id=str(user.pk))
            return None

        now = timezone.now()
        amount = Decimal(settings.LOYALTY_COUPON_AMOUNT)
        coupon = Coupon(
            code=self._unique_code(
                f"LOYALTY{user.pk.hex[-4:].upper()}{secrets.token_hex(2).upper()}"
            ),
            name="Loyalty Reward",
            description=f"Thank you for being a loyal customer! Enjoy ₹{amount} off",
            type=CouponType.LOYALTY,
            discount_type=DiscountType.FIXED,
            discount_value=amount,
            valid_from=now,
            valid_until=now + timedelta(days=settings.LOYALTY_COUPON_VALID_DAYS),
            minimum_order_value=Decimal(settings.LOYALTY_COUPON_MIN_ORDER),
            maximum_discount=amount,
        )
        coupon = self._repo.save(coupon)
        self._repo.create_assignment(user.pk, coupon)

        logger.info("coupon.loyalty_issued", user_id=str(user.pk), code=coupon.code)
        self._announce(user, coupon, "Loyalty coupon assigned")
        return coupon

    def _unique_code(self, base: str) -> str:
        candidate = base
        for _ in range(CODE_MAX_RETRIES):
            if not self._repo.get_by_code(candidate):
                return candidate
            candidate = f"{base}{secrets.token_hex(2).upper()}"
        raise RuntimeError(
            f"Failed to generate unique coupon code after {CODE_MAX_RETRIES} attempts"
        )

    def _announce(self, user, coupon: Coupon, message: str) -> None:
        self._sink.emit(
            CouponIssued(
                payload={
                    "message": message,
                    "coupon": {
                        "code": coupon.code,
                        "type": coupon.type,
                        "discount_value": coupon.discount_value,
                        "valid_until": coupon.valid_until,
                    },
                },
                audience=user_audience(user.pk),
            )
        )
