"""Django ORM implementation of the coupon repository."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, F, Q

from modules.coupons.constants import CouponType
from modules.coupons.models import Coupon, CouponUsage, UserCoupon
from modules.coupons.repositories.interfaces import ICouponRepository

logger = structlog.get_logger(__name__)


def _redeemable(now: datetime) -> Q:
    return Q(is_active=True, valid_from__lte=now, valid_until__gte=now)


def _under_limit() -> Q:
    return Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit"))


class CouponDjangoRepository(ICouponRepository):
    """Concrete coupon repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Coupons
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Coupon]:
        try:
            return Coupon.objects.prefetch_related("applicable_products").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Coupon]:
        queryset = Coupon.objects.select_related("created_by").prefetch_related(
            "applicable_products"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset.order_by("-created_at"))

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return Coupon.objects.filter(code=code.strip().upper()).first()

    def get_redeemable(
        self, code: str, now: datetime, *, lock: bool = False
    ) -> Optional[Coupon]:
        queryset = Coupon.objects.filter(_redeemable(now), code=code.strip().upper())
        if lock:
            queryset = queryset.select_for_update()
        return queryset.first()

    def redeemable_universal(self, now: datetime) -> List[Coupon]:
        return list(
            Coupon.objects.filter(
                _redeemable(now), _under_limit(), type=CouponType.UNIVERSAL
            ).order_by("-created_at")
        )

    @transaction.atomic
    def save(self, entity: Coupon) -> Coupon:
        entity.save()
        logger.info("coupon.saved", coupon_id=str(entity.id), code=entity.code)
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        deleted, _ = Coupon.objects.filter(id=id).delete()
        return deleted > 0

    def increment_usage(self, coupon_id: Any) -> bool:
        updated = Coupon.objects.filter(_under_limit(), id=coupon_id).update(
            usage_count=F("usage_count") + 1
        )
        return updated == 1

    def decrement_usage(self, coupon_id: Any) -> bool:
        updated = Coupon.objects.filter(id=coupon_id, usage_count__gt=0).update(
            usage_count=F("usage_count") - 1
        )
        return updated == 1

    def has_consumption(self, coupon_id: Any) -> bool:
        return (
            UserCoupon.objects.filter(coupon_id=coupon_id, is_used=True).exists()
            or CouponUsage.objects.filter(coupon_id=coupon_id, order__isnull=False).exists()
        )

    def analytics(self, coupon_id: Any = None) -> List[Dict[str, Any]]:
        queryset = Coupon.objects.annotate(
            assigned=Count("assignments", distinct=True),
            assigned_used=Count(
                "assignments", filter=Q(assignments__is_used=True), distinct=True
            ),
            reserved=Count("usages", distinct=True),
            reserved_used=Count(
                "usages", filter=Q(usages__order__isnull=False), distinct=True
            ),
        )
        if coupon_id is not None:
            queryset = queryset.filter(id=coupon_id)

        rows = []
        for coupon in queryset:
            total_assigned = coupon.assigned + coupon.reserved
            if not total_assigned:
                continue
            total_used = coupon.assigned_used + coupon.reserved_used
            rows.append(
                {
                    "coupon_id": coupon.id,
                    "coupon_code": coupon.code,
                    "coupon_name": coupon.name,
                    "type": coupon.type,
                    "total_assigned": total_assigned,
                    "total_used": total_used,
                    "total_unused": total_assigned - total_used,
                    "usage_percentage": round(total_used / total_assigned * 100, 2),
                }
            )
        rows.sort(key=lambda row: row["total_used"], reverse=True)
        return rows

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def get_assignment(self, user_id: Any, coupon_id: Any) -> Optional[UserCoupon]:
        return UserCoupon.objects.filter(user_id=user_id, coupon_id=coupon_id).first()

    def find_open_assignment(
        self, user_id: Any, coupon_id: Any, *, lock: bool = False
    ) -> Optional[UserCoupon]:
        queryset = UserCoupon.objects.filter(
            user_id=user_id, coupon_id=coupon_id, is_used=False
        )
        if lock:
            queryset = queryset.select_for_update()
        return queryset.first()

    def find_open_assignment_of_type(self, user_id: Any, coupon_type: str) -> Optional[UserCoupon]:
        return (
            UserCoupon.objects.select_related("coupon")
            .filter(user_id=user_id, is_used=False, coupon__type=coupon_type)
            .first()
        )

    def find_assignment_of_type(self, user_id: Any, coupon_type: str) -> Optional[UserCoupon]:
        return (
            UserCoupon.objects.select_related("coupon")
            .filter(user_id=user_id, coupon__type=coupon_type)
            .order_by("created_at")
            .first()
        )

    def open_assignments(self, user_id: Any, now: datetime) -> List[Coupon]:
        return list(
            Coupon.objects.filter(
                _redeemable(now),
                assignments__user_id=user_id,
                assignments__is_used=False,
            ).order_by("-created_at")
        )

    def create_assignment(self, user_id: Any, coupon: Coupon) -> UserCoupon:
        return UserCoupon.objects.create(user_id=user_id, coupon=coupon)

    def bind_assignment(
        self, user_id: Any, coupon_id: Any, order_id: Any, used_at: datetime
    ) -> bool:
        updated = UserCoupon.objects.filter(
            user_id=user_id, coupon_id=coupon_id, is_used=False
        ).update(is_used=True, used_at=used_at, order_id=order_id)
        return updated == 1

    def release_assignment(self, order_id: Any) -> int:
        return UserCoupon.objects.filter(order_id=order_id).update(
            is_used=False, used_at=None, order_id=None
        )

    # ------------------------------------------------------------------
    # Universal reservations
    # ------------------------------------------------------------------

    def get_usage(self, user_id: Any, coupon_id: Any, *, lock: bool = False) -> Optional[CouponUsage]:
        queryset = CouponUsage.objects.filter(user_id=user_id, coupon_id=coupon_id)
        if lock:
            queryset = queryset.select_for_update()
        return queryset.first()

    def ensure_reservation(self, user_id: Any, coupon: Coupon) -> CouponUsage:
        usage, created = CouponUsage.objects.get_or_create(user_id=user_id, coupon=coupon)
        if created:
            logger.info(
                "coupon.reservation_created",
                coupon_id=str(coupon.id),
                user_id=str(user_id),
            )
        return usage

    def create_reservations(self, user_id: Any, coupons: List[Coupon]) -> int:
        existing = set(
            CouponUsage.objects.filter(
                user_id=user_id, coupon__in=coupons
            ).values_list("coupon_id", flat=True)
        )
        rows = [
            CouponUsage(user_id=user_id, coupon=coupon)
            for coupon in coupons
            if coupon.id not in existing
        ]
        CouponUsage.objects.bulk_create(rows, ignore_conflicts=True)
        return len(rows)

    def bind_reservation(self, user_id: Any, coupon_id: Any, order_id: Any) -> bool:
        updated = CouponUsage.objects.filter(
            user_id=user_id, coupon_id=coupon_id, order__isnull=True
        ).update(order_id=order_id)
        return updated == 1

    def delete_reservation(self, order_id: Any) -> List[Any]:
        usages = CouponUsage.objects.filter(order_id=order_id)
        coupon_ids = list(usages.values_list("coupon_id", flat=True))
        usages.delete()
        return coupon_ids
