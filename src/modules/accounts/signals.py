"""Signals issuing starter coupons to newly registered users."""

from __future__ import annotations

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from modules.accounts.models import User

logger = structlog.get_logger(__name__)


@receiver(post_save, sender=User)
def _issue_registration_coupons(sender, instance: User, created: bool, **kwargs) -> None:
    if not created or kwargs.get("raw"):
        return
    if not getattr(settings, "COUPONS_ISSUE_ON_REGISTRATION", True):
        return

    from modules.coupons.repositories.django_repository import CouponDjangoRepository
    from modules.coupons.services import CouponIssuanceService

    issuance = CouponIssuanceService(CouponDjangoRepository())
    log = logger.bind(user_id=str(instance.pk))

    # Registration must succeed even if issuance fails; each step gets a savepoint.
    try:
        with transaction.atomic():
            coupon = issuance.issue_welcome_coupon(instance)
        log.info("accounts.welcome_coupon_issued", code=coupon.code)
    except Exception:
        log.exception("accounts.welcome_coupon_failed")

    try:
        with transaction.atomic():
            assigned = issuance.assign_universal_coupons(instance)
        log.info("accounts.universal_coupons_assigned", count=len(assigned))
    except Exception:
        log.exception("accounts.universal_coupons_failed")
