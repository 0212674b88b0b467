"""Unit tests for CouponService and CouponIssuanceService."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone
from pydantic import ValidationError

from modules.accounts.exceptions import UserNotFound
from modules.accounts.repositories.django_repository import (
    CartDjangoRepository,
    UserDjangoRepository,
)
from modules.coupons.constants import STAFF_AUDIENCE, CouponType, DiscountType
from modules.coupons.dtos import (
    AssignCouponDTO,
    CouponQueryDTO,
    CreateCouponDTO,
    UpdateCouponDTO,
    ValidateCouponDTO,
)
from modules.coupons.events import CouponAssigned, CouponCreated, CouponIssued
from modules.coupons.exceptions import (
    CouponAlreadyAssigned,
    CouponAlreadyExists,
    CouponNotFound,
    InvalidCouponData,
)
from modules.coupons.models import Coupon, CouponUsage, UserCoupon
from modules.coupons.services import CouponIssuanceService, CouponService

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def service(coupon_repository, coupon_engine, sink):
    return CouponService(
        repository=coupon_repository,
        engine=coupon_engine,
        user_repository=UserDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        sink=sink,
    )


@pytest.fixture()
def issuance(coupon_repository, sink):
    return CouponIssuanceService(coupon_repository, sink=sink)


def _create_dto(**overrides):
    now = timezone.now()
    data = {
        "code": "summer25",
        "name": "Summer sale",
        "type": "universal",
        "discount_type": "percentage",
        "discount_value": "25",
        "valid_from": now.isoformat(),
        "valid_until": (now + timedelta(days=10)).isoformat(),
    }
    data.update(overrides)
    return CreateCouponDTO.model_validate(data)


# ---------------------------------------------------------------------------
# DTO normalisation
# ---------------------------------------------------------------------------


class TestCreateCouponDTO:
    def test_code_is_uppercased(self):
        assert _create_dto(code="  summer25 ").code == "SUMMER25"

    def test_non_positive_limits_mean_unlimited(self):
        dto = _create_dto(usage_limit=0, maximum_discount="0", minimum_order_value="-5")
        assert dto.usage_limit is None
        assert dto.maximum_discount is None
        assert dto.minimum_order_value == Decimal("0")

    def test_percentage_above_100_is_rejected(self):
        with pytest.raises(ValidationError, match="Percentage discount cannot exceed 100%"):
            _create_dto(discount_value="101")

    def test_fixed_amount_above_100_is_allowed(self):
        assert _create_dto(discount_type="fixed", discount_value="250").discount_value == 250

    def test_window_must_be_ordered(self):
        now = timezone.now()
        with pytest.raises(ValidationError, match="Valid until date must be after"):
            _create_dto(valid_from=now.isoformat(), valid_until=now.isoformat())


# ---------------------------------------------------------------------------
# Admin commands
# ---------------------------------------------------------------------------


class TestCreateCoupon:
    def test_creates_and_announces_to_staff(self, service, admin_user, sink):
        coupon = service.create_coupon(admin_user, _create_dto())

        assert coupon.code == "SUMMER25"
        assert coupon.created_by == admin_user
        event = sink.emit.call_args.args[0]
        assert isinstance(event, CouponCreated)
        assert event.audience == STAFF_AUDIENCE
        assert event.payload["coupon"]["code"] == "SUMMER25"

    def test_duplicate_code_conflicts(self, service, admin_user, make_coupon):
        make_coupon("SUMMER25")
        with pytest.raises(CouponAlreadyExists):
            service.create_coupon(admin_user, _create_dto(code="Summer25"))

    def test_applicable_products_are_linked(self, service, admin_user, listing):
        coupon = service.create_coupon(
            admin_user, _create_dto(applicable_products=[str(listing.product.id)])
        )
        assert list(coupon.applicable_products.all()) == [listing.product]


class TestUpdateCoupon:
    def test_partial_update_keeps_other_fields(self, service, admin_user, make_coupon):
        coupon = make_coupon("EDIT", value="10", usage_limit=5)
        updated = service.update_coupon(
            admin_user, coupon.id, UpdateCouponDTO(name="Renamed", usage_limit=None)
        )
        assert updated.name == "Renamed"
        assert updated.usage_limit is None
        assert updated.discount_value == Decimal("10.00")

    def test_code_taken_by_another_coupon(self, service, admin_user, make_coupon):
        make_coupon("TAKEN")
        coupon = make_coupon("MINE")
        with pytest.raises(CouponAlreadyExists):
            service.update_coupon(admin_user, coupon.id, UpdateCouponDTO(code="taken"))

    def test_merged_state_is_rechecked(self, service, admin_user, make_coupon):
        coupon = make_coupon("FLAT", discount_type=DiscountType.FIXED, value="250")
        with pytest.raises(InvalidCouponData, match="Percentage discount cannot exceed 100%"):
            service.update_coupon(
                admin_user, coupon.id, UpdateCouponDTO(discount_type="percentage")
            )

    def test_unknown_coupon(self, service, admin_user):
        with pytest.raises(CouponNotFound):
            service.update_coupon(admin_user, uuid4(), UpdateCouponDTO(name="x"))

    def test_blank_code_is_rejected_and_code_kept(self, make_coupon):
        coupon = make_coupon("KEEPME")
        with pytest.raises(ValidationError, match="Coupon code must not be empty"):
            UpdateCouponDTO(code="   ")
        coupon.refresh_from_db()
        assert coupon.code == "KEEPME"

    def test_code_is_normalised(self, service, admin_user, make_coupon):
        coupon = make_coupon("OLD")
        updated = service.update_coupon(admin_user, coupon.id, UpdateCouponDTO(code=" new5 "))
        assert updated.code == "NEW5"


class TestDeleteCoupon:
    def test_unused_coupon_is_deleted(self, service, admin_user, make_coupon):
        coupon = make_coupon("GONE")
        assert service.delete_coupon(admin_user, coupon.id) is True
        assert not Coupon.objects.filter(id=coupon.id).exists()

    def test_used_coupon_is_deactivated(
        self, service, admin_user, shopper, make_coupon, make_order
    ):
        coupon = make_coupon("USED")
        CouponUsage.objects.create(user=shopper, coupon=coupon, order=make_order(shopper))

        assert service.delete_coupon(admin_user, coupon.id) is False
        coupon.refresh_from_db()
        assert coupon.is_active is False


class TestAssignCoupon:
    def test_assigns_user_coupon(self, service, admin_user, shopper, make_coupon, sink):
        coupon = make_coupon("VIP", type=CouponType.USER)
        assignment = service.assign_coupon(
            admin_user, AssignCouponDTO(coupon_id=coupon.id, user_id=shopper.id)
        )

        assert isinstance(assignment, UserCoupon)
        assert assignment.is_used is False
        event = sink.emit.call_args.args[0]
        assert isinstance(event, CouponAssigned)
        assert event.audience == f"user:{shopper.id}"

    def test_duplicate_assignment(self, service, admin_user, shopper, make_coupon):
        coupon = make_coupon("VIP", type=CouponType.USER)
        dto = AssignCouponDTO(coupon_id=coupon.id, user_id=shopper.id)
        service.assign_coupon(admin_user, dto)
        with pytest.raises(CouponAlreadyAssigned):
            service.assign_coupon(admin_user, dto)

    def test_universal_assignment_creates_reservation(
        self, service, admin_user, shopper, make_coupon
    ):
        coupon = make_coupon("ALL10")
        reservation = service.assign_coupon(
            admin_user, AssignCouponDTO(coupon_id=coupon.id, user_id=shopper.id)
        )
        assert isinstance(reservation, CouponUsage)
        assert reservation.is_reserved

    def test_one_open_welcome_coupon_per_user(
        self, service, admin_user, shopper, make_coupon
    ):
        first = make_coupon("WELCOMEA", type=CouponType.WELCOME)
        second = make_coupon("WELCOMEB", type=CouponType.WELCOME)
        UserCoupon.objects.create(user=shopper, coupon=first)

        with pytest.raises(CouponAlreadyAssigned, match="unused welcome coupon"):
            service.assign_coupon(
                admin_user, AssignCouponDTO(coupon_id=second.id, user_id=shopper.id)
            )

    def test_unknown_user(self, service, admin_user, make_coupon):
        coupon = make_coupon("VIP", type=CouponType.USER)
        with pytest.raises(UserNotFound):
            service.assign_coupon(
                admin_user, AssignCouponDTO(coupon_id=coupon.id, user_id=uuid4())
            )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestListCoupons:
    def test_staff_filter_by_type_and_state(self, service, admin_user, make_coupon):
        make_coupon("ALL10")
        make_coupon("VIP", type=CouponType.USER)
        make_coupon("OLD", is_active=False)

        codes = {c.code for c in service.list_coupons(admin_user, CouponQueryDTO(is_active=False))}
        assert codes == {"OLD"}
        codes = {c.code for c in service.list_coupons(admin_user, CouponQueryDTO(type="user"))}
        assert codes == {"VIP"}

    def test_shoppers_only_see_redeemable(self, service, shopper, make_coupon):
        make_coupon("ALL10")
        make_coupon("OLD", is_active=False)
        make_coupon("LATER", valid_from=timezone.now() + timedelta(days=2))

        codes = {c.code for c in service.list_coupons(shopper, CouponQueryDTO())}
        assert codes == {"ALL10"}

    def test_shoppers_see_assigned_coupons_of_a_type(
        self, service, shopper, other_shopper, make_coupon
    ):
        mine = make_coupon("MINE", type=CouponType.USER)
        theirs = make_coupon("THEIRS", type=CouponType.USER)
        UserCoupon.objects.create(user=shopper, coupon=mine)
        UserCoupon.objects.create(user=other_shopper, coupon=theirs)

        codes = {c.code for c in service.list_coupons(shopper, CouponQueryDTO(type="user"))}
        assert codes == {"MINE"}


class TestUserCoupons:
    def test_open_assignments_and_unconsumed_universal(
        self, service, shopper, make_coupon, make_order
    ):
        vip = make_coupon("VIP", type=CouponType.USER)
        used = make_coupon("USEDVIP", type=CouponType.USER)
        UserCoupon.objects.create(user=shopper, coupon=vip)
        UserCoupon.objects.create(user=shopper, coupon=used, is_used=True)
        make_coupon("ALL10")
        spent = make_coupon("SPENT")
        CouponUsage.objects.create(user=shopper, coupon=spent, order=make_order(shopper))
        make_coupon("FULL", usage_limit=1, usage_count=1)

        codes = {c.code for c in service.user_coupons(shopper)}
        assert codes == {"VIP", "ALL10"}


class TestAnalytics:
    def test_usage_percentage(self, service, shopper, other_shopper, make_coupon, make_order):
        coupon = make_coupon("ALL10")
        CouponUsage.objects.create(user=shopper, coupon=coupon, order=make_order(shopper))
        CouponUsage.objects.create(user=other_shopper, coupon=coupon)
        make_coupon("IDLE")

        rows = service.analytics()
        assert len(rows) == 1
        row = rows[0]
        assert row["coupon_code"] == "ALL10"
        assert row["total_assigned"] == 2
        assert row["total_used"] == 1
        assert row["total_unused"] == 1
        assert row["usage_percentage"] == 50.0

    def test_unknown_coupon(self, service):
        with pytest.raises(CouponNotFound):
            service.analytics(str(uuid4()))


class TestValidateCoupon:
    def test_uses_cart_products_and_writes_nothing(
        self, service, shopper, make_coupon, make_listing, add_to_cart
    ):
        shirt = make_listing("Shirt")
        scarf = make_listing("Scarf")
        coupon = make_coupon("SHIRTS", usage_limit=10)
        coupon.applicable_products.set([shirt.product])
        add_to_cart(shopper, scarf)

        dto = ValidateCouponDTO(coupon_code="shirts", order_amount=Decimal("100"))
        assert service.validate_coupon(shopper, dto).is_valid is False

        add_to_cart(shopper, shirt)
        result = service.validate_coupon(shopper, dto)
        assert result.is_valid is True
        assert result.discount_amount == Decimal("10.00")
        assert CouponUsage.objects.count() == 0
        coupon.refresh_from_db()
        assert coupon.usage_count == 0


# ---------------------------------------------------------------------------
# Automatic issuance
# ---------------------------------------------------------------------------


class TestIssuance:
    def test_welcome_coupon(self, issuance, shopper, sink):
        coupon = issuance.issue_welcome_coupon(shopper)

        assert coupon.type == CouponType.WELCOME
        assert coupon.code.startswith("WELCOME")
        assert coupon.discount_value == Decimal("10.00")
        assert coupon.minimum_order_value == Decimal("500.00")
        assert coupon.maximum_discount == Decimal("1000.00")
        assert coupon.valid_until - coupon.valid_from == timedelta(days=30)
        assert UserCoupon.objects.filter(user=shopper, coupon=coupon, is_used=False).exists()
        assert isinstance(sink.emit.call_args.args[0], CouponIssued)

    def test_welcome_coupon_is_idempotent(self, issuance, shopper):
        first = issuance.issue_welcome_coupon(shopper)
        assert issuance.issue_welcome_coupon(shopper) == first
        assert UserCoupon.objects.filter(user=shopper).count() == 1

    def test_used_welcome_coupon_is_not_reissued(self, issuance, shopper):
        first = issuance.issue_welcome_coupon(shopper)
        UserCoupon.objects.filter(user=shopper, coupon=first).update(
            is_used=True, used_at=timezone.now()
        )

        second = issuance.issue_welcome_coupon(shopper)

        assert second.id == first.id
        assert Coupon.objects.filter(type=CouponType.WELCOME).count() == 1

    def test_universal_reservations_skip_exhausted_and_existing(
        self, issuance, shopper, make_coupon
    ):
        open_coupon = make_coupon("ALL10")
        held = make_coupon("HELD")
        make_coupon("FULL", usage_limit=1, usage_count=1)
        CouponUsage.objects.create(user=shopper, coupon=held)

        assigned = issuance.assign_universal_coupons(shopper)

        assert {c.code for c in assigned} == {"ALL10", "HELD"}
        assert CouponUsage.objects.filter(user=shopper).count() == 2
        assert CouponUsage.objects.get(user=shopper, coupon=open_coupon).is_reserved

    def test_loyalty_coupon_only_while_none_is_open(self, issuance, shopper):
        coupon = issuance.assign_loyalty_coupon(shopper)

        assert coupon.type == CouponType.LOYALTY
        assert coupon.discount_type == DiscountType.FIXED
        assert coupon.discount_value == Decimal("200.00")
        assert coupon.minimum_order_value == Decimal("1000.00")
        assert issuance.assign_loyalty_coupon(shopper) is None
