"""Order service layer (Use Cases).

Orchestrates checkout, status management, deletion and the dashboard.
All write operations are atomic: the service defines the unit-of-work
boundary, and notifications are only emitted after the commit.

Checkout preconditions, each a fast-fail abort, in this order:

1. request carries a complete shipping address and a known payment method;
2. user exists and has verified their email;
3. cart is not empty;
4. every product referenced by the cart still exists;
5. every product accepts the payment method;
6. per line: variant exists, size exists, quantity >= 1, stock suffices.

Effects: stock debit (row locks + compare-and-swap), coupon application,
order persistence, coupon consumption, cart clear, then ``orderCreated``
after commit.  A coupon rejection restores the debited stock before the
error propagates.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.accounts.exceptions import EmailNotVerified, UserNotFound
from modules.accounts.services import find_size, find_variant
from modules.catalog.cache import CatalogCache, catalog_cache
from modules.catalog.constants import PaymentMethod
from modules.catalog.exceptions import (
    InsufficientStock,
    ProductNotFound,
    SizeNotFound,
    VariantNotFound,
)
from modules.catalog.models import common_payment_methods
from modules.catalog.services import invalidate_after_commit
from modules.core.exceptions import DomainError
from modules.coupons.exceptions import InvalidCoupon
from modules.notifications.sink import NotificationSink, notification_sink
from modules.orders.constants import DASHBOARD_SORT_FIELDS, OrderStatus
from modules.orders.events import OrderCreated, OrderDeleted, OrderUpdated, order_payload
from modules.orders.exceptions import (
    CouponApplicationError,
    DashboardAccessDenied,
    EmptyCart,
    InvalidCartProducts,
    InvalidOrderStatus,
    InvalidPaymentMethod,
    InvalidQuantity,
    InvalidStatusFlow,
    MissingPaymentMethod,
    MissingShippingAddress,
    OrderNotFound,
    PaymentMethodNotAllowed,
    UnauthorizedOrderDelete,
    UnauthorizedOrderUpdate,
)

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.repositories.interfaces import ICartRepository, IUserRepository
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.coupons.engine import CouponEngine, CouponEvaluation
    from modules.orders.dtos import CheckoutDTO, DashboardQueryDTO, UpdateOrderStatusDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def _is_admin(actor) -> bool:
    return getattr(actor, "role", None) == "admin"


class OrderService:
    """Application service for Order use-cases.

    Receives repositories, the coupon engine and the notification sink via
    constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        user_repository: IUserRepository,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
        coupon_engine: CouponEngine,
        sink: NotificationSink = notification_sink,
        cache: CatalogCache = catalog_cache,
    ) -> None:
        self._order_repo = order_repository
        self._user_repo = user_repository
        self._cart_repo = cart_repository
        self._product_repo = product_repository
        self._engine = coupon_engine
        self._sink = sink
        self._cache = cache

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, user, dto: CheckoutDTO) -> Order:
        """Turn the user's cart into an order, or change nothing.

        Raises:
            MissingShippingAddress, MissingPaymentMethod, InvalidPaymentMethod:
                malformed request.
            UserNotFound, EmailNotVerified: the caller cannot check out.
            EmptyCart, InvalidCartProducts, ProductNotFound: cart problems.
            PaymentMethodNotAllowed: a product rejects the payment method.
            VariantNotFound, SizeNotFound, InvalidQuantity, InsufficientStock:
                a cart line cannot be fulfilled.
            InvalidCoupon, CouponApplicationError: the coupon was rejected.
        """
        log = logger.bind(user_id=str(user.pk))
        log.info("order.checkout_started", coupon_code=dto.coupon_code)

        self._check_request(dto)

        customer = self._user_repo.get_for_update(user.pk)
        if customer is None:
            raise UserNotFound("User not found")
        if not customer.is_email_verified:
            raise EmailNotVerified()

        lines = self._cart_repo.lines_for(customer.pk)
        if not lines:
            raise EmptyCart()

        products = self._product_repo.get_many({line.product_id for line in lines})
        if not products:
            raise InvalidCartProducts()
        for line in lines:
            if line.product_id not in products:
                raise ProductNotFound(f"Product {line.product_id} not found")

        self._check_payment_method(dto.payment_method, list(products.values()))

        # Lock every size row up front, in primary-key order.
        locked = self._product_repo.lock_sizes(line.size_id for line in lines)

        original_stock: Dict[Any, int] = {}
        items: List[Dict[str, Any]] = []
        subtotal = Decimal("0.00")

        for line in lines:
            product = products[line.product_id]
            variant = find_variant(product, line.variant_id)
            if variant is None:
                raise VariantNotFound(f"Variant not found for product {product.name}")
            size = find_size(variant, line.size_id)
            if size is None or size.id not in locked:
                raise SizeNotFound(f"Size not found for product {product.name}")
            size = locked[size.id]

            quantity = dto.quantities.get(line.id, line.quantity)
            if quantity < 1:
                raise InvalidQuantity()
            if size.stock < quantity:
                raise InsufficientStock(
                    f"Insufficient stock for {product.name} ({size.size}). "
                    f"Available: {size.stock}, Requested: {quantity}"
                )

            original_stock.setdefault(size.id, size.stock)
            if not self._product_repo.debit_stock(size.id, quantity):
                raise InsufficientStock(
                    f"Insufficient stock for {product.name} ({size.size}). "
                    f"Requested: {quantity}"
                )
            size.stock -= quantity
            subtotal += size.price * quantity

            items.append(
                {
                    "product_id": product.id,
                    "variant_id": variant.id,
                    "size_id": size.id,
                    "product_name": product.name,
                    "color": variant.color,
                    "size_label": size.size,
                    "quantity": quantity,
                    "unit_price": size.price,
                }
            )
            log.info(
                "order.stock_debited",
                size_id=str(size.id),
                quantity=quantity,
                remaining=size.stock,
            )

        evaluation = self._apply_coupon(dto.coupon_code, customer, subtotal, products, original_stock)
        discount = evaluation.discount_amount if evaluation else Decimal("0.00")
        coupon = evaluation.coupon if evaluation else None

        order = self._order_repo.create(
            {
                "user": customer,
                "subtotal": subtotal,
                "discount_amount": discount,
                "total_amount": max(Decimal("0.00"), subtotal - discount),
                "shipping_street": dto.shipping_address.street,
                "shipping_city": dto.shipping_address.city,
                "shipping_state": dto.shipping_address.state,
                "shipping_postal_code": dto.shipping_address.postal_code,
                "payment_method": dto.payment_method,
                "coupon": coupon,
                "coupon_code": coupon.code if coupon else "",
                "coupon_type": coupon.type if coupon else "",
                "items": items,
            }
        )
        self._order_repo.add_history(
            order.id,
            OrderStatus.PENDING,
            changed_by=customer,
            notes="Order created",
        )

        if coupon is not None:
            self._engine.ensure_reservation(coupon, customer)
            self._engine.consume(coupon, customer, order)

        self._cart_repo.clear(customer.pk)
        invalidate_after_commit(self._cache)

        order = self._order_repo.get_by_id(order.id)
        self._sink.emit(OrderCreated(payload=order_payload(order)))

        log.info(
            "order.created",
            order_id=str(order.id),
            subtotal=str(order.subtotal),
            discount=str(order.discount_amount),
            total=str(order.total_amount),
        )
        return order

    def _check_request(self, dto: CheckoutDTO) -> None:
        if dto.shipping_address is None or not dto.shipping_address.is_complete:
            raise MissingShippingAddress()
        if not dto.payment_method:
            raise MissingPaymentMethod()
        if dto.payment_method not in PaymentMethod.values:
            raise InvalidPaymentMethod()

    @staticmethod
    def _check_payment_method(method: str, products: list) -> None:
        rejecting = [p.name for p in products if not p.accepts_payment_method(method)]
        if rejecting:
            raise PaymentMethodNotAllowed(
                f"Payment method '{method}' is not available for: {', '.join(rejecting)}",
                extra={
                    "products": rejecting,
                    "available_payment_methods": common_payment_methods(products),
                },
            )

    def _apply_coupon(
        self,
        code: Optional[str],
        customer,
        subtotal: Decimal,
        products: Dict[Any, Any],
        original_stock: Dict[Any, int],
    ) -> Optional[CouponEvaluation]:
        if not code:
            return None
        try:
            return self._engine.apply(code, customer, subtotal, list(products))
        except InvalidCoupon:
            self._restore_stock(original_stock)
            raise
        except DomainError:
            raise
        except Exception as exc:
            logger.exception("order.coupon_failed", code=code)
            self._restore_stock(original_stock)
            raise CouponApplicationError(str(exc) or None) from exc

    def _restore_stock(self, original_stock: Dict[Any, int]) -> None:
        for size_id, stock in original_stock.items():
            self._product_repo.restore_stock(size_id, stock)
        logger.info("order.stock_restored", sizes=len(original_stock))

    # ------------------------------------------------------------------
    # Status lifecycle
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(self, actor, order_id: str, dto: UpdateOrderStatusDTO) -> Order:
        """Move an order along the status flow.

        Moving to ``cancelled`` credits stock and releases the coupon; the
        order record is kept.

        Raises:
            InvalidOrderStatus: unknown status value.
            OrderNotFound: order does not exist.
            UnauthorizedOrderUpdate: caller is neither admin nor owner of
                a product in the order.
            InvalidStatusFlow: backward move other than to ``cancelled``.
        """
        new_status = (dto.status or "").strip().lower()
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus()

        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound()

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=new_status,
        )

        if not (_is_admin(actor) or self._order_repo.owns_any_product(order, actor.pk)):
            log.warning("order.update_forbidden", actor_id=str(actor.pk))
            raise UnauthorizedOrderUpdate()

        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise InvalidStatusFlow()

        if new_status == order.status:
            log.info("order.status_unchanged")
            return self._order_repo.get_by_id(order.id)

        if new_status == OrderStatus.CANCELLED:
            self._compensate(order)

        old_status = order.status
        order.status = new_status
        self._order_repo.save(order)
        self._order_repo.add_history(
            order.id,
            new_status,
            old_status=old_status,
            changed_by=actor,
            notes=dto.notes,
        )

        order = self._order_repo.get_by_id(order.id)
        self._sink.emit(OrderUpdated(payload=order_payload(order)))
        log.info("order.status_updated")
        return order

    @transaction.atomic
    def delete_order(self, actor, order_id: str) -> None:
        """Delete an order after reversing its stock and coupon effects.

        An order already cancelled through ``update_status`` was compensated
        then and is only removed here.

        Raises:
            OrderNotFound: order does not exist.
            UnauthorizedOrderDelete: caller is neither admin nor the buyer.
        """
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound()

        log = logger.bind(order_id=str(order.id), status=order.status)

        if not (_is_admin(actor) or order.user_id == actor.pk):
            log.warning("order.delete_forbidden", actor_id=str(actor.pk))
            raise UnauthorizedOrderDelete()

        snapshot = order_payload(order)
        if not order.is_cancelled:
            self._compensate(order)

        self._order_repo.delete(order.id)
        self._sink.emit(
            OrderDeleted(payload={"id": order.id, "deleted_order": snapshot})
        )
        log.info("order.deleted")

    def _compensate(self, order: Order) -> None:
        """Credit stock back and make the order's coupon redeemable again.

        Lines whose size has since been deleted are skipped.
        """
        items = list(order.items.all())
        locked = self._product_repo.lock_sizes(item.size_id for item in items)
        for item in items:
            if item.size_id not in locked:
                logger.info(
                    "order.restock_skipped",
                    order_id=str(order.id),
                    size_id=str(item.size_id),
                )
                continue
            self._product_repo.credit_stock(item.size_id, item.quantity)

        self._engine.release(order)
        invalidate_after_commit(self._cache)
        logger.info("order.compensated", order_id=str(order.id), lines=len(items))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, actor, order_id: str) -> Order:
        """Retrieve an order visible to ``actor``.

        Raises:
            OrderNotFound: missing, or not visible to the caller.
        """
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFound()
        if not (
            _is_admin(actor)
            or order.user_id == actor.pk
            or self._order_repo.owns_any_product(order, actor.pk)
        ):
            raise OrderNotFound()
        return order

    def list_orders(self, actor) -> QuerySet:
        """Admins see every order; everyone else sees their own."""
        if _is_admin(actor):
            return self._order_repo.query()
        return self._order_repo.query({"user_id": actor.pk})

    def dashboard(self, actor, query: DashboardQueryDTO) -> Dict[str, Any]:
        """Role-scoped order listing with pagination and statistics.

        Raises:
            DashboardAccessDenied: caller is neither admin nor owner.
        """
        role = getattr(actor, "role", None)
        if role == "admin":
            owner_id = None
        elif role == "owner":
            owner_id = actor.pk
        else:
            raise DashboardAccessDenied()

        field = DASHBOARD_SORT_FIELDS.get(query.sort_by, "created_at")
        ordering = field if query.order == "asc" else f"-{field}"
        queryset = self._order_repo.dashboard(
            owner_id=owner_id, status=query.status, ordering=ordering
        )

        total = queryset.count()
        offset = (query.page - 1) * query.limit
        orders = list(queryset[offset : offset + query.limit])

        return {
            "orders": orders,
            "pagination": {
                "total_count": total,
                "current_page": query.page,
                "total_pages": math.ceil(total / query.limit),
                "limit": query.limit,
                "has_next": query.page * query.limit < total,
                "has_previous": query.page > 1,
            },
            "statistics": self._order_repo.statistics(queryset),
            "role": role,
        }
