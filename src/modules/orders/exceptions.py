"""Order domain exceptions.

Raised by the Service Layer when business rules are violated and rendered
into the error envelope by ``modules.core.exception_handler``.
"""

from __future__ import annotations

from modules.core.exceptions import Forbidden, NotFound, ValidationFailed


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"
    default_message = "Order not found"


class InvalidOrderData(ValidationFailed):
    code = "INVALID_ORDER_DATA"
    default_message = "Invalid order data"


class MissingShippingAddress(ValidationFailed):
    code = "MISSING_SHIPPING_ADDRESS"
    default_message = "Shipping address is required"


class MissingPaymentMethod(ValidationFailed):
    code = "MISSING_PAYMENT_METHOD"
    default_message = "Payment method is required"


class InvalidPaymentMethod(ValidationFailed):
    code = "INVALID_PAYMENT_METHOD"
    default_message = "Invalid payment method"


class EmptyCart(ValidationFailed):
    code = "EMPTY_CART"
    default_message = "Cart is empty"


class InvalidCartProducts(ValidationFailed):
    code = "INVALID_CART_PRODUCTS"
    default_message = "No valid products found in cart"


class PaymentMethodNotAllowed(ValidationFailed):
    """At least one cart product does not accept the payment method.

    ``extra`` carries ``products`` (names rejecting it) and
    ``available_payment_methods`` (methods common to the whole cart).
    """

    code = "PAYMENT_METHOD_NOT_ALLOWED"


class InvalidQuantity(ValidationFailed):
    code = "INVALID_QUANTITY"
    default_message = "Quantity must be at least 1"


class CouponApplicationError(ValidationFailed):
    """Unexpected failure while applying a coupon during checkout."""

    code = "COUPON_ERROR"
    default_message = "Failed to apply coupon"


class InvalidOrderStatus(ValidationFailed):
    code = "INVALID_STATUS"
    default_message = "Valid status is required"


class InvalidStatusFlow(ValidationFailed):
    code = "INVALID_STATUS_FLOW"
    default_message = "Cannot downgrade order status"


class UnauthorizedOrderUpdate(Forbidden):
    code = "UNAUTHORIZED_UPDATE"
    default_message = "You are not authorized to update this order"


class UnauthorizedOrderDelete(Forbidden):
    code = "UNAUTHORIZED_DELETE"
    default_message = "You are not authorized to delete this order"


class DashboardAccessDenied(Forbidden):
    code = "INSUFFICIENT_PERMISSIONS"
    default_message = "Access denied. Only admins and owners can access dashboard."
