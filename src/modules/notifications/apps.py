from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.notifications"
    label = "notifications"

    def ready(self) -> None:
        from modules.coupons.events import (
            CouponAssigned,
            CouponCreated,
            CouponDeleted,
            CouponIssued,
            CouponUpdated,
        )
        from modules.notifications.handlers import realtime_push_handler
        from modules.orders.events import OrderCreated, OrderDeleted, OrderUpdated
        from shared.infrastructure.bus import event_bus

        for event_class in (
            OrderCreated,
            OrderUpdated,
            OrderDeleted,
            CouponCreated,
            CouponUpdated,
            CouponDeleted,
            CouponAssigned,
            CouponIssued,
        ):
            event_bus.subscribe(event_class, realtime_push_handler)
