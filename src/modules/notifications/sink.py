"""Notification sink: fire-and-forget realtime events.

``emit`` never runs inside the caller's transaction: delivery is deferred
with ``transaction.on_commit`` so a rolled-back checkout never announces an
order, and a broker outage after commit is logged and swallowed so it can
never undo or block an already-committed order.
"""

from __future__ import annotations

from functools import partial

import structlog
from django.conf import settings
from django.db import transaction

from modules.notifications.serialization import to_json_payload
from modules.notifications.tasks import push_event
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class NotificationSink:
    """Schedules ``push_event`` on commit of the current transaction."""

    def emit(self, event: DomainEvent) -> None:
        if not getattr(settings, "NOTIFICATIONS_ENABLED", True):
            return
        transaction.on_commit(partial(self._dispatch, event))

    def _dispatch(self, event: DomainEvent) -> None:
        try:
            push_event.delay(
                event.event_name,
                to_json_payload(event.payload),
                event.audience,
            )
        except Exception:
            logger.warning(
                "notification.dispatch_failed",
                event_name=event.event_name,
                event_id=str(event.event_id),
                exc_info=True,
            )
            return
        logger.info(
            "notification.dispatched",
            event_name=event.event_name,
            audience=event.audience,
        )


notification_sink = NotificationSink()
