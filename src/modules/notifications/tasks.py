"""Celery tasks delivering realtime notifications."""

import structlog
from celery import shared_task

from shared.domain.events import event_class_for
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="notifications.push_event", ignore_result=True)
def push_event(event_name, payload, audience=None):
    """Rebuild the event by wire name and fan it out to bus subscribers."""
    try:
        event_class = event_class_for(event_name)
    except KeyError:
        logger.warning("notification.unknown_event", event_name=event_name)
        return 0

    delivered = event_bus.publish(event_class(payload=payload, audience=audience))
    logger.info(
        "notification.pushed",
        event_name=event_name,
        audience=audience,
        handlers=delivered,
    )
    return delivered
