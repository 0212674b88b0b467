"""Bus handlers forwarding events to the realtime gateway."""

from __future__ import annotations

import structlog

from shared.domain.bus import IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class RealtimePushHandler(IEventHandler[DomainEvent]):
    """Hands events to the socket tier, which tails this log stream."""

    def handle(self, event: DomainEvent) -> None:
        logger.info(
            f"Pushing {event.event_name} to {event.audience or 'all clients'}",
            event_name=event.event_name,
            audience=event.audience,
            event_id=str(event.event_id),
            payload=event.payload,
        )


realtime_push_handler = RealtimePushHandler()
