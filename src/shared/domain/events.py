"""Domain event primitives for the storefront.

Events are immutable records of something that already happened
(an order was created, a coupon was assigned).  Each concrete event
declares its wire ``event_name`` (the name realtime clients subscribe to)
and is registered so a serialized event can be rebuilt by name on the
worker side.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Type
from uuid import UUID, uuid4

_REGISTRY: Dict[str, Type["DomainEvent"]] = {}


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable).

    ``audience`` names the realtime room the event targets
    (``"role:admin"``, ``"user:<id>"``); ``None`` broadcasts.
    """

    payload: Dict[str, Any]
    audience: Optional[str] = None
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    event_name: ClassVar[str] = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.event_name:
            _REGISTRY[cls.event_name] = cls


def event_class_for(name: str) -> Type[DomainEvent]:
    """Return the registered event class for a wire name.

    Raises:
        KeyError: no event is registered under ``name``.
    """
    return _REGISTRY[name]
