"""JSON normalisation for event payloads crossing the broker."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


def to_json_payload(value: Any) -> Any:
    """Recursively convert UUID / Decimal / datetime values to strings."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_json_payload(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_json_payload(val) for key, val in value.items()}
    return value
