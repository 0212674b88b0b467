"""Helpers for turning Pydantic validation errors into API payloads."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import ValidationError


def _message(err: Dict[str, Any]) -> str:
    # ``ValueError`` raised in a validator arrives as "Value error, <text>".
    original = err.get("ctx", {}).get("error")
    if isinstance(original, Exception):
        return str(original)
    return err["msg"]


def pydantic_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    """Flatten a Pydantic error into ``[{"field": "a.b", "message": "..."}]``."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": _message(err),
        }
        for err in exc.errors()
    ]


def first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    return _message(errors[0]) if errors else str(exc)
