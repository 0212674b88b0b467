"""DRF exception handler producing the standard error envelope.

Every error response has the shape::

    {"success": false, "message": "...", "code": "MACHINE_CODE", ...}

* ``DomainError`` subclasses map to their own status/code, plus any
  ``extra`` payload (e.g. the payment methods common to a cart).
* DRF ``APIException`` (auth, throttling, parser, serializer errors) keep
  their status; the code is derived from DRF's ``default_code``.
* Anything else is logged and answered with a generic 500.  The raw error
  text is only exposed when ``DEBUG`` is on.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.conf import settings
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.views import set_rollback

from modules.core.exceptions import DomainError

logger = structlog.get_logger(__name__)


def envelope_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else None

    if isinstance(exc, DomainError):
        set_rollback()
        log = logger.bind(code=exc.code, view=view_name)
        if exc.status_code >= 500:
            log.error("api.domain_error", error=exc.message)
        else:
            log.info("api.domain_error", error=exc.message)
        body = {"success": False, "message": exc.message, "code": exc.code}
        body.update(exc.extra)
        return Response(body, status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is not None:
        response.data = _wrap_drf_error(exc, response.data)
        return response

    set_rollback()
    logger.exception("api.unhandled_error", view=view_name)
    body = {
        "success": False,
        "message": "Internal server error",
        "code": "INTERNAL_ERROR",
    }
    if settings.DEBUG:
        body["detail"] = str(exc)
    return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _wrap_drf_error(exc: Exception, data: Any) -> Dict[str, Any]:
    if isinstance(exc, exceptions.ValidationError):
        return {
            "success": False,
            "message": "Invalid request.",
            "code": "VALIDATION_ERROR",
            "errors": data,
        }

    code = getattr(exc, "default_code", "error")
    if isinstance(exc, exceptions.APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    message = data.get("detail") if isinstance(data, dict) else None
    return {
        "success": False,
        "message": str(message or exc),
        "code": str(code).upper(),
    }
