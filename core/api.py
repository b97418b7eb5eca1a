# core/api.py

"""
API error plumbing.

- error_response(): canonical {"error": {"code", "message"}} payload
- engine_exception_handler(): DRF EXCEPTION_HANDLER that maps EngineError
  subclasses to their http_status; everything else falls through to DRF.
"""

from __future__ import annotations

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import EngineError


def error_response(*, code: str, message: str, http_status: int, context=None):
    body = {"error": {"code": code, "message": message}}
    if context:
        body["error"]["context"] = context
    return Response(body, status=http_status)


def engine_exception_handler(exc, context):
    if isinstance(exc, EngineError):
        return error_response(
            code=exc.code,
            message=exc.message,
            http_status=exc.http_status,
            context=exc.context or None,
        )
    return exception_handler(exc, context)
