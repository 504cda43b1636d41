"""
Request correlation.

Each request is tagged with an X-Request-ID (the caller's, or a new UUID)
and, when the URL identifies one, the table session it concerns. Both are
copied onto every log record emitted while the request is handled, so the
lines of one dinner can be pulled out of a busy log.
"""

import re
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
table_session_var: ContextVar[str] = ContextVar("table_session", default="")

_SESSION_PATH = re.compile(r"^/api/sessions/(\d+)")


def get_request_id() -> str:
    return request_id_var.get()


def _table_session_of(request: Request) -> str:
    session_id = request.query_params.get("session_id", "")
    if session_id.isdigit():
        return session_id
    match = _SESSION_PATH.match(request.url.path)
    return match.group(1) if match else ""


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        request_token = request_id_var.set(request_id)
        session_token = table_session_var.set(_table_session_of(request))
        try:
            response = await call_next(request)
        finally:
            table_session_var.reset(session_token)
            request_id_var.reset(request_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class CorrelationIdFilter:
    """Logging filter copying the request context onto records."""

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.table_session = table_session_var.get() or None
        return True
