from __future__ import annotations

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Request id for HTTP, connection id for sockets
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")

HEADER = "X-Request-ID"

_VALID_ID = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")


def _incoming_id(value: str | None) -> str:
    # Client ids end up in log lines; anything odd is replaced.
    if value and _VALID_ID.match(value):
        return value
    return uuid.uuid4().hex


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    token = correlation_id_ctx.set(cid)
    try:
        yield cid
    finally:
        correlation_id_ctx.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        with correlation_scope(_incoming_id(request.headers.get(HEADER))) as cid:
            response = await call_next(request)
            response.headers[HEADER] = cid
            return response
