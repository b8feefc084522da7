"""
Request correlation.

Each request gets an id, taken from the X-Request-Id header when the caller
sent a usable one, otherwise generated. The id is echoed on the response,
bound to the logging context for the duration of the request and carried by
the error envelope.
"""

import logging
import re
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from appreciations.core.logging import LOGGER_NAME, latency_bucket_ms, request_id_ctx_var

# Caller-supplied ids end up in log lines
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

QUIET_PATHS = frozenset({"/healthz", "/readyz"})


def resolve_request_id(incoming) -> str:
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = resolve_request_id(request.headers.get(self.header_name))
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers[self.header_name] = rid

        if request.url.path not in QUIET_PATHS:
            status = response.status_code
            logging.getLogger(LOGGER_NAME).log(
                logging.WARNING if status >= 500 else logging.INFO,
                "http.request",
                extra={
                    "request_id": rid,
                    "event_type": "http",
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "latency_bucket": latency_bucket_ms(duration_ms),
                },
            )
        return response
