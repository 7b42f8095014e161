"""Trace id propagation: request header -> request.state -> log context -> response header."""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mvstudio.logging_config import bind_request_context, clear_request_context

TRACE_HEADER = "X-Trace-Id"

# Client-supplied ids are echoed into logs and headers, so keep them plain
_VALID_TRACE_ID = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


def new_trace_id() -> str:
    return f"trc_{uuid.uuid4().hex[:16]}"


class TraceIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(TRACE_HEADER, "")
        trace_id = incoming if _VALID_TRACE_ID.match(incoming) else new_trace_id()
        request.state.trace_id = trace_id

        clear_request_context()
        bind_request_context(trace_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()

        response.headers[TRACE_HEADER] = trace_id
        return response
