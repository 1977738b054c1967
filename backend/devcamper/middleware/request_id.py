"""
DevCamper Backend — Request ID Middleware
===========================================

What:  Gives every request a correlation id, echoed in the X-Request-ID
       response header and included in error bodies and access log lines.
How:   A client-supplied X-Request-ID is kept; otherwise a short random id
       is generated. The id lives in a ContextVar so code running for the
       request (exception handlers, loggers) can read it without a handle
       on the Request object.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one event loop each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns, stores and returns the request's correlation id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
