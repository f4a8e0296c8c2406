"""Request ID middleware — one id per HTTP request for log correlation.

Learn: The id comes from an incoming X-Request-ID header (so the main
Lumina backend can pass its own through when it calls POST /notifications)
or is generated. It is bound to structlog's contextvars, which means the
`notifications.created` and `rooms.emit` log lines of that request carry it.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
        )

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
