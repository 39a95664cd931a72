"""Custom middleware"""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class TimingMiddleware(BaseHTTPMiddleware):
    """Middleware to log request timing"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        response.headers["X-Process-Time"] = str(process_time)

        request_id = getattr(request.state, "request_id", "-")
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {process_time:.2f}ms [{request_id}]"
        )

        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate the caller's request id, or assign one"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
