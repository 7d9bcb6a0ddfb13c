from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable
import logging
import time
import uuid

logger = logging.getLogger(__name__)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID") or f"req-{uuid.uuid4().hex[:12]}"
        endpoint = request.url.path
        method = request.method

        logger.debug(f"[{request_id}] {method} {endpoint}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"[{request_id}] {method} {endpoint} failed: {e}")
            raise

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

        # Probes hit /health constantly; only surface failures
        if response.status_code >= 400:
            logger.info(f"[{request_id}] {method} {endpoint} -> {response.status_code} ({process_time:.3f}s)")

        return response
