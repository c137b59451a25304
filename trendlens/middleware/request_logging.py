"""Access log for API requests."""

import logging
import time

from fastapi import Request

logger = logging.getLogger("trendlens.access")


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    path = request.url.path
    if path.startswith("/api"):
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"{request.method} {path} {response.status_code} in {duration_ms}ms")
    return response
