"""
Request logging middleware.

Tags every request with a correlation ID (the incoming X-Request-ID header
when present, a fresh UUID otherwise), echoes it back on the response and
logs method, path, status and duration. Requests slower than
settings.slow_request_threshold_ms are logged as warnings.
"""

import logging
import time
import uuid

from fastapi import FastAPI, Request

from expense_api.settings import settings

logger = logging.getLogger("expense_api.requests")

REQUEST_ID_HEADER = "X-Request-ID"


def register_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        if duration_ms > settings.slow_request_threshold_ms:
            logger.warning(
                "Slow request [%s] %s %s → %d in %.0fms",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
        else:
            logger.info(
                "[%s] %s %s → %d in %.0fms",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
        return response
