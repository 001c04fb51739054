import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its outcome and duration.

    A caller-supplied X-Request-ID is kept so a retried submission can be
    traced across attempts. Requests slower than SLOW_REQUEST_THRESHOLD_MS
    (typically submissions waiting on the semantic evaluator) log a warning.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        method = request.method
        path = request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"[{request_id}] {method} {path} - ERROR",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": _elapsed_ms(started),
                    "error": str(exc)
                }
            )
            raise

        duration_ms = _elapsed_ms(started)
        status_code = response.status_code

        if status_code >= 400:
            log_level = logging.WARNING
        elif duration_ms > settings.SLOW_REQUEST_THRESHOLD_MS:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            f"[{request_id}] {method} {path} - {status_code} ({duration_ms}ms)",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms
            }
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
