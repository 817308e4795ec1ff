"""Request logging and timing middleware."""

import json
import time
import uuid
from typing import Any, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config.logging import get_logger

logger = get_logger(__name__)

PROCESSING_TIME_HEADER = "X-Processing-Time"

# Body fields safe to log; message content is never written to logs
CORRELATION_FIELDS = ("parentID", "customerID", "senderID", "messageID")


class ProcessingTimeMiddleware(BaseHTTPMiddleware):
    """Adds the wall-clock handling time to every response, e.g. "12ms"."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        response.headers[PROCESSING_TIME_HEADER] = f"{elapsed_ms}ms"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request with the correlation identifiers from its JSON body."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        correlation = await self._correlation_fields(request)
        logger.debug(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            **correlation,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=int((time.perf_counter() - start) * 1000),
                **correlation,
            )
            raise

        logger.info(
            "Request handled",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=int((time.perf_counter() - start) * 1000),
            **correlation,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    async def _correlation_fields(self, request: Request) -> Dict[str, Any]:
        if request.method != "POST":
            return {}
        if "application/json" not in request.headers.get("content-type", ""):
            return {}

        try:
            body = json.loads(await request.body())
        except (UnicodeDecodeError, ValueError):
            return {}
        if not isinstance(body, dict):
            return {}

        return {
            field: str(body[field])
            for field in CORRELATION_FIELDS
            if field in body
        }
