"""Middleware for logging HTTP requests and responses."""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from tipjar_api.utils.fastapi_utils import UNLOGGED_BODY_PATHS
from tipjar_common.core.request_context import RequestContext
from tipjar_common.utils.msgspec import SerializationError, decode_json
from tipjar_common.utils.utils import get_logger, human_readable_duration

logger = get_logger()

_MAX_LOGGED_BODY = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses.
    Logs request details, response status, and timing information.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    @staticmethod
    async def _read_body(request: Request) -> object | None:
        if request.method not in ("POST", "PUT", "PATCH") or request.url.path in UNLOGGED_BODY_PATHS:
            return None
        body_bytes = await request.body()
        if not body_bytes:
            return None
        try:
            return decode_json(body_bytes)
        except SerializationError:
            body_str = body_bytes.decode("utf-8", errors="replace")
            return body_str[:_MAX_LOGGED_BODY] + "..." if len(body_str) > _MAX_LOGGED_BODY else body_str

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_context = RequestContext.get_or_none()
        req_logger = logger.bind(request_id=str(request_context.request_id)) if request_context else logger

        client_host = request.client.host if request.client else "unknown"
        request_path = request.url.path
        request_method = request.method
        request_body = await self._read_body(request)

        log_data = {
            "type": "request_started",
            "client_ip": client_host,
            "method": request_method,
            "path": request_path,
            "query_params": str(request.query_params),
        }
        if request_body is not None:
            log_data["request_body"] = request_body

        # GET requests are mostly dashboard polling
        if request_method == "GET":
            req_logger.debug(f"Request started: {request_method} {request_path}", **log_data)
        else:
            req_logger.info(f"Request started: {request_method} {request_path}", **log_data)

        start_time = time.time()
        try:
            response: Response = await call_next(request)
        except Exception as e:
            req_logger.error(
                f"Request failed: {request_method} {request_path}",
                type="request_failed",
                method=request_method,
                path=request_path,
                error=str(e),
                duration=human_readable_duration(time.time() - start_time),
                exc_info=True,
            )
            raise

        process_time = time.time() - start_time
        response_log_data = {
            "type": "request_completed",
            "method": request_method,
            "path": request_path,
            "status_code": response.status_code,
            "process_time_ms": int(round(process_time * 1000, 2)),
            "duration": human_readable_duration(process_time),
        }

        if response.status_code == 422 and request_body is not None:
            response_log_data["request_body"] = request_body
            req_logger.warning(f"Validation error: {request_method} {request_path} - {response.status_code}", **response_log_data)
        elif request_method == "GET" and 200 <= response.status_code < 300:
            req_logger.debug(f"Request completed: {request_method} {request_path} - {response.status_code}", **response_log_data)
        else:
            req_logger.info(f"Request completed: {request_method} {request_path} - {response.status_code}", **response_log_data)

        return response
