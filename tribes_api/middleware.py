from __future__ import annotations

import asyncio
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from tribes_api.db import RequestDeadlineExceeded

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("tribes_api.access")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and writes one access log line."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # the app-level handler renders the 500
            self._log(request, 500, start)
            raise
        response.headers["X-Request-ID"] = request_id
        self._log(request, response.status_code, start)
        return response

    @staticmethod
    def _log(request: Request, status_code: int, start: float) -> None:
        access_logger.info(
            "%s %s %s %.1fms rid=%s",
            request.method,
            request.url.path,
            status_code,
            (time.perf_counter() - start) * 1000,
            request.state.request_id,
        )


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Answers 504 after ``timeout`` seconds.

    Sync endpoints keep running in the threadpool after the 504 is sent, so
    the request also carries ``state.deadline`` and the gateway refuses to
    commit once it has passed.
    """

    def __init__(self, app, timeout: float = 60.0):
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next):
        request.state.deadline = time.monotonic() + self.timeout
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("request timed out after %.0fs: %s %s", self.timeout, request.method, request.url.path)
            return JSONResponse({"detail": "Request timed out"}, status_code=504)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def _error_response(request: Request, detail: str, status_code: int) -> JSONResponse:
    headers = {}
    if hasattr(request.state, "request_id"):
        headers["X-Request-ID"] = request.state.request_id
    return JSONResponse({"detail": detail}, status_code=status_code, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestDeadlineExceeded)
    async def deadline_handler(request: Request, exc: RequestDeadlineExceeded):
        logger.warning("write abandoned past deadline on %s %s rid=%s", request.method, request.url.path, _request_id(request))
        return _error_response(request, "Request timed out", 504)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            "database error on %s %s rid=%s",
            request.method,
            request.url.path,
            _request_id(request),
            exc_info=exc,
        )
        return _error_response(request, "Internal Server Error", 500)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled error on %s %s rid=%s",
            request.method,
            request.url.path,
            _request_id(request),
            exc_info=exc,
        )
        return _error_response(request, "Internal Server Error", 500)
