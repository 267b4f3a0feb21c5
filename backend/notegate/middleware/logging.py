"""
NoteGate — Access Log Middleware
==================================

What:  One access line per request. Dispatch calls are logged as
       `<store>.<operation>` so gateway traffic reads per operation:

           noteStore.createTag -> 200 3.1ms [a1b2c3d4] from 10.0.0.7

       Every other request (catalogue, docs) falls back to method + path.
How:   The store and operation are split out of /<store>/<operation> only
       when <store> is one of the stores mounted on the app. They are also
       attached to the record as `store` and `operation` extras. Level follows
       the status class (5xx ERROR, 4xx WARNING, else INFO).
Who:   Applied to every request via Starlette middleware, inside
       RequestIDMiddleware so the id is already set.

Request bodies are never logged since they carry note content.
"""

import logging
import time
from typing import Iterable, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notegate.middleware.request_id import request_id_var

logger = logging.getLogger("notegate.access")

SILENT_PATHS = {"/health"}


def split_dispatch_path(
    path: str, stores: Iterable[str]
) -> Tuple[Optional[str], Optional[str]]:
    """
    (store, operation) for a dispatch path, (store, None) for a store
    catalogue, (None, None) for anything else.
    """
    parts = path.strip("/").split("/")
    if not parts or parts[0] not in stores:
        return None, None
    if len(parts) == 1:
        return parts[0], None
    if len(parts) == 2 and parts[1]:
        return parts[0], parts[1]
    return None, None


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its store operation, outcome and duration."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SILENT_PATHS:
            return await call_next(request)

        stores = getattr(request.app.state, "stores", ())
        store, operation = split_dispatch_path(path, stores)
        client_ip = request.client.host if request.client else "unknown"

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        if operation is not None:
            target = f"{store}.{operation}"
        else:
            target = f"{request.method} {path}"

        logger.log(
            _level_for(response.status_code),
            "%s -> %d %.1fms [%s] from %s",
            target,
            response.status_code,
            duration_ms,
            request_id_var.get(""),
            client_ip,
            extra={
                "request_id": request_id_var.get(""),
                "store": store,
                "operation": operation,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
