"""Request context middleware for logging."""

import time
import uuid
from contextvars import ContextVar
from typing import Any
from typing import Callable

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

# Context variables to store request-specific data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
client_ip_ctx: ContextVar[str] = ContextVar("client_ip", default="")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a request ID and client IP to every log line of a request, then log the request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request_id_ctx.set(request_id)

        client_ip = get_client_ip(request)
        client_ip_ctx.set(client_ip)

        with logger.contextualize(request_id=request_id, client_ip=client_ip):
            start_time = time.perf_counter()
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.bind(
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                http_status=response.status_code,
                response_time_ms=round(duration_ms, 2),
            ).info(f"{request.method} {request.url.path} - {response.status_code}")

        response.headers["X-Request-ID"] = request_id
        return response


def get_client_ip(request: Request) -> str:
    """
    Real client IP behind Azure Web App / load balancers.

    X-Forwarded-For may hold a chain ("client, proxy1, proxy2") and the Azure
    front end appends ports ("1.2.3.4:5678").
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first.count(":") == 1:
            first = first.split(":")[0]
        return first

    client_ip = request.headers.get("X-Client-IP")
    if client_ip:
        return client_ip

    return request.client.host if request.client else "unknown"
