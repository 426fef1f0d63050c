"""Real client IP middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

from shortener.common.headers import extract_real_ip


class RealIPMiddleware(BaseHTTPMiddleware):
    """Store the X-Real-IP address set by the proxy in request state."""

    async def dispatch(self, request: Request, call_next: Callable):
        request.state.real_ip = extract_real_ip(request.headers)
        return await call_next(request)
