"""Middleware for URL shortener web app."""

from .auth import AuthCookieMiddleware
from .headers import RealIPMiddleware
from .logging import LoggingMiddleware

__all__ = ["AuthCookieMiddleware", "RealIPMiddleware", "LoggingMiddleware"]
