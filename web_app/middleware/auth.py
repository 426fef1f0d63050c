"""Auth cookie middleware."""

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from shortener.common.auth import (
    AUTH_COOKIE_MAX_AGE,
    AUTH_COOKIE_NAME,
    InvalidTokenError,
    TokenExpiredError,
    build_token,
    new_user_id,
    parse_token,
)


class AuthCookieMiddleware(BaseHTTPMiddleware):
    """Identify the caller by the auth_token cookie.

    A missing, invalid or expired cookie gets a fresh user id and a new
    cookie on the response. The user id is stored in ``request.state.user_id``.
    """

    def __init__(self, app, secret: str, token_ttl_seconds: int, logger: logging.Logger = None):
        super().__init__(app)
        self.secret = secret
        self.token_ttl_seconds = token_ttl_seconds
        self.logger = logger or logging.getLogger("url_shortener.web")

    async def dispatch(self, request: Request, call_next: Callable):
        token = request.cookies.get(AUTH_COOKIE_NAME)
        user_id = None

        if token:
            try:
                user_id = parse_token(token, self.secret)
            except TokenExpiredError:
                self.logger.debug("Auth token expired, issuing a new one")
            except InvalidTokenError as e:
                self.logger.warning(f"Rejected auth token: {e}")

        issue_cookie = user_id is None
        if issue_cookie:
            user_id = new_user_id()

        request.state.user_id = user_id
        response = await call_next(request)

        if issue_cookie:
            response.set_cookie(
                AUTH_COOKIE_NAME,
                build_token(user_id, self.secret, self.token_ttl_seconds),
                max_age=AUTH_COOKIE_MAX_AGE,
                httponly=True,
            )
        return response
