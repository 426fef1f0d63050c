"""Plain-text shortening and redirect routes."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from shortener.common.url_builder import build_short_url
from shortener.errors import NotFoundError, URLAlreadyExistsError, URLDeletedError
from ..api.routes import current_user_id

router = APIRouter()
logger = logging.getLogger("url_shortener.web")


@router.get("/ping", include_in_schema=False)
async def ping(request: Request):
    """Liveness probe (storage reachability only)."""
    healthy = await request.app.state.service.storage.health_check()
    if not healthy:
        return PlainTextResponse("storage unavailable", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse("pong")


@router.post("/", response_class=PlainTextResponse, status_code=status.HTTP_201_CREATED)
async def shorten_plain(request: Request):
    """Shorten the URL sent as the raw request body."""
    service = request.app.state.service
    config = request.app.state.config
    user_id = current_user_id(request)

    original_url = (await request.body()).decode("utf-8", errors="replace").strip()
    try:
        code = await service.make_short_url(user_id, original_url)
    except URLAlreadyExistsError as e:
        return PlainTextResponse(build_short_url(e.code, config.base_url), status_code=status.HTTP_409_CONFLICT)
    except ValueError as e:
        return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)

    return PlainTextResponse(build_short_url(code, config.base_url), status_code=status.HTTP_201_CREATED)


@router.get("/{short_code}", include_in_schema=False)
async def redirect_to_url(request: Request, short_code: str):
    """Redirect to the original URL."""
    service = request.app.state.service

    try:
        original_url = await service.get_original_url(short_code)
    except NotFoundError:
        return PlainTextResponse("Not Found", status_code=status.HTTP_404_NOT_FOUND)
    except URLDeletedError:
        return Response(status_code=status.HTTP_410_GONE)

    return RedirectResponse(url=original_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
