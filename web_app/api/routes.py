"""API routes implementation."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Body, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from .schemas import (
    BatchShortenItem,
    BatchShortenResult,
    ErrorResponse,
    HealthResponse,
    ShortenRequest,
    ShortenResponse,
    StatisticsResponse,
    UserURLResponse,
)
from shortener.common.headers import is_trusted_ip, parse_trusted_subnet
from shortener.common.url_builder import build_short_url
from shortener.errors import URLAlreadyExistsError
from shortener.service import BatchItem

router = APIRouter()
logger = logging.getLogger("url_shortener.api")


def current_user_id(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user_id


def spawn_background(request: Request, coro) -> asyncio.Task:
    """Run coro detached from the request; the app keeps a reference until done."""
    tasks = request.app.state.background_tasks
    task = asyncio.create_task(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return task


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        409: {"model": ShortenResponse, "description": "URL already shortened"},
    },
    summary="Create short URL",
)
async def shorten_url(request: Request, body: ShortenRequest):
    """Create a shortened URL owned by the caller."""
    service = request.app.state.service
    config = request.app.state.config
    user_id = current_user_id(request)

    try:
        code = await service.make_short_url(user_id, body.url)
    except URLAlreadyExistsError as e:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"result": build_short_url(e.code, config.base_url)},
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to shorten url: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error: {str(e)}",
        )

    return ShortenResponse(result=build_short_url(code, config.base_url))


@router.post(
    "/shorten/batch",
    response_model=List[BatchShortenResult],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        409: {"model": ErrorResponse, "description": "A URL is already shortened"},
    },
    summary="Create short URLs in batch",
)
async def shorten_batch(request: Request, body: List[BatchShortenItem]):
    """Create short URLs for a list of URLs, echoing correlation ids."""
    service = request.app.state.service
    config = request.app.state.config
    user_id = current_user_id(request)

    items = [BatchItem(correlation_id=i.correlation_id, original_url=i.original_url) for i in body]
    try:
        created = await service.make_batch_short_urls(user_id, items)
    except URLAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to shorten batch: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error: {str(e)}",
        )

    return [
        BatchShortenResult(
            correlation_id=item.correlation_id,
            short_url=build_short_url(item.code, config.base_url),
        )
        for item in created
    ]


@router.get(
    "/user/urls",
    response_model=List[UserURLResponse],
    responses={204: {"description": "User has no URLs"}},
    summary="List caller's URLs",
)
async def user_urls(request: Request):
    """List URLs created by the caller."""
    service = request.app.state.service
    config = request.app.state.config
    user_id = current_user_id(request)

    urls = await service.user_urls(user_id)
    if not urls:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return [
        UserURLResponse(short_url=build_short_url(u.code, config.base_url), original_url=u.original_url)
        for u in urls
    ]


@router.delete(
    "/user/urls",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete caller's URLs",
    description="Accepts a list of short codes. Deletion happens in the background; "
                "codes the caller does not own are ignored.",
)
async def delete_user_urls(request: Request, codes: List[str] = Body(...)):
    """Queue caller's URLs for deletion and answer immediately."""
    deleter = request.app.state.deleter
    user_id = current_user_id(request)

    async def run():
        try:
            await deleter.delete(user_id, codes)
        except Exception as e:
            logger.error(f"Failed to delete urls (user_id={user_id}, codes={codes}): {e}")

    spawn_background(request, run())
    return Response(status_code=status.HTTP_202_ACCEPTED)


@router.get(
    "/internal/stats",
    response_model=StatisticsResponse,
    responses={403: {"model": ErrorResponse, "description": "Client not in trusted subnet"}},
    summary="Get statistics",
)
async def get_statistics(request: Request):
    """Get service-wide counters. Restricted to the trusted subnet."""
    service = request.app.state.service
    config = request.app.state.config

    ip = getattr(request.state, "real_ip", None)
    if not is_trusted_ip(ip, parse_trusted_subnet(config.trusted_subnet)):
        logger.warning(f"IP {ip} is not in trusted subnet")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    stats = await service.stats()
    return StatisticsResponse(urls=stats.url_count, users=stats.user_count)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request):
    """Health check endpoint for load balancers and monitoring."""
    service = request.app.state.service
    deleter = request.app.state.deleter

    health = await service.health_check()
    healthy = health["overall"] and deleter.is_running

    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        storage="healthy" if health["storage"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        deleter=deleter.state.value,
        timestamp=datetime.now(timezone.utc),
    )
