"""FastAPI route definitions for the shortlink REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /shorturls
        ├─ ShortURLCreate (request body)
        └─ ShortURLCreated (201) or 400/409/503

    GET  /shorturls/:shortcode
        └─ ShortURLStats (200) or 404

    GET  /:shortcode
        └─ 302 Redirect or 404/410

Key Behaviours
===============
- Handlers only map HTTP to service calls; domain errors propagate to the
  exception handlers registered in ``shortlink.main``.
- Stats stay readable after a link expires; redirects do not.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from shortlink.dependencies import (
    RequestContext,
    get_redirect_service,
    get_request_context,
    get_shortening_service,
)
from shortlink.enums import HealthStatus
from shortlink.exceptions import StoreUnavailableError
from shortlink.redirect_service import RedirectService
from shortlink.schemas import ErrorResponse, HealthResponse, ShortURLCreate, ShortURLCreated, ShortURLStats
from shortlink.shortening_service import ShorteningService

__all__ = ["router"]

router = APIRouter()

SHORTEN_ERRORS = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}
LOOKUP_ERRORS = {
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}
REDIRECT_ERRORS = {
    **LOOKUP_ERRORS,
    status.HTTP_410_GONE: {"model": ErrorResponse},
}


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    manager = ctx.service_manager
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.DISABLED

    try:
        await manager.store.ping()
    except StoreUnavailableError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if manager.cache is not None:
        try:
            await manager.cache.ping()
            cache_status = HealthStatus.HEALTHY
        except Exception as e:
            ctx.logger.error(f"Cache health check failed: {e}")
            cache_status = HealthStatus.UNHEALTHY

    overall = (
        HealthStatus.UNHEALTHY
        if HealthStatus.UNHEALTHY in (db_status, cache_status)
        else HealthStatus.HEALTHY
    )
    return HealthResponse(status=overall, database=db_status, cache=cache_status)


@router.post(
    "/shorturls",
    response_model=ShortURLCreated,
    status_code=status.HTTP_201_CREATED,
    responses=SHORTEN_ERRORS,
    tags=["shorturls"],
)
async def create_short_url(
    payload: ShortURLCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ShorteningService = Depends(get_shortening_service),
) -> ShortURLCreated:
    ctx.logger.info(f"Shortening requested: {payload.url}")
    created = await service.create_short_url(payload.url, payload.validity, payload.shortcode)
    return ShortURLCreated(short_link=created.short_link, expiry=created.expires_at)


@router.get(
    "/shorturls/{shortcode}",
    response_model=ShortURLStats,
    responses=LOOKUP_ERRORS,
    tags=["shorturls"],
)
async def get_short_url_stats(
    shortcode: str,
    service: RedirectService = Depends(get_redirect_service),
) -> ShortURLStats:
    record = await service.get_stats(shortcode)
    return ShortURLStats.from_record(record)


@router.get("/{shortcode}", responses=REDIRECT_ERRORS, tags=["redirect"])
async def redirect_to_original_url(
    shortcode: str,
    ctx: RequestContext = Depends(get_request_context),
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectResponse:
    original_url = await service.resolve(shortcode, ctx.click)
    ctx.logger.debug(f"Redirect for {shortcode} served in {ctx.get_duration():.1f}ms")
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
