# holdings_tracker/routers/admin.py
"""
Administrative endpoints.

- POST /admin/cache/refresh - Purge cached prices, rates and sync entries
  written since an instant (default: the last 24 hours) so the next
  valuation re-syncs the affected symbols
"""

import logging

from fastapi import APIRouter, Body, Depends, Request

from holdings_tracker.dependencies import get_cache_admin_service
from holdings_tracker.middleware.rate_limit import limiter, RATE_LIMIT_ADMIN
from holdings_tracker.schemas.admin import CacheResetRequest, CacheResetResponse
from holdings_tracker.services.cache_admin import CacheAdminService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
)


@router.post("/cache/refresh", response_model=CacheResetResponse)
@limiter.limit(RATE_LIMIT_ADMIN)
def refresh_cache(
    request: Request,
    payload: CacheResetRequest | None = Body(default=None),
    service: CacheAdminService = Depends(get_cache_admin_service),
) -> CacheResetResponse:
    """Force a re-sync by deleting recently written cache rows."""
    since = payload.since if payload else None
    result = service.reset(since)
    return CacheResetResponse(
        since=result.since,
        deleted_prices=result.deleted_prices,
        deleted_rates=result.deleted_rates,
        deleted_sync_entries=result.deleted_sync_entries,
    )
