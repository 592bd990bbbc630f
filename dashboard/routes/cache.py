from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from dashboard.services.cache_service import cache_service, CACHE_TTL
from dashboard.services.realtime import apply_change
from dashboard.routes.admin import require_admin_if_configured
from dashboard.utils.env import env_flag

router = APIRouter(prefix="/internal/cache", tags=["internal"], dependencies=[Depends(require_admin_if_configured)])


class RealtimeEventIn(BaseModel):
    table: str
    eventType: str = "UPDATE"
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None


class InvalidateOut(BaseModel):
    removed: int = Field(0, description="Keys removed (prefix and realtime invalidation only)")


@router.get("/stats", summary="Cache statistics", description="Entry counts, hit/miss counters and the configured TTL table.")
def cache_stats():
    if env_flag("CACHE_PURGE_ON_STATS", default=True):
        cache_service.purge_expired()
    return {**cache_service.get_stats(), "ttl": dict(CACHE_TTL)}


@router.post("/realtime", response_model=InvalidateOut, summary="Realtime change notification", description="Webhook for database change events; drops cache keys related to the changed table.")
def realtime_event(event: RealtimeEventIn):
    if not event.table.strip():
        raise HTTPException(status_code=400, detail="table is required")
    return {"removed": apply_change(event.table, event.eventType, event.new, event.old)}


@router.post("/invalidate", response_model=InvalidateOut, summary="Invalidate keys", description="Invalidate a single `key` or every key starting with `prefix`.")
def invalidate(key: Optional[str] = None, prefix: Optional[str] = None):
    if not key and not prefix:
        raise HTTPException(status_code=400, detail="key or prefix is required")
    removed = 0
    if key:
        cache_service.invalidate(key)
    if prefix:
        removed = cache_service.invalidate_prefix(prefix)
    return {"removed": removed}


@router.post("/clear", summary="Clear cache", description="Drop every cache entry.")
def clear_cache():
    cache_service.clear()
    return {"status": "ok"}
