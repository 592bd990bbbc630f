from fastapi import APIRouter, Depends

from dashboard.services.observability import observability
from dashboard.routes.admin import require_admin_if_configured


router = APIRouter(prefix="/internal", tags=["internal"], dependencies=[Depends(require_admin_if_configured)])


@router.get("/metrics", summary="Internal metrics", description="Returns in-memory counters, loader timer summaries, and recent cache invalidation events.")
def get_metrics():
    return observability.snapshot()


@router.post("/metrics/reset", summary="Reset internal metrics", description="Clears in-memory counters and events (admin-protected when ADMIN_TOKEN is set).")
def reset_metrics():
    observability.reset()
    return {"status": "ok"}
