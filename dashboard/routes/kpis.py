from fastapi import APIRouter
from typing import Any, Dict

from dashboard.services.kpi_service import get_delivery_kpis

router = APIRouter(prefix="/kpis", tags=["kpis"])


@router.get("/delivery", summary="Delivery KPIs", description="Cycle time, deploy frequency, PR size and delivery success score for a project (cached for the KPI TTL).")
def delivery_kpis(project_key: str = "OBD") -> Dict[str, Any]:
    return get_delivery_kpis(project_key)
