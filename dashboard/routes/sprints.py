from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import date

from dashboard.services import sprint_service

router = APIRouter(tags=["sprints"])


class TeamIn(BaseModel):
    name: str
    project_key: Optional[str] = None


class SprintIn(BaseModel):
    project_key: str
    name: str
    state: str = "active"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    avg_lead_time: Optional[float] = None
    avg_pr_size: Optional[float] = None
    committed_points: float = 0.0
    completed_points: float = 0.0


# columns that cannot be cleared through a patch
NON_NULLABLE_FIELDS = ("name", "state", "committed_points", "completed_points")


class SprintPatch(BaseModel):
    name: Optional[str] = None
    state: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    avg_lead_time: Optional[float] = None
    avg_pr_size: Optional[float] = None
    committed_points: Optional[float] = None
    completed_points: Optional[float] = None


@router.get("/teams", summary="List teams", description="All teams, served from the static-data cache.")
def list_teams() -> List[Dict[str, Any]]:
    return sprint_service.list_teams()


@router.post("/teams", summary="Create team", description="Create a team and invalidate team and KPI cache entries.")
def create_team(data: TeamIn) -> Dict[str, Any]:
    row = sprint_service.create_team(data.name, data.project_key)
    if row is None:
        raise HTTPException(status_code=400, detail="Team name already exists")
    return row


@router.get("/sprints", summary="List sprints", description="Sprints of a project, served from the sprint-data cache.")
def list_sprints(project_key: str) -> List[Dict[str, Any]]:
    return sprint_service.list_sprints(project_key)


@router.post("/sprints", summary="Create sprint", description="Create a sprint and invalidate sprint and KPI cache entries.")
def create_sprint(data: SprintIn) -> Dict[str, Any]:
    return sprint_service.create_sprint(**data.model_dump())


@router.patch("/sprints/{sprint_id}", summary="Update sprint", description="Partially update a sprint; invalidates sprint and KPI cache entries.")
def update_sprint(sprint_id: str, data: SprintPatch) -> Dict[str, Any]:
    changes = data.model_dump(exclude_unset=True)
    nulled = [f for f in NON_NULLABLE_FIELDS if f in changes and changes[f] is None]
    if nulled:
        raise HTTPException(status_code=400, detail=f"Fields cannot be null: {', '.join(nulled)}")
    row = sprint_service.update_sprint(sprint_id, changes)
    if row is None:
        raise HTTPException(status_code=404, detail="Sprint not found")
    return row
