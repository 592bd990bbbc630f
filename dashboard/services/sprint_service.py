from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlmodel import select

from dashboard.db import get_session
from dashboard.models import Sprint, Team
from dashboard.services.cache_service import cache_service, CACHE_TTL
from dashboard.services.observability import timed_loader
from dashboard.services.realtime import apply_change


def sprints_key(project_key: str) -> str:
    return f"sprintData-{project_key}"


TEAMS_KEY = "team-all"


def _load_sprints(project_key: str) -> List[Dict[str, Any]]:
    with get_session() as db:
        q = (select(Sprint)
             .where(Sprint.project_key == project_key)
             .order_by(Sprint.start_date.desc()))
        return [s.model_dump(mode="json") for s in db.exec(q).all()]


def _load_teams() -> List[Dict[str, Any]]:
    with get_session() as db:
        q = select(Team).order_by(Team.name)
        return [t.model_dump(mode="json") for t in db.exec(q).all()]


def list_sprints(project_key: str) -> List[Dict[str, Any]]:
    return cache_service.get_or_set(
        sprints_key(project_key),
        timed_loader("sprints", lambda: _load_sprints(project_key)),
        CACHE_TTL["SprintData"],
    )


def list_teams() -> List[Dict[str, Any]]:
    return cache_service.get_or_set(TEAMS_KEY, timed_loader("teams", _load_teams), CACHE_TTL["StaticData"])


def create_team(name: str, project_key: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Create a team; returns None when the name is already taken."""
    with get_session() as db:
        if db.exec(select(Team).where(Team.name == name)).first():
            return None
        team = Team(name=name, project_key=project_key)
        db.add(team)
        db.commit()
        db.refresh(team)
        row = team.model_dump(mode="json")
    apply_change("teams", "INSERT", new=row)
    return row


def create_sprint(**fields: Any) -> Dict[str, Any]:
    with get_session() as db:
        sprint = Sprint(**fields)
        db.add(sprint)
        db.commit()
        db.refresh(sprint)
        row = sprint.model_dump(mode="json")
    apply_change("sprints", "INSERT", new=row)
    return row


def update_sprint(sprint_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Apply ``changes`` to a sprint; returns None when it does not exist."""
    with get_session() as db:
        sprint = db.get(Sprint, sprint_id)
        if sprint is None:
            return None
        old = sprint.model_dump(mode="json")
        for name, value in changes.items():
            setattr(sprint, name, value)
        sprint.updated_at = datetime.now(timezone.utc)
        db.add(sprint)
        db.commit()
        db.refresh(sprint)
        row = sprint.model_dump(mode="json")
    apply_change("sprints", "UPDATE", new=row, old=old)
    return row
