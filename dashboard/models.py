from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from datetime import datetime, date, timezone
import uuid


def gen_uuid() -> str:
    return str(uuid.uuid4())


# Table names mirror the upstream database so realtime change notifications
# map straight onto cache invalidation patterns.

class Team(SQLModel, table=True):
    __tablename__ = "teams"
    __table_args__ = (UniqueConstraint("name"),)
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    name: str = Field(index=True)
    project_key: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Developer(SQLModel, table=True):
    __tablename__ = "developers"
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    display_name: str
    email: Optional[str] = None
    team_id: Optional[str] = Field(default=None, foreign_key="teams.id", index=True)
    active: bool = True


class Sprint(SQLModel, table=True):
    __tablename__ = "sprints"
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    project_key: str = Field(index=True)
    name: str
    state: str = "active"  # future | active | closed
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    avg_lead_time: Optional[float] = None  # hours
    avg_pr_size: Optional[float] = None  # changed lines per PR
    committed_points: float = 0.0
    completed_points: float = 0.0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Issue(SQLModel, table=True):
    __tablename__ = "issues"
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    issue_key: str = Field(index=True)
    sprint_id: Optional[str] = Field(default=None, foreign_key="sprints.id", index=True)
    assignee_id: Optional[str] = Field(default=None, foreign_key="developers.id")
    status: str = "To Do"
    story_points: Optional[float] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None


class SquadCapacity(SQLModel, table=True):
    __tablename__ = "squad_capacity"
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    team_id: str = Field(foreign_key="teams.id", index=True)
    sprint_id: str = Field(foreign_key="sprints.id", index=True)
    capacity_hours: float = 0.0
