"""Delivery KPIs (cycle time, deploy frequency, PR size) computed from closed sprints.

Scores follow the delivery OKR bands: every component maps to 100/85/70/50/25
and the overall delivery success score is a weighted sum of the three.
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import select

from dashboard.db import get_session
from dashboard.models import Sprint
from dashboard.services.cache_service import cache_service, CACHE_TTL
from dashboard.services.observability import timed_loader

logger = logging.getLogger("kpi_service")

DELIVERY_SUCCESS_WEIGHTS = {"cycle_time": 0.40, "deploy_frequency": 0.30, "pr_size": 0.30}

# (upper bound inclusive, score); lower is better
CYCLE_TIME_BANDS = [(48, 100), (72, 85), (96, 70), (120, 50)]
PR_SIZE_BANDS = [(100, 100), (155, 85), (228, 70), (300, 50)]
# (lower bound inclusive, score); higher is better
DEPLOY_FREQUENCY_BANDS = [(1.5, 100), (0.8, 85), (0.5, 70), (0.2, 50)]
FLOOR_SCORE = 25

CYCLE_TIME_BREAKDOWN = {"coding_time": 0.05, "pickup_time": 0.05, "review_time": 0.18, "deploy_time": 0.72}

# No deploy data upstream; estimated from closed sprints.
DEPLOYS_PER_SPRINT = 2.5
WORKING_DAYS_PER_SPRINT = 10
DEPLOY_WINDOW_DAYS = 90
SPRINT_HISTORY_LIMIT = 20
TREND_WEEKS = 8
PR_SIZE_MIN_LINES = 50  # smaller PRs fall to the floor score


def kpis_key(project_key: str) -> str:
    return f"kpi-delivery-{project_key}"


def score_cycle_time(hours: float) -> int:
    for upper, score in CYCLE_TIME_BANDS:
        if hours <= upper:
            return score
    return FLOOR_SCORE


def score_pr_size(lines: float) -> int:
    if lines < PR_SIZE_MIN_LINES:
        return FLOOR_SCORE
    for upper, score in PR_SIZE_BANDS:
        if lines <= upper:
            return score
    return FLOOR_SCORE


def score_deploy_frequency(deploys_per_day: float) -> int:
    for lower, score in DEPLOY_FREQUENCY_BANDS:
        if deploys_per_day >= lower:
            return score
    return FLOOR_SCORE


def delivery_success_score(cycle_time: int, deploy_frequency: int, pr_size: int) -> int:
    w = DELIVERY_SUCCESS_WEIGHTS
    return round(cycle_time * w["cycle_time"] + deploy_frequency * w["deploy_frequency"] + pr_size * w["pr_size"])


def _cycle_time(sprints: Sequence[Sprint]) -> Optional[Dict[str, Any]]:
    values = [s.avg_lead_time for s in sprints if s.avg_lead_time and s.avg_lead_time > 0]
    if not values:
        return None
    hours = sum(values) / len(values)
    return {
        "hours": round(hours),
        "score": score_cycle_time(hours),
        "breakdown": {phase: hours * share for phase, share in CYCLE_TIME_BREAKDOWN.items()},
    }


def _deploy_frequency(sprints: Sequence[Sprint], today: date) -> Optional[Dict[str, Any]]:
    cutoff = today - timedelta(days=DEPLOY_WINDOW_DAYS)
    recent = [s for s in sprints if s.state == "closed" and s.end_date and s.end_date >= cutoff]
    if not recent:
        return None
    total_deploys = len(recent) * DEPLOYS_PER_SPRINT
    working_days = len(recent) * WORKING_DAYS_PER_SPRINT
    per_day = total_deploys / working_days
    return {
        "deploys_per_day": round(per_day, 1),
        "score": score_deploy_frequency(per_day),
        "total_deploys": round(total_deploys),
        "working_days": working_days,
    }


def _pr_size(sprints: Sequence[Sprint]) -> Optional[Dict[str, Any]]:
    values = [s.avg_pr_size for s in sprints if s.avg_pr_size and s.avg_pr_size > 0]
    if not values:
        return None
    lines = sum(values) / len(values)
    return {"lines": round(lines), "score": score_pr_size(lines)}


def _weekly_trends(sprints: Sequence[Sprint], today: date, pr_score: Optional[int]) -> List[Dict[str, Any]]:
    """Per-week scores over the last TREND_WEEKS weeks (Sunday to Saturday, by sprint end date).

    Weeks without a closed sprint carrying lead-time data are skipped.
    """
    trends = []
    for weeks_ago in range(TREND_WEEKS - 1, -1, -1):
        day = today - timedelta(weeks=weeks_ago)
        week_start = day - timedelta(days=(day.weekday() + 1) % 7)
        week_end = week_start + timedelta(days=6)
        in_week = [s for s in sprints if s.end_date and week_start <= s.end_date <= week_end]
        cycle = _cycle_time(in_week)
        deploy = _deploy_frequency(in_week, today)
        if not (cycle and deploy):
            continue
        score = None
        if pr_score is not None:
            score = delivery_success_score(cycle["score"], deploy["score"], pr_score)
        trends.append({
            "week": f"Wk {TREND_WEEKS - weeks_ago}",
            "week_start": week_start.isoformat(),
            "delivery_score": score,
            "cycle_time": cycle["score"],
            "deploy_frequency": deploy["score"],
            "pr_size": pr_score,
        })
    return trends


def compute_delivery_kpis(sprints: Sequence[Sprint], today: Optional[date] = None) -> Dict[str, Any]:
    """Compute the delivery KPI payload; components without data come back as None."""
    today = today or date.today()
    cycle = _cycle_time(sprints)
    deploy = _deploy_frequency(sprints, today)
    pr = _pr_size(sprints)
    overall = None
    if cycle and deploy and pr:
        overall = delivery_success_score(cycle["score"], deploy["score"], pr["score"])
    trends = _weekly_trends(sprints, today, pr["score"] if pr else None)
    return {
        "delivery_success_score": overall,
        "cycle_time": cycle,
        "deploy_frequency": deploy,
        "pr_size": pr,
        "sprints_considered": len(sprints),
        "trends": trends,
    }


def _load_closed_sprints(project_key: str) -> List[Sprint]:
    with get_session() as db:
        q = (select(Sprint)
             .where(Sprint.project_key == project_key, Sprint.state == "closed")
             .order_by(Sprint.end_date.desc())
             .limit(SPRINT_HISTORY_LIMIT))
        res = db.exec(q).all()
        for obj in res:
            db.expunge(obj)
        return list(res)


def _load_delivery_kpis(project_key: str) -> Dict[str, Any]:
    sprints = _load_closed_sprints(project_key)
    payload = compute_delivery_kpis(sprints)
    if payload["delivery_success_score"] is None:
        logger.info("Incomplete delivery KPIs for project %s (%d closed sprints)", project_key, len(sprints))
    return {"project_key": project_key, **payload}


def get_delivery_kpis(project_key: str) -> Dict[str, Any]:
    return cache_service.get_or_set(
        kpis_key(project_key),
        timed_loader("delivery_kpis", lambda: _load_delivery_kpis(project_key)),
        CACHE_TTL["KPIs"],
    )
