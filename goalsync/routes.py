"""Goal REST endpoints backed by the active sync session."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from .bootstrap import SyncSession
from .errors import StorageFailure

router = APIRouter(prefix="/api/goals", tags=["goals"])
logger = logging.getLogger(__name__)


class GoalStatsResponse(BaseModel):
    streak: int
    weekly_completion: float
    monthly_completion: float


class PullResponse(BaseModel):
    count: int
    goals: List[Dict[str, Any]]


def get_session(request: Request) -> SyncSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync session has not been started.",
        )
    return session


def _storage_unavailable(exc: StorageFailure) -> HTTPException:
    logger.warning("Goal write failed: %s", exc)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.readable_message())


@router.get("/stats", response_model=GoalStatsResponse, status_code=status.HTTP_200_OK)
def get_stats(session: SyncSession = Depends(get_session)) -> GoalStatsResponse:
    goals = session.goals
    return GoalStatsResponse(
        streak=goals.get_current_streak(),
        weekly_completion=goals.get_completion_rate(7),
        monthly_completion=goals.get_completion_rate(30),
    )


@router.get("/week/{week_start}", status_code=status.HTTP_200_OK)
def get_week(week_start: date, session: SyncSession = Depends(get_session)) -> List[Dict[str, Any]]:
    return [goal.to_payload() for goal in session.goals.get_weekly_goals(week_start)]


@router.get("/week/{week_start}/summary", status_code=status.HTTP_200_OK)
def get_week_summary(week_start: date, session: SyncSession = Depends(get_session)) -> Dict[str, Any]:
    return session.goals.calculate_weekly_summary(week_start).to_payload()


@router.post("/sync/pull", response_model=PullResponse, status_code=status.HTTP_200_OK)
async def pull_goals(session: SyncSession = Depends(get_session)) -> PullResponse:
    merged = await session.pull()
    return PullResponse(count=len(merged), goals=[goal.to_payload() for goal in merged])


@router.get("/{goal_date}", status_code=status.HTTP_200_OK)
def get_goal(goal_date: date, session: SyncSession = Depends(get_session)) -> Dict[str, Any]:
    record = session.goals.get_goal_by_date(goal_date)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No goal recorded for {goal_date.isoformat()}.",
        )
    return record.to_payload()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def add_goal(
    payload: Dict[str, Any] = Body(...),
    session: SyncSession = Depends(get_session),
) -> Dict[str, Any]:
    try:
        record = await session.goals.add_goal(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_context=False),
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except StorageFailure as exc:
        raise _storage_unavailable(exc) from exc
    return record.to_payload()


@router.patch("/{goal_id}", status_code=status.HTTP_200_OK)
async def update_goal(
    goal_id: str,
    payload: Dict[str, Any] = Body(...),
    session: SyncSession = Depends(get_session),
) -> Dict[str, Any]:
    try:
        record = await session.goals.update_goal(goal_id, payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_context=False),
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except StorageFailure as exc:
        raise _storage_unavailable(exc) from exc
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Goal '{goal_id}' was not found.",
        )
    return record.to_payload()


__all__ = ["get_session", "router"]
