"""Daily study plan endpoints backing the home dashboard checklist."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from .dashboard import generate_daily_plan, get_plan_statuses, set_plan_item_status
from .models import DailyPlan
from .plan_store import PlanStatusStore, get_plan_store

router = APIRouter(prefix="/api/study-plan", tags=["study-plan"])
logger = logging.getLogger(__name__)


class DailyPlanRequest(BaseModel):
    plan_date: Optional[date] = None
    timezone: Optional[str] = Field(default=None, max_length=64)
    now: Optional[datetime] = None
    profile: Dict[str, Any] = Field(default_factory=dict)
    pods: List[Dict[str, Any]] = Field(default_factory=list)
    events: List[Dict[str, Any]] = Field(default_factory=list)
    resources: List[Dict[str, Any]] = Field(default_factory=list)
    server_statuses: Dict[str, str] = Field(default_factory=dict)


class PlanItemStatusRequest(BaseModel):
    status: Literal["pending", "done"]
    signals: List[str] = Field(default_factory=list)


@router.post("/{user_id}", response_model=DailyPlan, status_code=status.HTTP_200_OK)
def post_daily_plan(
    user_id: str,
    request: DailyPlanRequest,
    store: PlanStatusStore = Depends(get_plan_store),
) -> DailyPlan:
    try:
        return generate_daily_plan(
            user_id,
            store,
            events=request.events,
            pods=request.pods,
            profile=request.profile,
            resources=request.resources,
            plan_date=request.plan_date,
            timezone_name=request.timezone,
            now=request.now,
            server_statuses=request.server_statuses,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{user_id}/{plan_date}/statuses", response_model=Dict[str, str], status_code=status.HTTP_200_OK)
def get_statuses(
    user_id: str,
    plan_date: date,
    store: PlanStatusStore = Depends(get_plan_store),
) -> Dict[str, str]:
    try:
        return get_plan_statuses(user_id, plan_date, store)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.put(
    "/{user_id}/{plan_date}/items/{item_id}",
    response_model=Dict[str, str],
    status_code=status.HTTP_200_OK,
)
def put_item_status(
    user_id: str,
    plan_date: date,
    item_id: str,
    request: PlanItemStatusRequest,
    store: PlanStatusStore = Depends(get_plan_store),
) -> Dict[str, str]:
    try:
        return set_plan_item_status(
            user_id,
            plan_date,
            item_id,
            request.status,
            store,
            signals=request.signals,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to persist plan item %s for %s", item_id, user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to save the plan status. Try again shortly.",
        ) from exc


__all__ = ["router"]
