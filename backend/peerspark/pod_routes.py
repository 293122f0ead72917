"""Pod recommendation endpoints used by the pods browser, onboarding, and home."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from .dashboard import auto_match_and_join, recommend_pods_for_user
from .models import MatchExperiment, MatchResult, MatchVariant
from .pod_matching import matcher

router = APIRouter(prefix="/api/pods", tags=["pods"])
logger = logging.getLogger(__name__)


class PodRecommendationRequest(BaseModel):
    user_id: Optional[str] = Field(default=None, max_length=128)
    profile: Dict[str, Any] = Field(default_factory=dict)
    pods: List[Dict[str, Any]] = Field(default_factory=list)
    limit: Optional[int] = None
    refresh: bool = False


class PodScoresRequest(BaseModel):
    profile: Dict[str, Any] = Field(default_factory=dict)
    pods: List[Dict[str, Any]] = Field(default_factory=list)


class JoinTargetsRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    profile: Dict[str, Any] = Field(default_factory=dict)
    pods: List[Dict[str, Any]] = Field(default_factory=list)
    joined_pod_ids: List[str] = Field(default_factory=list)
    match_limit: int = Field(default=5, ge=0)
    join_limit: int = Field(default=3, ge=0)
    variant: Optional[MatchVariant] = None


@router.post("/recommendations", response_model=List[MatchResult], status_code=status.HTTP_200_OK)
def post_recommendations(request: PodRecommendationRequest) -> List[MatchResult]:
    user_id = (request.user_id or "").strip()
    try:
        return recommend_pods_for_user(
            user_id or "anonymous",
            request.profile,
            request.pods,
            request.limit,
            use_cache=bool(user_id) and not request.refresh,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/match-scores", response_model=Dict[str, int], status_code=status.HTTP_200_OK)
def post_match_scores(request: PodScoresRequest) -> Dict[str, int]:
    return matcher.score_map(request.profile, request.pods)


@router.post("/join-targets", response_model=MatchExperiment, status_code=status.HTTP_200_OK)
def post_join_targets(request: JoinTargetsRequest) -> MatchExperiment:
    try:
        return auto_match_and_join(
            request.user_id,
            request.profile,
            request.pods,
            request.joined_pod_ids,
            match_limit=request.match_limit,
            join_limit=request.join_limit,
            variant=request.variant,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


__all__ = ["router"]
