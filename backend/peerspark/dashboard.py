"""Home dashboard services: pod recommendations and the daily study plan."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from time import perf_counter
from typing import Any, Dict, List, Mapping, Optional, Sequence

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .cache import match_cache, ranking_fingerprint
from .config import get_settings
from .documents import coerce_pod, coerce_profile, resource_from_document, session_from_event
from .models import (
    PLAN_STATUSES,
    DailyPlan,
    MatchExperiment,
    MatchResult,
    MatchVariant,
    Pod,
    Resource,
    StudySession,
)
from .plan_store import PlanStatusStore, plan_storage_key
from .pod_matching import (
    DEFAULT_JOIN_LIMIT,
    DEFAULT_MATCH_LIMIT,
    assign_match_variant,
    rank_pods_for_user,
    select_join_targets,
)
from .study_plan import (
    auto_completed_ids,
    build_reminder_item,
    build_study_plan,
    merge_plan_statuses,
    plan_signals,
    select_weak_resource,
    sessions_for_day,
)
from .telemetry import emit_event

logger = logging.getLogger(__name__)


def resolve_timezone(raw: Optional[str]) -> tzinfo:
    """Return the learner's zone, falling back to the configured default or UTC."""
    for candidate in (raw, get_settings().default_timezone):
        if candidate is None or not candidate.strip():
            continue
        try:
            return ZoneInfo(candidate.strip())
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Ignoring unsupported timezone value: %s", candidate)
    return timezone.utc


def recommend_pods_for_user(
    user_id: str,
    profile: Any,
    pods: Sequence[Any],
    limit: Optional[int] = None,
    *,
    use_cache: bool = True,
) -> List[MatchResult]:
    """Rank the catalog for a learner.

    Recent results are reused only when the limit, the normalized profile and
    the normalized catalog all match the cached request.
    """
    settings = get_settings()
    effective_limit = settings.default_match_limit if limit is None else max(int(limit), 0)
    match_cache.configure(settings.match_cache_ttl_seconds)
    learner = coerce_profile(profile)
    catalog = [coerce_pod(pod) for pod in pods]
    fingerprint = ranking_fingerprint(learner, catalog) if use_cache else ""

    if use_cache:
        cached = match_cache.get(user_id, effective_limit, fingerprint)
        if cached is not None:
            logger.debug("Serving cached recommendations for %s (limit=%d)", user_id, effective_limit)
            return cached

    started_at = perf_counter()
    ranked = rank_pods_for_user(learner, catalog, effective_limit)
    if use_cache:
        match_cache.set(user_id, effective_limit, ranked, fingerprint)
    emit_event(
        "pod_recommendations_ranked",
        user_id=user_id,
        catalog_size=len(pods),
        limit=effective_limit,
        result_count=len(ranked),
        top_score=ranked[0].score if ranked else None,
        duration_ms=round((perf_counter() - started_at) * 1000, 2),
    )
    return ranked


def auto_match_and_join(
    user_id: str,
    profile: Any,
    pods: Sequence[Any],
    joined_pod_ids: Sequence[str] = (),
    *,
    match_limit: int = DEFAULT_MATCH_LIMIT,
    join_limit: int = DEFAULT_JOIN_LIMIT,
    variant: Optional[MatchVariant] = None,
) -> MatchExperiment:
    """Rank the catalog and decide which pods to join for the learner's experiment arm.

    Under ``auto-join`` the unjoined targets are returned as ``joined`` for the
    caller to apply; under ``prompted`` nothing is joined and the targets are
    only suggested.
    """
    key_user = user_id.strip()
    if not key_user:
        raise ValueError("User id cannot be empty when running auto-match.")
    arm = variant or assign_match_variant(key_user)
    ranked = rank_pods_for_user(profile, pods, match_limit)
    targets = [pod.id for pod in select_join_targets(ranked, joined_pod_ids, join_limit)]
    experiment = MatchExperiment(
        user_id=key_user,
        variant=arm,
        recommended=[result.pod.id for result in ranked],
        join_targets=targets,
        joined=list(targets) if arm == "auto-join" else [],
    )
    emit_event(
        "pod_match_experiment",
        user_id=key_user,
        variant=experiment.variant,
        recommended=experiment.recommended,
        joined=experiment.joined,
    )
    return experiment


def _localize(sessions: Sequence[StudySession], tz: tzinfo) -> List[StudySession]:
    localized: List[StudySession] = []
    for session in sessions:
        update: Dict[str, Any] = {}
        if session.start_at is not None:
            update["start_at"] = session.start_at.astimezone(tz)
        if session.end_at is not None:
            update["end_at"] = session.end_at.astimezone(tz)
        localized.append(session.model_copy(update=update) if update else session)
    return localized


def generate_daily_plan(
    user_id: str,
    store: PlanStatusStore,
    *,
    events: Sequence[Mapping[str, Any]] = (),
    pods: Sequence[Any] = (),
    profile: Any = None,
    resources: Sequence[Any] = (),
    plan_date: Optional[date] = None,
    timezone_name: Optional[str] = None,
    now: Optional[datetime] = None,
    server_statuses: Optional[Mapping[str, str]] = None,
) -> DailyPlan:
    """Build today's plan from raw calendar, pod, profile, and vault documents.

    Persisted statuses from ``store`` (and optionally a server-side snapshot,
    which takes precedence over the store) are merged by item id; attended
    sessions always mark their join item done.
    """
    started_at = perf_counter()
    key_user = user_id.strip()
    if not key_user:
        raise ValueError("User id cannot be empty when generating a study plan.")

    settings = get_settings()
    tz = resolve_timezone(timezone_name)
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    day = plan_date or current.astimezone(tz).date()

    learner = coerce_profile(profile)
    user_pods: List[Pod] = [coerce_pod(pod) for pod in pods]
    sessions = [session_from_event(event, user_pods) for event in events if isinstance(event, Mapping)]
    todays = _localize(sessions_for_day(sessions, day, tz), tz)
    vault: List[Resource] = [
        resource if isinstance(resource, Resource) else resource_from_document(resource)
        for resource in resources
        if isinstance(resource, (Resource, Mapping))
    ]

    weak_resource = select_weak_resource(vault, learner.current_focus_areas)
    reminder_item = build_reminder_item(todays, current, settings.reminder_window_minutes)
    items = build_study_plan(todays, user_pods, weak_resource, reminder_item)

    key = plan_storage_key(key_user, day)
    stored = store.get(key)
    merged = merge_plan_statuses(
        items,
        server_statuses,
        stored,
        auto_completed_ids=auto_completed_ids(todays),
    )
    signals = plan_signals(todays, weak_resource, reminder_item)
    plan = DailyPlan(user_id=key_user, plan_date=day, items=merged, signals=signals)

    emit_event(
        "study_plan_built",
        user_id=key_user,
        plan_date=day,
        item_count=len(plan.items),
        pending_count=plan.pending_count,
        session_count=len(todays),
        signals=signals,
        duration_ms=round((perf_counter() - started_at) * 1000, 2),
    )
    return plan


def set_plan_item_status(
    user_id: str,
    plan_date: date,
    item_id: str,
    status: str,
    store: PlanStatusStore,
    *,
    signals: Sequence[str] = (),
) -> Dict[str, str]:
    """Persist a single item toggle and return the full status map for the day."""
    if status not in PLAN_STATUSES:
        raise ValueError(f"Unsupported plan status '{status}'.")
    if not item_id.strip():
        raise ValueError("Plan item id cannot be empty.")
    key = plan_storage_key(user_id, plan_date)
    statuses = store.get(key)
    previous = statuses.get(item_id)
    statuses[item_id] = status
    store.put(key, statuses, signals)
    emit_event(
        "study_plan_item_status_changed",
        user_id=user_id.strip(),
        plan_date=plan_date,
        item_id=item_id,
        previous_status=previous,
        status=status,
        completed_count=sum(1 for value in statuses.values() if value == "done"),
    )
    return statuses


def get_plan_statuses(user_id: str, plan_date: date, store: PlanStatusStore) -> Dict[str, str]:
    return store.get(plan_storage_key(user_id, plan_date))


__all__ = [
    "auto_match_and_join",
    "generate_daily_plan",
    "get_plan_statuses",
    "recommend_pods_for_user",
    "resolve_timezone",
    "set_plan_item_status",
]
