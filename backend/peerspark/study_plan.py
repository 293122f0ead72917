"""Daily study plan derivation from session, pod, and profile signals."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, List, Mapping, Optional, Sequence, Set

from .models import PLAN_STATUSES, Pod, Resource, StudyPlanItem, StudySession

logger = logging.getLogger(__name__)


REMINDER_WINDOW_MINUTES = 240
SCHEDULE_ITEM_ID = "schedule"
VAULT_REVIEW_ITEM_ID = "vault-review"
POD_CHECK_IN_ITEM_ID = "pod-check-in"
LOG_PROGRESS_ITEM_ID = "log-progress"


def _start_key(indexed: tuple[int, StudySession]) -> tuple[int, datetime, int]:
    index, session = indexed
    if session.start_at is None:
        return (1, datetime.max.replace(tzinfo=timezone.utc), index)
    return (0, session.start_at, index)


def next_open_session(sessions: Sequence[StudySession]) -> Optional[StudySession]:
    """Earliest incomplete session; sessions without a start time sort last."""
    open_sessions = [(index, session) for index, session in enumerate(sessions) if not session.completed]
    if not open_sessions:
        return None
    return min(open_sessions, key=_start_key)[1]


class StudyPlanBuilder:
    """Builds the ordered list of next actions shown on the home dashboard."""

    def build(
        self,
        sessions: Sequence[StudySession],
        pods: Sequence[Pod],
        weak_resource: Optional[Resource] = None,
        reminder_item: Optional[StudyPlanItem] = None,
    ) -> List[StudyPlanItem]:
        items: List[StudyPlanItem] = []
        upcoming = next_open_session(sessions)
        # First-pod convention: callers control pod ordering upstream.
        first_pod = pods[0] if pods else None

        if upcoming is not None:
            items.append(self._join_item(upcoming))
        else:
            items.append(
                StudyPlanItem(
                    id=SCHEDULE_ITEM_ID,
                    title="Schedule a quick session",
                    description="No sessions today. Add a 30-minute block to stay on track.",
                    action_label="Schedule",
                    action_href="/app/calendar?mode=schedule",
                )
            )

        if reminder_item is not None:
            items.append(reminder_item.model_copy())

        if first_pod is not None:
            items.append(
                StudyPlanItem(
                    id=VAULT_REVIEW_ITEM_ID,
                    title="Review pod resources",
                    description=f"{first_pod.name or 'Pod'} vault • focus on newest uploads",
                    action_label="Open vault",
                    action_href=f"/app/vault?pod={first_pod.id}",
                )
            )
            items.append(
                StudyPlanItem(
                    id=POD_CHECK_IN_ITEM_ID,
                    title="Post a quick check-in",
                    description="Share what you finished and what's next in pod chat.",
                    action_label="Open pod",
                    action_href=f"/app/pods/{first_pod.id}",
                )
            )

        if weak_resource is not None:
            items.append(
                StudyPlanItem(
                    id=f"weak-{weak_resource.id}",
                    title=f"Focus: {weak_resource.title}",
                    description=weak_resource.description or "Reinforce a weak area with a targeted resource.",
                    action_label="Open resource",
                    action_href=f"/app/vault?resource={weak_resource.id}",
                )
            )

        if any(session.completed for session in sessions):
            items.append(
                StudyPlanItem(
                    id=LOG_PROGRESS_ITEM_ID,
                    title="Log a 2-minute recap",
                    description="Note wins and blockers to keep your streak meaningful.",
                    action_label="Open analytics",
                    action_href="/app/analytics",
                )
            )

        return items

    @staticmethod
    def _join_item(session: StudySession) -> StudyPlanItem:
        details = session.pod_name or "Pod"
        if session.scheduled_time:
            details = f"{details} • {session.scheduled_time}"
        return StudyPlanItem(
            id=f"join-{session.id}",
            title=f"Join {session.title or 'study session'}",
            description=details,
            action_label="Open calendar",
            action_href=f"/app/calendar?event={session.id}",
        )


def auto_completed_ids(sessions: Iterable[StudySession]) -> Set[str]:
    """Plan item ids that attended sessions mark as done."""
    return {f"join-{session.id}" for session in sessions if session.completed}


def merge_plan_statuses(
    items: Sequence[StudyPlanItem],
    *persisted: Optional[Mapping[str, str]],
    auto_completed_ids: Iterable[str] = (),
) -> List[StudyPlanItem]:
    """Merge known statuses into freshly built items.

    Precedence: auto-completion, then each persisted map in the order given,
    then the item's own default. Unknown status values are ignored.
    """
    auto_done = set(auto_completed_ids)
    sources = [source for source in persisted if source]
    merged: List[StudyPlanItem] = []
    for item in items:
        status = item.status
        if item.id in auto_done:
            status = "done"
        else:
            for source in sources:
                candidate = source.get(item.id)
                if candidate in PLAN_STATUSES:
                    status = candidate
                    break
        merged.append(item.model_copy(update={"status": status}))
    return merged


def build_reminder_item(
    sessions: Sequence[StudySession],
    now: datetime,
    window_minutes: int = REMINDER_WINDOW_MINUTES,
) -> Optional[StudyPlanItem]:
    """Prep reminder for the next open session when it starts within the window."""
    upcoming = next_open_session(sessions)
    if upcoming is None or upcoming.start_at is None:
        return None
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    minutes_until = max(0, round((upcoming.start_at - now).total_seconds() / 60))
    if not 0 < minutes_until <= window_minutes:
        return None
    return StudyPlanItem(
        id=f"reminder-{upcoming.id}",
        title="Set a prep reminder",
        description=f"Starts in {minutes_until} min. Add a quick reminder for focus time.",
        action_label="Open event",
        action_href=f"/app/calendar?event={upcoming.id}",
    )


def select_weak_resource(resources: Sequence[Resource], focus_areas: Sequence[str]) -> Optional[Resource]:
    """Pick a resource for the learner's primary focus area.

    Prefers the first resource tagged with the primary focus and falls back to
    the first resource returned by the vault search.
    """
    primary = next((area.strip().lower() for area in focus_areas if area and area.strip()), None)
    if primary is None or not resources:
        return None
    pick = next((resource for resource in resources if primary in resource.tags), resources[0])
    return pick.model_copy(
        update={
            "title": pick.title or primary,
            "description": pick.description or f"Reinforce {primary} with a pod resource.",
        }
    )


def sessions_for_day(sessions: Iterable[StudySession], day: date, tz: tzinfo = timezone.utc) -> List[StudySession]:
    """Sessions whose start falls on ``day`` in the learner's timezone."""
    return [
        session
        for session in sessions
        if session.start_at is not None and session.start_at.astimezone(tz).date() == day
    ]


def plan_signals(
    sessions: Sequence[StudySession],
    weak_resource: Optional[Resource] = None,
    reminder_item: Optional[StudyPlanItem] = None,
) -> List[str]:
    """Ordered list of the signals that shaped a plan."""
    signals = ["sessions", "pods"]
    if any(session.completed for session in sessions):
        signals.append("attendance")
    if any(session.has_notes for session in sessions):
        signals.append("notes")
    if weak_resource is not None:
        signals.extend(["profile", "resources"])
    if reminder_item is not None:
        signals.append("reminders")
    return list(dict.fromkeys(signals))


builder = StudyPlanBuilder()


def build_study_plan(
    sessions: Sequence[StudySession],
    pods: Sequence[Pod],
    weak_resource: Optional[Resource] = None,
    reminder_item: Optional[StudyPlanItem] = None,
) -> List[StudyPlanItem]:
    return builder.build(sessions, pods, weak_resource, reminder_item)


__all__ = [
    "REMINDER_WINDOW_MINUTES",
    "StudyPlanBuilder",
    "auto_completed_ids",
    "build_reminder_item",
    "build_study_plan",
    "builder",
    "merge_plan_statuses",
    "next_open_session",
    "plan_signals",
    "select_weak_resource",
    "sessions_for_day",
]
