"""Normalization boundary between loosely typed BaaS documents and domain models.

Documents fetched from the hosted backend carry camelCase keys, ``$id``
identifiers, and tag fields that may be arrays, JSON-encoded strings, or bare
strings. Everything in this module converts those shapes into the strict
models in :mod:`peerspark.models` and never raises on malformed fields.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from .models import Difficulty, LearnerProfile, LearningPace, Pod, Resource, StudySession
from .scoring import normalize_tags

logger = logging.getLogger(__name__)

_DIFFICULTIES: dict[str, Difficulty] = {
    "beginner": "Beginner",
    "intermediate": "Intermediate",
    "advanced": "Advanced",
}


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _document_id(document: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = document.get(key)
        if isinstance(value, (str, int)) and str(value).strip():
            return str(value).strip()
    return ""


def _non_negative_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


def parse_pace(value: Any) -> Optional[LearningPace]:
    text = _text(value).lower()
    if not text:
        return None
    if "fast" in text:
        return "fast"
    if "moderate" in text:
        return "moderate"
    if "slow" in text:
        return "slow"
    return None


def parse_difficulty(value: Any) -> Optional[Difficulty]:
    return _DIFFICULTIES.get(_text(value).lower())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are treated as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _text(value)
        if not text:
            return None
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Ignoring unparseable timestamp: %s", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def profile_from_document(document: Optional[Mapping[str, Any]]) -> LearnerProfile:
    if not isinstance(document, Mapping):
        return LearnerProfile()
    return LearnerProfile(
        interests=normalize_tags(document.get("interests")),
        learning_goals=normalize_tags(document.get("learningGoals")),
        learning_pace=parse_pace(document.get("learningPace")),
        preferred_session_types=normalize_tags(document.get("preferredSessionTypes")),
        availability=normalize_tags(document.get("availability")),
        vibes=normalize_tags(document.get("vibes")),
        current_focus_areas=normalize_tags(document.get("currentFocusAreas")),
    )


def pod_from_document(document: Optional[Mapping[str, Any]]) -> Pod:
    if not isinstance(document, Mapping):
        logger.warning("Received a non-mapping pod record of type %s; scoring it as empty.", type(document).__name__)
        return Pod()

    member_count = document.get("memberCount")
    if member_count is None and isinstance(document.get("members"), list):
        member_count = len(document["members"])

    return Pod(
        id=_document_id(document, "$id", "id", "teamId"),
        name=_text(document.get("name")),
        description=_text(document.get("description")),
        subject=_text(document.get("subject")) or _text(document.get("category")) or None,
        tags=normalize_tags(document.get("tags")),
        matching_tags=normalize_tags(document.get("matchingTags")),
        difficulty=parse_difficulty(document.get("difficulty")),
        session_types=normalize_tags(document.get("sessionType")),
        ideal_learner_types=normalize_tags(document.get("idealLearnerType")),
        common_availability=normalize_tags(document.get("commonAvailability")),
        member_count=_non_negative_int(member_count),
    )


def session_from_event(event: Mapping[str, Any], pods: Sequence[Pod] = ()) -> StudySession:
    """Convert a calendar event into a study session.

    An event counts as completed when it is flagged ``isCompleted`` or when the
    learner left non-blank notes on it.
    """
    notes = event.get("notes")
    has_notes = isinstance(notes, str) and bool(notes.strip())
    pod_id = _document_id(event, "podId") or None
    pod_name = ""
    if pod_id:
        pod_name = next((pod.name for pod in pods if pod.id == pod_id), "")
    return StudySession(
        id=_document_id(event, "$id", "id"),
        title=_text(event.get("title")),
        pod_id=pod_id,
        pod_name=pod_name,
        start_at=parse_timestamp(event.get("startTime")),
        end_at=parse_timestamp(event.get("endTime")),
        completed=bool(event.get("isCompleted")) or has_notes,
        has_notes=has_notes,
    )


def resource_from_document(document: Mapping[str, Any]) -> Resource:
    return Resource(
        id=_document_id(document, "$id", "id"),
        title=_text(document.get("title")) or _text(document.get("fileName")),
        description=_text(document.get("description")),
        tags=normalize_tags(document.get("tags")),
    )


def coerce_profile(value: Any) -> LearnerProfile:
    if isinstance(value, LearnerProfile):
        return value
    return profile_from_document(value)


def coerce_pod(value: Any) -> Pod:
    if isinstance(value, Pod):
        return value
    return pod_from_document(value)


__all__ = [
    "coerce_pod",
    "coerce_profile",
    "normalize_tags",
    "parse_difficulty",
    "parse_pace",
    "parse_timestamp",
    "pod_from_document",
    "profile_from_document",
    "resource_from_document",
    "session_from_event",
]
