"""Domain models shared by the pod matcher and the study plan builder."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .scoring import normalize_tags

LearningPace = Literal["slow", "moderate", "fast"]
Difficulty = Literal["Beginner", "Intermediate", "Advanced"]
PlanStatus = Literal["pending", "done"]
MatchVariant = Literal["auto-join", "prompted"]

PLAN_STATUSES: FrozenSet[str] = frozenset({"pending", "done"})


class LearnerProfile(BaseModel):
    """Matching-relevant slice of a learner's profile."""

    model_config = ConfigDict(frozen=True)

    interests: FrozenSet[str] = Field(default_factory=frozenset)
    learning_goals: FrozenSet[str] = Field(default_factory=frozenset)
    learning_pace: Optional[LearningPace] = None
    preferred_session_types: FrozenSet[str] = Field(default_factory=frozenset)
    availability: FrozenSet[str] = Field(default_factory=frozenset)
    vibes: FrozenSet[str] = Field(default_factory=frozenset)
    current_focus_areas: List[str] = Field(default_factory=list)

    @field_validator(
        "interests",
        "learning_goals",
        "preferred_session_types",
        "availability",
        "vibes",
        "current_focus_areas",
        mode="before",
    )
    @classmethod
    def _normalize_tag_fields(cls, value: Any) -> List[str]:
        return normalize_tags(value)

    @property
    def primary_focus(self) -> Optional[str]:
        return self.current_focus_areas[0] if self.current_focus_areas else None

    @property
    def topic_tags(self) -> FrozenSet[str]:
        return self.interests | frozenset(self.current_focus_areas)


class Pod(BaseModel):
    """Study pod as seen by the matcher."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    description: str = ""
    subject: Optional[str] = None
    tags: FrozenSet[str] = Field(default_factory=frozenset)
    matching_tags: FrozenSet[str] = Field(default_factory=frozenset)
    difficulty: Optional[Difficulty] = None
    session_types: FrozenSet[str] = Field(default_factory=frozenset)
    ideal_learner_types: FrozenSet[str] = Field(default_factory=frozenset)
    common_availability: FrozenSet[str] = Field(default_factory=frozenset)
    member_count: int = Field(default=0, ge=0)

    @field_validator(
        "tags",
        "matching_tags",
        "session_types",
        "ideal_learner_types",
        "common_availability",
        mode="before",
    )
    @classmethod
    def _normalize_tag_fields(cls, value: Any) -> List[str]:
        return normalize_tags(value)

    @field_validator("subject", mode="before")
    @classmethod
    def _normalize_subject(cls, value: Any) -> Optional[str]:
        tags = normalize_tags(value) if isinstance(value, str) else []
        return tags[0] if tags else None

    @property
    def topic_tags(self) -> FrozenSet[str]:
        tags = self.tags | self.matching_tags
        if self.subject:
            tags = tags | {self.subject}
        return tags


class MatchResult(BaseModel):
    pod: Pod
    score: int = Field(ge=0, le=100)


class MatchExperiment(BaseModel):
    """Outcome of one auto-match run, logged as a match experiment record."""

    user_id: str
    variant: MatchVariant
    recommended: List[str] = Field(default_factory=list)
    join_targets: List[str] = Field(default_factory=list)
    joined: List[str] = Field(default_factory=list)


class StudySession(BaseModel):
    """Calendar session relevant to the learner's day."""

    id: str
    title: str = ""
    pod_id: Optional[str] = None
    pod_name: str = ""
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    completed: bool = False
    has_notes: bool = False

    @field_validator("start_at", "end_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def scheduled_time(self) -> str:
        return self.start_at.strftime("%H:%M") if self.start_at else ""

    @property
    def duration_minutes(self) -> int:
        if self.start_at is None or self.end_at is None:
            return 0
        return max(0, round((self.end_at - self.start_at).total_seconds() / 60))


class Resource(BaseModel):
    """Vault resource that can anchor a weak-area plan item."""

    id: str
    title: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> List[str]:
        return normalize_tags(value)


class StudyPlanItem(BaseModel):
    id: str
    title: str
    description: str = ""
    action_label: str = ""
    action_href: str = ""
    status: PlanStatus = "pending"


class DailyPlan(BaseModel):
    """Merged plan for one learner and one calendar day."""

    user_id: str
    plan_date: date
    items: List[StudyPlanItem] = Field(default_factory=list)
    signals: List[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def pending_count(self) -> int:
        return sum(1 for item in self.items if item.status == "pending")


__all__ = [
    "DailyPlan",
    "Difficulty",
    "LearnerProfile",
    "LearningPace",
    "MatchExperiment",
    "MatchResult",
    "MatchVariant",
    "PLAN_STATUSES",
    "PlanStatus",
    "Pod",
    "Resource",
    "StudyPlanItem",
    "StudySession",
]
