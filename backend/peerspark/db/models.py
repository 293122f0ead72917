"""ORM models backing study plan persistence."""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class StudyPlanModel(TimestampMixin, Base):
    """Per-user, per-day plan item statuses."""

    __tablename__ = "study_plans"
    __table_args__ = (
        UniqueConstraint("storage_key", name="uq_study_plans_storage_key"),
        Index("ix_study_plans_user_date", "user_id", "plan_date"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    storage_key: Mapped[str] = mapped_column(String(160), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    plan_date: Mapped[str] = mapped_column(String(10), default="", nullable=False)
    statuses: Mapped[dict[str, str]] = mapped_column(JSONType, default=dict, nullable=False)
    completed_ids: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    source_signals: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)


__all__ = ["StudyPlanModel"]
