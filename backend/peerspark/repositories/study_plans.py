"""Database-backed study plan status repository."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.models import StudyPlanModel
from ..models import PLAN_STATUSES


def split_storage_key(key: str) -> tuple[str, str]:
    """Split ``user:YYYY-MM-DD`` into its user id and date parts."""
    user_id, separator, plan_date = key.rpartition(":")
    if not separator:
        return key, ""
    return user_id, plan_date


class StudyPlanRepository:
    """Persistence helper for per-day plan statuses."""

    def get(self, session: Session, key: str) -> Optional[StudyPlanModel]:
        stmt = select(StudyPlanModel).where(StudyPlanModel.storage_key == key)
        return session.execute(stmt).scalar_one_or_none()

    def get_statuses(self, session: Session, key: str) -> Dict[str, str]:
        model = self.get(session, key)
        if model is None:
            return {}
        statuses = {
            item_id: status
            for item_id, status in (model.statuses or {}).items()
            if status in PLAN_STATUSES
        }
        # Rows written with only a completed list still mark those items done.
        for item_id in model.completed_ids or []:
            statuses.setdefault(item_id, "done")
        return statuses

    def upsert(
        self,
        session: Session,
        key: str,
        statuses: Mapping[str, str],
        signals: Iterable[str] = (),
    ) -> StudyPlanModel:
        model = self.get(session, key)
        if model is None:
            user_id, plan_date = split_storage_key(key)
            model = StudyPlanModel(storage_key=key, user_id=user_id, plan_date=plan_date)
            session.add(model)

        cleaned = {item_id: status for item_id, status in statuses.items() if status in PLAN_STATUSES}
        model.statuses = cleaned
        model.completed_ids = [item_id for item_id, status in cleaned.items() if status == "done"]
        incoming_signals = list(dict.fromkeys(signals))
        if incoming_signals:
            model.source_signals = incoming_signals
        elif model.source_signals is None:
            model.source_signals = []
        session.flush()
        return model

    def delete(self, session: Session, key: str) -> bool:
        result = session.execute(delete(StudyPlanModel).where(StudyPlanModel.storage_key == key))
        return bool(result.rowcount)


study_plans = StudyPlanRepository()

__all__ = ["StudyPlanRepository", "split_storage_key", "study_plans"]
