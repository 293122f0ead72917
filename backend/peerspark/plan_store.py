"""Plan status stores keyed by learner and calendar day."""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from .config import Settings, get_settings
from .db.session import session_scope
from .models import PLAN_STATUSES
from .repositories.study_plans import study_plans

logger = logging.getLogger(__name__)


def plan_storage_key(user_id: str, plan_date: date) -> str:
    normalized = user_id.strip()
    if not normalized:
        raise ValueError("User id cannot be empty when storing plan statuses.")
    return f"{normalized}:{plan_date.isoformat()}"


class PlanStatusStore(Protocol):
    """Durable ``item_id -> status`` maps for one learner-day each."""

    def get(self, key: str) -> Dict[str, str]:  # pragma: no cover - protocol definition
        ...

    def put(self, key: str, statuses: Mapping[str, str], signals: Iterable[str] = ()) -> None:  # pragma: no cover
        ...


class InMemoryPlanStatusStore:
    """Process-local store used by default and in tests."""

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[Dict[str, str], List[str]]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Dict[str, str]:
        with self._lock:
            entry = self._entries.get(key)
            return dict(entry[0]) if entry else {}

    def signals(self, key: str) -> List[str]:
        with self._lock:
            entry = self._entries.get(key)
            return list(entry[1]) if entry else []

    def put(self, key: str, statuses: Mapping[str, str], signals: Iterable[str] = ()) -> None:
        cleaned = {item_id: status for item_id, status in statuses.items() if status in PLAN_STATUSES}
        incoming = list(dict.fromkeys(signals))
        with self._lock:
            previous = self._entries.get(key)
            if not incoming and previous is not None:
                incoming = previous[1]
            self._entries[key] = (cleaned, incoming)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class DatabasePlanStatusStore:
    """SQLAlchemy-backed store writing to the ``study_plans`` table."""

    def get(self, key: str) -> Dict[str, str]:
        with session_scope(commit=False) as session:
            return study_plans.get_statuses(session, key)

    def put(self, key: str, statuses: Mapping[str, str], signals: Iterable[str] = ()) -> None:
        with session_scope() as session:
            study_plans.upsert(session, key, statuses, signals)


_plan_store: Optional[PlanStatusStore] = None


def build_plan_store(settings: Settings) -> PlanStatusStore:
    if settings.plan_store_mode == "database":
        return DatabasePlanStatusStore()
    return InMemoryPlanStatusStore()


def get_plan_store() -> PlanStatusStore:
    global _plan_store
    if _plan_store is None:
        settings = get_settings()
        _plan_store = build_plan_store(settings)
        logger.info("Plan status store initialised in %s mode", settings.plan_store_mode)
    return _plan_store


def reset_plan_store() -> None:
    global _plan_store
    _plan_store = None


__all__ = [
    "DatabasePlanStatusStore",
    "InMemoryPlanStatusStore",
    "PlanStatusStore",
    "build_plan_store",
    "get_plan_store",
    "plan_storage_key",
    "reset_plan_store",
]
