"""Print a JSON snapshot of plan store pool metrics and row counts."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from sqlalchemy import func, select

from peerspark.db.models import StudyPlanModel
from peerspark.db.monitoring import get_pool_snapshot
from peerspark.db.session import get_engine, session_scope

LOGGER = logging.getLogger("peerspark.db_metrics")


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        with session_scope(commit=False) as session:
            plan_rows = session.execute(select(func.count()).select_from(StudyPlanModel)).scalar_one()
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "pool": get_pool_snapshot(get_engine()),
            "study_plan_rows": plan_rows,
        }
        print(json.dumps(payload))
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
