import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .config import get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .logging_config import configure_logging
from .plan_routes import router as plan_router
from .pod_routes import router as pod_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="PeerSpark Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(pod_router)
app.include_router(plan_router)

settings_snapshot = get_settings()
logger.info("Backend starting with plan store mode: %s", settings_snapshot.plan_store_mode)
logger.info("Database configured: %s", bool(settings_snapshot.database_url))


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/healthz/database")
def database_health() -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {
        "status": "ok",
        "pool": get_pool_snapshot(engine),
        "plan_store_mode": get_settings().plan_store_mode,
    }
