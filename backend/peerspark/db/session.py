"""Engine and session helpers for the plan store database."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings, get_settings
from .monitoring import instrument_engine

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def engine_options(database_url: str, settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for ``create_engine``; sqlite skips pool sizing."""
    options: Dict[str, Any] = {"echo": settings.database_echo, "future": True, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        return options
    options.update(pool_size=settings.database_pool_size, max_overflow=settings.database_max_overflow)
    return options


def get_engine() -> Engine:
    """Lazily create the shared engine, instrument it, and bind the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        return _engine

    settings = get_settings()
    if not settings.database_url:
        raise RuntimeError("PEERSPARK_DATABASE_URL must be configured before using the database.")
    engine = create_engine(settings.database_url, **engine_options(settings.database_url, settings))
    instrument_engine(engine)
    _session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    _engine = engine
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


@contextmanager
def session_scope(*, commit: bool = True) -> Generator[Session, None, None]:
    """Yield a session; commit on success when asked, always roll back on error."""
    session = get_session_factory()()
    try:
        yield session
        if commit:
            session.commit()
    except Exception:  # noqa: BLE001
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "dispose_engine",
    "engine_options",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
