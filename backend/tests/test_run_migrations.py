from __future__ import annotations

import types

import pytest
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from scripts import run_migrations as runner


def _load_test_config(monkeypatch, url: str = "sqlite://") -> Config:
    monkeypatch.setenv("PEERSPARK_DATABASE_URL", url)
    config = Config()
    config.set_main_option("sqlalchemy.url", "%%(PEERSPARK_DATABASE_URL)s")
    config.set_main_option("script_location", str(runner.BACKEND_ROOT / "alembic"))
    return config


def test_resolve_database_url_prefers_env(monkeypatch) -> None:
    config = _load_test_config(monkeypatch)
    assert runner.resolve_database_url(config) == "sqlite://"
    assert config.get_main_option("sqlalchemy.url") == "sqlite://"


def test_resolve_database_url_keeps_concrete_url(monkeypatch) -> None:
    monkeypatch.setenv("PEERSPARK_DATABASE_URL", "sqlite:///ignored.sqlite")
    config = Config()
    config.set_main_option("sqlalchemy.url", "sqlite:///explicit.sqlite")
    assert runner.resolve_database_url(config) == "sqlite:///explicit.sqlite"


def test_resolve_database_url_requires_env(monkeypatch) -> None:
    monkeypatch.delenv("PEERSPARK_DATABASE_URL", raising=False)
    config = Config()
    config.set_main_option("sqlalchemy.url", "%%(PEERSPARK_DATABASE_URL)s")
    with pytest.raises(RuntimeError):
        runner.resolve_database_url(config)


def test_wait_for_database_succeeds_with_sqlite(tmp_path) -> None:
    db_path = tmp_path / "test.sqlite"
    url = f"sqlite:///{db_path}"
    runner.wait_for_database(url, timeout=2, poll_interval=0.1)


def test_wait_for_database_times_out(monkeypatch) -> None:
    class DummyEngine:
        def connect(self) -> types.SimpleNamespace:
            raise runner.OperationalError("SELECT 1", {}, Exception("boom"))

        def dispose(self) -> None:
            pass

    monkeypatch.setattr(runner, "create_engine", lambda *_, **__: DummyEngine())
    with pytest.raises(RuntimeError):
        runner.wait_for_database("postgresql://example", timeout=0, poll_interval=0)


def test_run_migrations_invokes_upgrade(monkeypatch) -> None:
    config = _load_test_config(monkeypatch)

    recorded: dict[str, object] = {}

    def fake_wait(url: str, *, timeout: int, poll_interval: float) -> None:
        recorded["wait"] = (url, timeout, poll_interval)

    def fake_upgrade(cfg, revision: str) -> None:
        recorded["revision"] = revision
        recorded["config_script_location"] = cfg.get_main_option("script_location")

    monkeypatch.setattr(runner, "wait_for_database", fake_wait)
    monkeypatch.setattr(runner.command, "upgrade", fake_upgrade)

    runner.run_migrations("head", timeout=5, poll_interval=0.1, config=config)

    assert recorded["revision"] == "head"
    assert recorded["wait"][0].startswith("sqlite://")
    assert recorded["config_script_location"] is not None


def test_upgrade_creates_study_plans_table(monkeypatch, tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'migrated.sqlite'}"
    config = _load_test_config(monkeypatch, url)

    runner.run_migrations("head", timeout=2, poll_interval=0.1, config=config)

    engine = create_engine(url, future=True)
    try:
        inspector = inspect(engine)
        assert "study_plans" in inspector.get_table_names()
        index_names = {index["name"] for index in inspector.get_indexes("study_plans")}
        assert "ix_study_plans_user_date" in index_names
    finally:
        engine.dispose()
