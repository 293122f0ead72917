"""Service-level tests for recommendations and the merged daily plan."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List

import pytest

from peerspark.cache import match_cache
from peerspark.config import get_settings
from peerspark.dashboard import (
    auto_match_and_join,
    generate_daily_plan,
    get_plan_statuses,
    recommend_pods_for_user,
    resolve_timezone,
    set_plan_item_status,
)
from peerspark.plan_store import InMemoryPlanStatusStore
from peerspark.pod_matching import MATCH_VARIANTS, assign_match_variant
from peerspark.telemetry import TelemetryEvent, clear_listeners, register_listener

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 19)


@pytest.fixture(autouse=True)
def _isolated_services(monkeypatch) -> Iterator[List[TelemetryEvent]]:
    for name in (
        "PEERSPARK_DEFAULT_MATCH_LIMIT",
        "PEERSPARK_REMINDER_WINDOW_MINUTES",
        "PEERSPARK_DEFAULT_TIMEZONE",
        "PEERSPARK_MATCH_CACHE_TTL_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    match_cache.clear()
    events: List[TelemetryEvent] = []
    register_listener(events.append)
    try:
        yield events
    finally:
        clear_listeners()
        match_cache.clear()
        get_settings.cache_clear()


def _events() -> List[Dict[str, Any]]:
    return [
        {"$id": "s1", "title": "Graph sprint", "podId": "pod1", "startTime": "2026-10-19T14:00:00Z"},
        {"$id": "s0", "title": "Warm-up", "podId": "pod1", "startTime": "2026-10-19T08:00:00Z", "notes": "Reviewed BFS"},
        {"$id": "old", "title": "Yesterday", "startTime": "2026-10-18T14:00:00Z"},
    ]


def _pods() -> List[Dict[str, Any]]:
    return [{"$id": "pod1", "name": "Algo Club", "tags": ["graphs"], "memberCount": 12}]


def _resources() -> List[Dict[str, Any]]:
    return [
        {"$id": "r1", "title": "Array drills", "tags": ["arrays"]},
        {"$id": "r2", "title": "Graph traversal notes", "tags": ["graphs"]},
    ]


def _plan(store: InMemoryPlanStatusStore, **overrides: Any):
    params: Dict[str, Any] = {
        "events": _events(),
        "pods": _pods(),
        "profile": {"currentFocusAreas": ["Graphs"]},
        "resources": _resources(),
        "timezone_name": "UTC",
        "now": NOW,
    }
    params.update(overrides)
    return generate_daily_plan("u1", store, **params)


def test_daily_plan_combines_all_sources(_isolated_services) -> None:
    store = InMemoryPlanStatusStore()
    store.put("u1:2026-10-19", {"vault-review": "done"})

    plan = _plan(store)

    assert plan.plan_date == TODAY
    assert [item.id for item in plan.items] == [
        "join-s1",
        "reminder-s1",
        "vault-review",
        "pod-check-in",
        "weak-r2",
        "log-progress",
    ]
    statuses = {item.id: item.status for item in plan.items}
    assert statuses["vault-review"] == "done"
    assert statuses["join-s1"] == "pending"
    assert plan.items[0].description == "Algo Club • 14:00"
    assert plan.signals == ["sessions", "pods", "attendance", "notes", "profile", "resources", "reminders"]
    assert plan.pending_count == 5

    built = [event for event in _isolated_services if event.name == "study_plan_built"]
    assert len(built) == 1
    assert built[0].payload["plan_date"] == "2026-10-19"
    assert built[0].payload["session_count"] == 2


def test_server_statuses_take_precedence_over_store() -> None:
    store = InMemoryPlanStatusStore()
    store.put("u1:2026-10-19", {"pod-check-in": "done"})

    plan = _plan(store, server_statuses={"pod-check-in": "pending", "weak-r2": "done"})

    statuses = {item.id: item.status for item in plan.items}
    assert statuses["pod-check-in"] == "pending"
    assert statuses["weak-r2"] == "done"


def test_plan_day_follows_learner_timezone() -> None:
    late_evening = {"$id": "late", "title": "Night owls", "startTime": "2026-10-20T01:30:00Z"}
    now = datetime(2026, 10, 19, 23, 0, tzinfo=timezone.utc)

    utc_plan = _plan(InMemoryPlanStatusStore(), events=[late_evening], now=now)
    ny_plan = _plan(InMemoryPlanStatusStore(), events=[late_evening], now=now, timezone_name="America/New_York")

    assert utc_plan.plan_date == TODAY
    assert utc_plan.items[0].id == "schedule"
    assert ny_plan.plan_date == TODAY
    assert ny_plan.items[0].id == "join-late"
    assert ny_plan.items[0].description == "Pod • 21:30"


def test_reminder_window_is_configurable(monkeypatch) -> None:
    monkeypatch.setenv("PEERSPARK_REMINDER_WINDOW_MINUTES", "60")
    get_settings.cache_clear()

    plan = _plan(InMemoryPlanStatusStore())

    assert "reminder-s1" not in [item.id for item in plan.items]
    assert "reminders" not in plan.signals


def test_plan_without_profile_or_resources_skips_weak_item() -> None:
    plan = _plan(InMemoryPlanStatusStore(), profile=None, resources=[])
    assert not any(item.id.startswith("weak-") for item in plan.items)
    assert "profile" not in plan.signals


def test_blank_user_rejected() -> None:
    with pytest.raises(ValueError):
        generate_daily_plan("   ", InMemoryPlanStatusStore(), now=NOW)


def test_item_toggle_persists_and_feeds_next_plan(_isolated_services) -> None:
    store = InMemoryPlanStatusStore()

    statuses = set_plan_item_status("u1", TODAY, "pod-check-in", "done", store, signals=["sessions", "pods"])
    assert statuses == {"pod-check-in": "done"}
    assert get_plan_statuses("u1", TODAY, store) == {"pod-check-in": "done"}
    assert store.signals("u1:2026-10-19") == ["sessions", "pods"]

    set_plan_item_status("u1", TODAY, "pod-check-in", "pending", store)
    plan = _plan(store)
    assert {item.id: item.status for item in plan.items}["pod-check-in"] == "pending"

    toggles = [event for event in _isolated_services if event.name == "study_plan_item_status_changed"]
    assert [event.payload["previous_status"] for event in toggles] == [None, "done"]
    assert toggles[-1].payload["status"] == "pending"


def test_item_toggle_rejects_invalid_input() -> None:
    store = InMemoryPlanStatusStore()
    with pytest.raises(ValueError):
        set_plan_item_status("u1", TODAY, "schedule", "archived", store)
    with pytest.raises(ValueError):
        set_plan_item_status("u1", TODAY, "  ", "done", store)
    assert get_plan_statuses("u1", TODAY, store) == {}


def _ranked_events(events: List[TelemetryEvent]) -> List[TelemetryEvent]:
    return [event for event in events if event.name == "pod_recommendations_ranked"]


def test_identical_request_is_served_from_cache(_isolated_services) -> None:
    first = recommend_pods_for_user("u1", {"interests": ["Graphs", "DSA"]}, _pods())
    second = recommend_pods_for_user("u1", {"interests": ["dsa", "graphs"]}, _pods())
    refreshed = recommend_pods_for_user("u1", {"interests": ["dsa", "graphs"]}, _pods(), use_cache=False)

    assert [result.pod.id for result in first] == ["pod1"]
    assert second == first
    assert refreshed == first
    ranked = _ranked_events(_isolated_services)
    assert len(ranked) == 2
    assert ranked[0].payload["limit"] == 5


def test_changed_profile_is_reranked(_isolated_services) -> None:
    pods = [
        {"$id": "music", "tags": ["music"], "memberCount": 3},
        {"$id": "dsa", "tags": ["dsa"], "memberCount": 3},
    ]

    first = recommend_pods_for_user("u1", {"interests": ["music"]}, pods)
    second = recommend_pods_for_user("u1", {"interests": ["dsa"]}, pods)

    assert first[0].pod.id == "music"
    assert second[0].pod.id == "dsa"
    assert len(_ranked_events(_isolated_services)) == 2


def test_changed_catalog_is_reranked(_isolated_services) -> None:
    profile = {"interests": ["graphs"]}
    recommend_pods_for_user("u1", profile, _pods())

    emptied = recommend_pods_for_user("u1", profile, [])
    swapped = recommend_pods_for_user("u1", profile, [{"$id": "pod9", "name": "Graph Guild", "tags": ["graphs"]}])

    assert emptied == []
    assert [result.pod.id for result in swapped] == ["pod9"]
    assert len(_ranked_events(_isolated_services)) == 3


def _catalog() -> List[Dict[str, Any]]:
    return [
        {"$id": "a", "tags": ["graphs"], "memberCount": 20},
        {"$id": "b", "tags": ["graphs"], "memberCount": 10},
        {"$id": "c", "tags": ["graphs"], "memberCount": 5},
        {"$id": "d", "tags": ["music"], "memberCount": 1},
    ]


def test_auto_join_arm_joins_unjoined_targets(_isolated_services) -> None:
    experiment = auto_match_and_join(
        "u1",
        {"interests": ["graphs"]},
        _catalog(),
        joined_pod_ids=["a"],
        join_limit=2,
        variant="auto-join",
    )

    assert experiment.variant == "auto-join"
    assert experiment.recommended == ["a", "b", "c", "d"]
    assert experiment.join_targets == ["b", "c"]
    assert experiment.joined == ["b", "c"]
    logged = [event for event in _isolated_services if event.name == "pod_match_experiment"]
    assert len(logged) == 1
    assert logged[0].payload == {
        "user_id": "u1",
        "variant": "auto-join",
        "recommended": ["a", "b", "c", "d"],
        "joined": ["b", "c"],
    }


def test_prompted_arm_only_suggests_targets(_isolated_services) -> None:
    experiment = auto_match_and_join(
        "u1",
        {"interests": ["graphs"]},
        _catalog(),
        joined_pod_ids=["a"],
        match_limit=2,
        variant="prompted",
    )

    assert experiment.recommended == ["a", "b"]
    assert experiment.join_targets == ["b"]
    assert experiment.joined == []
    logged = [event for event in _isolated_services if event.name == "pod_match_experiment"]
    assert logged[0].payload["variant"] == "prompted"
    assert logged[0].payload["joined"] == []


def test_assigned_variant_is_sticky_per_user() -> None:
    assigned = {user_id: assign_match_variant(user_id) for user_id in (f"learner-{index}" for index in range(64))}

    assert set(assigned.values()) == set(MATCH_VARIANTS)
    for user_id, variant in assigned.items():
        assert assign_match_variant(user_id) == variant
        assert auto_match_and_join(user_id, {}, _catalog()).variant == variant


def test_auto_match_requires_user() -> None:
    with pytest.raises(ValueError):
        auto_match_and_join("  ", {}, _catalog())


def test_default_match_limit_comes_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("PEERSPARK_DEFAULT_MATCH_LIMIT", "2")
    get_settings.cache_clear()
    pods = [{"$id": f"p{index}", "memberCount": index} for index in range(4)]

    ranked = recommend_pods_for_user("u1", {}, pods, use_cache=False)

    assert [result.pod.id for result in ranked] == ["p3", "p2"]


def test_resolve_timezone_falls_back(monkeypatch) -> None:
    assert resolve_timezone("Not/AZone") == timezone.utc
    assert resolve_timezone(None) == timezone.utc

    monkeypatch.setenv("PEERSPARK_DEFAULT_TIMEZONE", "Europe/Berlin")
    get_settings.cache_clear()
    assert str(resolve_timezone("")) == "Europe/Berlin"
