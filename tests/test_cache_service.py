import math

import pytest

from dashboard.services import cache_service as cache_module
from dashboard.services.cache_service import CacheService, CACHE_TTL


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheService(clock=clock)


def test_set_then_get_returns_value(cache):
    assert cache.set("test-key", "test-value", 300) is True
    assert cache.get("test-key") == "test-value"
    # repeated reads before expiry are stable
    assert cache.get("test-key") == "test-value"


def test_get_missing_key_is_none(cache):
    assert cache.get("missing-key") is None


def test_invalidate_removes_key_and_is_noop_when_absent(cache):
    cache.set("k", "v", 300)
    assert cache.invalidate("k") is True
    assert cache.get("k") is None
    assert cache.invalidate("never-set") is True


def test_clear_drops_every_key(cache):
    for i in range(5):
        cache.set(f"k{i}", i, 300)
    assert cache.clear() is True
    assert all(cache.get(f"k{i}") is None for i in range(5))


def test_entry_expires_after_ttl(cache, clock):
    cache.set("k", "v", 1)
    clock.advance(0.999)
    assert cache.get("k") == "v"
    clock.advance(0.002)
    assert cache.get("k") is None
    assert cache.get_stats()["total_entries"] == 0


def test_expiry_boundary_is_a_miss(cache, clock):
    cache.set("k", "v", 10)
    clock.advance(10)
    assert cache.get("k") is None


def test_set_overwrites_value_and_deadline(cache, clock):
    cache.set("a", 1, 300)
    cache.set("a", 2, 300)
    assert cache.get("a") == 2

    cache.set("b", "old", 5)
    clock.advance(4)
    cache.set("b", "new", 5)
    clock.advance(4)
    assert cache.get("b") == "new"


@pytest.mark.parametrize("ttl", [0, -5, None, "300", math.nan, True])
def test_invalid_ttl_is_already_expired(cache, ttl):
    assert cache.set("a", 1, ttl) is True
    assert cache.get("a") is None


@pytest.mark.parametrize("key", ["", None, 42])
def test_invalid_keys_are_ignored(cache, key):
    assert cache.set(key, "v", 300) is False
    assert cache.get(key) is None
    assert cache.invalidate(key) is True


def test_falsy_values_are_cached(cache):
    cache.set("zero", 0, 300)
    cache.set("empty", [], 300)
    assert cache.get("zero") == 0
    assert cache.get("empty") == []


def test_ttl_table_values_are_fixed():
    assert dict(CACHE_TTL) == {"KPIs": 300, "SprintData": 600, "StaticData": 3600}
    with pytest.raises(TypeError):
        CACHE_TTL["KPIs"] = 1


def test_invalidate_prefix_only_removes_matching_keys(cache):
    cache.set("kpi-delivery-OBD", 1, 300)
    cache.set("kpi-quality-OBD", 2, 300)
    cache.set("team-all", 3, 300)
    assert cache.invalidate_prefix("kpi-") == 2
    assert cache.get("kpi-delivery-OBD") is None
    assert cache.get("team-all") == 3
    assert cache.invalidate_prefix("") == 0


def test_realtime_event_invalidates_table_patterns(cache):
    cache.set("sprint-42", "s", 3600)
    cache.set("sprintData-OBD", "sd", 3600)
    cache.set("kpi-delivery-OBD", "k", 3600)
    cache.set("team-all", "t", 3600)
    cache.set("developer-7", "d", 3600)

    removed = cache.handle_realtime_event({"table": "sprints", "eventType": "INSERT", "new": {"id": 1}, "old": None})

    assert removed == 3
    assert cache.get("sprint-42") is None
    assert cache.get("sprintData-OBD") is None
    assert cache.get("kpi-delivery-OBD") is None
    assert cache.get("team-all") == "t"
    assert cache.get("developer-7") == "d"


def test_realtime_event_for_unknown_table_is_ignored(cache):
    cache.set("kpi-delivery-OBD", "k", 3600)
    assert cache.handle_realtime_event({"table": "enps_answers", "eventType": "UPDATE"}) == 0
    assert cache.handle_realtime_event({}) == 0
    assert cache.get("kpi-delivery-OBD") == "k"


def test_get_or_set_loads_once_while_live(cache, clock):
    calls = []

    def loader():
        calls.append(1)
        return {"score": len(calls)}

    assert cache.get_or_set("kpi-x", loader, 300) == {"score": 1}
    assert cache.get_or_set("kpi-x", loader, 300) == {"score": 1}
    assert len(calls) == 1

    clock.advance(301)
    assert cache.get_or_set("kpi-x", loader, 300) == {"score": 2}
    assert len(calls) == 2


def test_get_or_set_does_not_cache_errors_or_none(cache):
    def boom():
        raise RuntimeError("upstream down")

    with pytest.raises(RuntimeError):
        cache.get_or_set("kpi-x", boom, 300)
    assert cache.get("kpi-x") is None

    assert cache.get_or_set("kpi-y", lambda: None, 300) is None
    assert cache.get_stats()["total_entries"] == 0


def test_listeners_fire_on_invalidate_expiry_and_clear(cache, clock):
    seen = []
    cache.add_invalidation_listener("k", seen.append)

    cache.set("k", 1, 300)
    cache.invalidate("k")
    cache.set("k", 1, 1)
    clock.advance(2)
    cache.get("k")
    cache.clear()
    assert seen == ["k", "k", "k"]

    cache.remove_invalidation_listener("k", seen.append)
    cache.invalidate("k")
    assert len(seen) == 3


def test_failing_listener_does_not_break_invalidation(cache):
    seen = []

    def bad(key):
        raise ValueError("listener bug")

    cache.add_invalidation_listener("k", bad)
    cache.add_invalidation_listener("k", seen.append)
    cache.set("k", 1, 300)
    assert cache.invalidate("k") is True
    assert seen == ["k"]
    assert cache.get("k") is None


def test_stats_and_purge_expired(cache, clock):
    cache.set("live", 1, 300)
    cache.set("stale", 2, 1)
    cache.get("live")
    cache.get("nope")
    clock.advance(5)

    stats = cache.get_stats()
    assert stats["total_entries"] == 2
    assert stats["expired_entries"] == 1
    assert stats["active_entries"] == 1
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 0.5

    assert cache.purge_expired() == 1
    assert cache.get_stats()["total_entries"] == 1


def test_instances_are_isolated(clock):
    a = CacheService(clock=clock)
    b = CacheService(clock=clock)
    a.set("k", "a", 300)
    assert b.get("k") is None


def test_module_level_functions_use_default_instance():
    key = "module-level-test"
    cache_module.set(key, "v", 300)
    assert cache_module.get(key) == "v"
    assert cache_module.cache_service.get(key) == "v"
    cache_module.invalidate(key)
    assert cache_module.get(key) is None
    cache_module.set(key, "v", 300)
    cache_module.clear()
    assert cache_module.get(key) is None


def test_listeners_fire_on_prefix_and_realtime_invalidation(cache):
    seen = []
    cache.add_invalidation_listener("kpi-delivery-OBD", seen.append)
    cache.add_invalidation_listener("team-all", seen.append)

    cache.set("kpi-delivery-OBD", 1, 300)
    cache.set("team-all", 2, 300)
    cache.invalidate_prefix("kpi-")
    assert seen == ["kpi-delivery-OBD"]

    cache.set("kpi-delivery-OBD", 1, 300)
    cache.handle_realtime_event({"table": "sprints", "eventType": "UPDATE"})
    assert seen == ["kpi-delivery-OBD", "kpi-delivery-OBD"]
    assert cache.get("team-all") == 2


def test_get_or_set_skips_fill_when_key_invalidated_during_load(cache):
    def loader():
        # a write lands while the slow query is still running
        cache.invalidate("kpi-x")
        return "stale"

    assert cache.get_or_set("kpi-x", loader, 300) == "stale"
    assert cache.get("kpi-x") is None
    assert cache.get_or_set("kpi-x", lambda: "fresh", 300) == "fresh"
    assert cache.get("kpi-x") == "fresh"


def test_get_or_set_skips_fill_after_realtime_event_during_load(cache):
    def loader():
        cache.handle_realtime_event({"table": "sprints", "eventType": "INSERT"})
        return ["stale"]

    cache.get_or_set("sprintData-OBD", loader, 600)
    assert cache.get("sprintData-OBD") is None
