import pytest

from utils.cache import TTLCache, report_key, report_tags, tenant_tag


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=60, clock=clock)


class TestTTLCache:
    def test_get_and_set(self, cache):
        assert cache.get("a") is None
        cache.set("a", {"value": 1})
        assert cache.get("a") == {"value": 1}

    def test_entries_expire(self, cache, clock):
        cache.set("a", 1, ttl=10)
        clock.advance(9)
        assert cache.get("a") == 1
        clock.advance(1)
        assert cache.get("a") is None
        assert cache.stats()["size"] == 0

    def test_default_ttl(self, cache, clock):
        cache.set("a", 1)
        clock.advance(61)
        assert cache.get("a") is None

    def test_remember_builds_once(self, cache):
        calls = []

        def factory():
            calls.append(1)
            return "report"

        assert cache.remember("k", factory) == "report"
        assert cache.remember("k", factory) == "report"
        assert len(calls) == 1

    def test_invalidate_by_tags(self, cache):
        cache.set("t1:a", 1, tags=["tenant:1", "reports"])
        cache.set("t1:b", 2, tags=["tenant:1"])
        cache.set("t2:a", 3, tags=["tenant:2", "reports"])

        assert cache.invalidate_by_tags(["tenant:1"]) == 2
        assert cache.get("t2:a") == 3
        assert cache.invalidate_by_tags(["reports"]) == 1
        assert cache.invalidate_by_tags(["missing"]) == 0

    def test_overwrite_moves_tags(self, cache):
        cache.set("a", 1, tags=["old"])
        cache.set("a", 2, tags=["new"])
        assert cache.invalidate_by_tags(["old"]) == 0
        assert cache.invalidate_by_tags(["new"]) == 1

    def test_invalidate_by_pattern(self, cache):
        cache.set("v1:reports:dashboard:1:period=month", 1)
        cache.set("v1:reports:dashboard:11:period=month", 2)
        cache.set("v1:reports:goals:1:", 3)
        assert cache.invalidate_by_pattern("*:reports:dashboard:1:*") == 1
        assert cache.stats()["size"] == 2

    def test_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.clear() == 1
        assert cache.stats()["size"] == 0

    def test_stats(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.get("a")
        cache.get("b")
        stats = cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["sets"] == 1
        assert stats["hit_rate"] == 66.67

        cache.reset_stats()
        assert cache.stats()["hit_rate"] == 0.0


class TestReportKeys:
    def test_key_is_stable_and_skips_none(self):
        first = report_key("expenses", "7", period="month", category=None, account_id=3)
        second = report_key("expenses", "7", account_id=3, period="month")
        assert first == second
        assert first.endswith(":reports:expenses:7:account_id=3&period=month")
        assert first.startswith("v")

    def test_tags(self):
        assert report_tags("dashboard", "7") == [tenant_tag("7"), "reports", "dashboard"]
        assert tenant_tag(7) == "tenant:7"
