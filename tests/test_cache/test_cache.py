"""Tests for the ResponseCache module."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from pwnedcache.cache import ResponseCache, make_cache_key
from pwnedcache.models import CacheConfig, CacheEntry


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(tmp_path: Path, clock: FakeClock) -> ResponseCache:
    """An enabled cache with breach-date invalidation (no TTL)."""
    return ResponseCache(CacheConfig(directory=str(tmp_path)), clock=clock)


@pytest.fixture()
def ttl_cache(tmp_path: Path, clock: FakeClock) -> ResponseCache:
    return ResponseCache(CacheConfig(directory=str(tmp_path), ttl_seconds=60), clock=clock)


@pytest.fixture()
def disabled_cache(tmp_path: Path) -> ResponseCache:
    return ResponseCache(CacheConfig(enabled=False, directory=str(tmp_path)))


BREACHES = [{"Name": "Adobe"}, {"Name": "LinkedIn"}]


# ------------------------------------------------------------------ #
# Key derivation
# ------------------------------------------------------------------ #


class TestCacheKey:
    def test_parameter_order_does_not_matter(self) -> None:
        forward = {"truncateResponse": True, "IncludeUnverified": False}
        reverse = {"IncludeUnverified": False, "truncateResponse": True}
        endpoint = "breachedaccount/test@example.com"
        assert make_cache_key(endpoint, forward) == make_cache_key(endpoint, reverse)

    def test_unset_parameter_equals_omitted(self) -> None:
        endpoint = "breachedaccount/test@example.com"
        base = {"truncateResponse": True, "IncludeUnverified": False}
        with_none = {"truncateResponse": True, "IncludeUnverified": False, "domain": None}
        assert make_cache_key(endpoint, base) == make_cache_key(endpoint, with_none)

    def test_no_params_equals_empty_and_all_none(self) -> None:
        assert make_cache_key("latestbreach") == make_cache_key("latestbreach", {})
        assert make_cache_key("latestbreach") == make_cache_key("latestbreach", {"domain": None})

    def test_is_sha256_hex(self) -> None:
        key = make_cache_key("dataclasses")
        assert len(key) == 64
        int(key, 16)

    def test_stable_across_calls(self) -> None:
        params = {"domain": "adobe.com", "isSpamList": False}
        assert make_cache_key("breaches", params) == make_cache_key("breaches", dict(params))

    @pytest.mark.parametrize(
        "endpoint, params",
        [
            ("breachedaccount/other@example.com", {"truncateResponse": True, "IncludeUnverified": False}),
            ("breachedaccount/test@example.com", {"truncateResponse": False, "IncludeUnverified": False}),
            ("breachedaccount/test@example.com", {"truncateResponse": True, "IncludeUnverified": True}),
            ("breachedaccount/test@example.com", {"truncateResponse": True, "IncludeUnverified": False, "domain": "adobe.com"}),
            ("breachedaccount/test@example.com", None),
        ],
    )
    def test_any_difference_changes_key(self, endpoint: str, params: dict | None) -> None:
        reference = make_cache_key(
            "breachedaccount/test@example.com",
            {"truncateResponse": True, "IncludeUnverified": False},
        )
        assert make_cache_key(endpoint, params) != reference

    def test_distinct_corpus_has_no_collisions(self) -> None:
        keys = {
            make_cache_key(endpoint, {"domain": domain})
            for endpoint in ("breaches", "breacheddomain/x", "pasteaccount/y")
            for domain in ("a.com", "b.com", "c.com", None)
        }
        assert len(keys) == 12

    def test_endpoint_cannot_absorb_params(self) -> None:
        assert make_cache_key("breachesdomain=x") != make_cache_key("breaches", {"domain": "x"})
        assert make_cache_key("breaches", {"a": "1b=2"}) != make_cache_key(
            "breaches", {"a": "1", "b": "2"}
        )

    def test_booleans_use_wire_spelling(self) -> None:
        assert make_cache_key("breaches", {"isSpamList": True}) == make_cache_key(
            "breaches", {"isSpamList": "true"}
        )


# ------------------------------------------------------------------ #
# Core get/set behaviour
# ------------------------------------------------------------------ #


class TestGetSet:
    def test_set_and_get(self, cache: ResponseCache) -> None:
        asyncio.run(cache.set("breachedaccount/a", {"truncateResponse": True}, BREACHES))
        result = asyncio.run(cache.get("breachedaccount/a", {"truncateResponse": True}))
        assert result == BREACHES

    def test_round_trips_mappings(self, cache: ResponseCache) -> None:
        payload = {"alias1": ["Adobe"], "alias2": ["Adobe", "LinkedIn"]}
        asyncio.run(cache.set("breacheddomain/example.com", None, payload))
        assert asyncio.run(cache.get("breacheddomain/example.com")) == payload

    def test_cache_miss_returns_none(self, cache: ResponseCache) -> None:
        assert asyncio.run(cache.get("breach/Unknown")) is None

    def test_none_payload_not_stored(self, cache: ResponseCache) -> None:
        asyncio.run(cache.set("breach/Unknown", None, None))
        assert not cache.entry_path(make_cache_key("breach/Unknown")).exists()

    def test_new_write_overwrites(self, cache: ResponseCache) -> None:
        asyncio.run(cache.set("dataclasses", None, ["Email addresses"]))
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        assert asyncio.run(cache.get("dataclasses")) == ["Passwords"]

    def test_sharded_layout(self, cache: ResponseCache, tmp_path: Path) -> None:
        asyncio.run(cache.set("latestbreach", None, {"Name": "Adobe"}))
        key = make_cache_key("latestbreach")
        path = tmp_path / key[:2] / f"{key}.json"
        assert path.is_file()
        document = json.loads(path.read_text())
        assert document["data"] == {"Name": "Adobe"}
        assert "created_at" in document
        assert document["freshness_tag"] is None

    def test_entry_tagged_with_current_signal(self, cache: ResponseCache) -> None:
        cache.set_latest_breach_date("2024-01-01T00:00:00Z")
        asyncio.run(cache.set("latestbreach", None, {"Name": "Adobe"}))
        path = cache.entry_path(make_cache_key("latestbreach"))
        entry = CacheEntry.model_validate_json(path.read_text())
        assert entry.freshness_tag == "2024-01-01T00:00:00Z"

    def test_no_temp_files_left_behind(self, cache: ResponseCache, tmp_path: Path) -> None:
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        leftovers = [p for p in tmp_path.rglob("*.tmp")]
        assert leftovers == []


# ------------------------------------------------------------------ #
# Disabled cache
# ------------------------------------------------------------------ #


class TestDisabled:
    def test_set_then_get_misses(self, disabled_cache: ResponseCache) -> None:
        asyncio.run(disabled_cache.set("dataclasses", None, ["Passwords"]))
        assert asyncio.run(disabled_cache.get("dataclasses")) is None

    def test_nothing_written(self, disabled_cache: ResponseCache, tmp_path: Path) -> None:
        asyncio.run(disabled_cache.set("dataclasses", None, ["Passwords"]))
        assert list(tmp_path.iterdir()) == []

    def test_get_ignores_existing_entries(self, tmp_path: Path) -> None:
        enabled = ResponseCache(CacheConfig(directory=str(tmp_path)))
        asyncio.run(enabled.set("dataclasses", None, ["Passwords"]))
        disabled = ResponseCache(CacheConfig(enabled=False, directory=str(tmp_path)))
        assert asyncio.run(disabled.get("dataclasses")) is None


# ------------------------------------------------------------------ #
# Freshness
# ------------------------------------------------------------------ #


class TestTTL:
    def test_fresh_within_ttl(self, ttl_cache: ResponseCache, clock: FakeClock) -> None:
        asyncio.run(ttl_cache.set("dataclasses", None, ["Passwords"]))
        clock.advance(59)
        assert asyncio.run(ttl_cache.get("dataclasses")) == ["Passwords"]

    def test_expires_at_ttl(self, ttl_cache: ResponseCache, clock: FakeClock) -> None:
        asyncio.run(ttl_cache.set("dataclasses", None, ["Passwords"]))
        clock.advance(60)
        assert asyncio.run(ttl_cache.get("dataclasses")) is None

    def test_ttl_overrides_breach_date(self, ttl_cache: ResponseCache, clock: FakeClock) -> None:
        ttl_cache.set_latest_breach_date("2023-01-01T00:00:00Z")
        asyncio.run(ttl_cache.set("dataclasses", None, ["Passwords"]))
        ttl_cache.set_latest_breach_date("2025-06-01T00:00:00Z")

        clock.advance(30)
        assert asyncio.run(ttl_cache.get("dataclasses")) == ["Passwords"]
        clock.advance(30)
        assert asyncio.run(ttl_cache.get("dataclasses")) is None


class TestBreachDateInvalidation:
    def test_newer_breach_makes_entry_stale_immediately(self, cache: ResponseCache) -> None:
        cache.set_latest_breach_date("2024-01-01T00:00:00Z")
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        assert asyncio.run(cache.get("dataclasses")) == ["Passwords"]

        cache.set_latest_breach_date("2024-02-01T00:00:00Z")
        assert asyncio.run(cache.get("dataclasses")) is None

    def test_same_breach_keeps_entry_fresh(self, cache: ResponseCache) -> None:
        cache.set_latest_breach_date("2024-01-01T00:00:00Z")
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        cache.set_latest_breach_date("2024-01-01T00:00:00Z")
        assert asyncio.run(cache.get("dataclasses")) == ["Passwords"]

    def test_untagged_entry_never_expires(self, cache: ResponseCache, clock: FakeClock) -> None:
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        cache.set_latest_breach_date("2099-01-01T00:00:00Z")
        clock.advance(10 * 365 * 24 * 3600)
        assert asyncio.run(cache.get("dataclasses")) == ["Passwords"]

    def test_unknown_signal_keeps_tagged_entry(self, cache: ResponseCache) -> None:
        cache.set_latest_breach_date("2024-01-01T00:00:00Z")
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        cache.set_latest_breach_date(None)
        assert asyncio.run(cache.get("dataclasses")) == ["Passwords"]

    def test_signal_does_not_rewrite_entries(self, cache: ResponseCache) -> None:
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        path = cache.entry_path(make_cache_key("dataclasses"))
        before = path.read_text()
        cache.set_latest_breach_date("2024-01-01T00:00:00Z")
        assert path.read_text() == before


# ------------------------------------------------------------------ #
# Fault tolerance
# ------------------------------------------------------------------ #


class TestFaults:
    @pytest.mark.parametrize(
        "content",
        ["", "{not json", '{"data": [1, 2', '{"data": 1}', "[]", "\x00\x01garbage"],
    )
    def test_corrupt_entry_is_a_miss(self, cache: ResponseCache, content: str) -> None:
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        cache.entry_path(make_cache_key("dataclasses")).write_text(content)
        assert asyncio.run(cache.get("dataclasses")) is None

    def test_unreadable_entry_is_a_miss(self, cache: ResponseCache) -> None:
        path = cache.entry_path(make_cache_key("dataclasses"))
        path.mkdir(parents=True)  # a directory where the file should be
        assert asyncio.run(cache.get("dataclasses")) is None

    def test_write_failure_is_swallowed(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        cache = ResponseCache(CacheConfig(directory=str(blocker)))
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        assert asyncio.run(cache.get("dataclasses")) is None

    def test_unserialisable_payload_is_swallowed(self, cache: ResponseCache) -> None:
        asyncio.run(cache.set("dataclasses", None, {"bad": object()}))
        assert asyncio.run(cache.get("dataclasses")) is None


# ------------------------------------------------------------------ #
# Maintenance
# ------------------------------------------------------------------ #


class TestMaintenance:
    def test_invalidate_removes_one_entry(self, cache: ResponseCache) -> None:
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        asyncio.run(cache.set("latestbreach", None, {"Name": "Adobe"}))
        assert asyncio.run(cache.invalidate("dataclasses")) is True
        assert asyncio.run(cache.get("dataclasses")) is None
        assert asyncio.run(cache.get("latestbreach")) == {"Name": "Adobe"}

    def test_invalidate_missing_entry(self, cache: ResponseCache) -> None:
        assert asyncio.run(cache.invalidate("dataclasses")) is False

    def test_clear_cache_removes_entries(self, cache: ResponseCache) -> None:
        for endpoint in ("dataclasses", "latestbreach", "breaches"):
            asyncio.run(cache.set(endpoint, None, ["x"]))
        assert asyncio.run(cache.clear_cache()) == 3
        assert asyncio.run(cache.get("dataclasses")) is None
        assert cache.stats()["size"] == 0

    def test_clear_cache_leaves_foreign_files(self, cache: ResponseCache, tmp_path: Path) -> None:
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        foreign = tmp_path / "notes.txt"
        foreign.write_text("keep me")
        odd = tmp_path / "ab" / "not-a-key.json"
        odd.parent.mkdir(exist_ok=True)
        odd.write_text("{}")

        assert asyncio.run(cache.clear_cache()) == 1
        assert foreign.read_text() == "keep me"
        assert odd.exists()

    def test_clear_cache_on_missing_directory(self, tmp_path: Path) -> None:
        cache = ResponseCache(CacheConfig(directory=str(tmp_path / "never-created")))
        assert asyncio.run(cache.clear_cache()) == 0

    def test_stats(self, ttl_cache: ResponseCache, tmp_path: Path) -> None:
        asyncio.run(ttl_cache.set("dataclasses", None, ["Passwords"]))
        ttl_cache.set_latest_breach_date("2024-01-01T00:00:00Z")
        stats = ttl_cache.stats()
        assert stats == {
            "enabled": True,
            "directory": str(tmp_path),
            "ttl_seconds": 60,
            "latest_breach_date": "2024-01-01T00:00:00Z",
            "size": 1,
        }


class TestDirectory:
    def test_default_directory_uses_platform_resolver(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("platform.system", lambda: "Linux")
        monkeypatch.setenv("XDG_CACHE_HOME", "/x")
        cache = ResponseCache(CacheConfig())
        assert cache.directory == Path("/x/pwnedcache")

    def test_directory_not_created_until_write(self, tmp_path: Path) -> None:
        target = tmp_path / "lazy"
        cache = ResponseCache(CacheConfig(directory=str(target)))
        assert not target.exists()
        asyncio.run(cache.set("dataclasses", None, ["Passwords"]))
        assert target.is_dir()
