"""Tests for cache version counters."""

from unittest.mock import MagicMock

import fakeredis
import pytest
import redis

from wdtp.services.cache_versions import (
    INITIAL_VERSION,
    WAGE_REPORT_KEYS,
    CacheVersionBus,
    RedisVersionStore,
    VersionKey,
)
from wdtp.services.errors import CacheBumpError


def test_redis_store_bump_seeds_then_increments_with_prefix():
    client = MagicMock()
    pipe = client.pipeline.return_value
    pipe.execute.return_value = [None, 4]

    assert RedisVersionStore(client, prefix="wdtp:").bump(VersionKey.WAGES) == 4
    pipe.set.assert_called_once_with("wdtp:wages_version", INITIAL_VERSION, nx=True)
    pipe.incr.assert_called_once_with("wdtp:wages_version")


def test_first_bump_of_missing_key_changes_versioned_key():
    bus = CacheVersionBus(RedisVersionStore(fakeredis.FakeRedis(), "wdtp:"))
    before = bus.versioned_key("wage_stats:global:all", VersionKey.WAGES)

    bumped = bus.bump_all()

    assert bumped[VersionKey.WAGES] == INITIAL_VERSION + 1
    assert bus.versioned_key("wage_stats:global:all", VersionKey.WAGES) != before


def test_bump_after_initialize_continues_from_stored_version():
    client = fakeredis.FakeRedis()
    store = RedisVersionStore(client, "wdtp:")
    client.set("wdtp:wages_version", 7)

    store.ensure(VersionKey.WAGES)

    assert store.bump(VersionKey.WAGES) == 8
    assert store.get(VersionKey.WAGES) == 8


def test_redis_store_get_defaults_to_initial_version():
    client = MagicMock()
    client.get.return_value = None
    assert RedisVersionStore(client).get(VersionKey.LOCATIONS) == INITIAL_VERSION

    client.get.return_value = b"12"
    assert RedisVersionStore(client).get(VersionKey.LOCATIONS) == 12


def test_redis_store_ensure_does_not_overwrite():
    client = MagicMock()
    RedisVersionStore(client, prefix="wdtp:").ensure(VersionKey.ORGANIZATIONS)
    client.set.assert_called_once_with("wdtp:organizations_version", INITIAL_VERSION, nx=True)


def test_redis_store_wraps_redis_errors():
    client = MagicMock()
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError("refused")

    with pytest.raises(CacheBumpError):
        RedisVersionStore(client).bump(VersionKey.WAGES)


def test_bump_all_bumps_the_three_wage_report_keys(version_bus, version_store):
    bumped = version_bus.bump_all()

    assert set(bumped) == {VersionKey.WAGES, VersionKey.ORGANIZATIONS, VersionKey.LOCATIONS}
    assert VersionKey.INDUSTRIES not in version_store.versions


def test_versions_never_decrease(version_bus):
    seen = []
    for _ in range(5):
        version_bus.bump_all()
        seen.append(version_bus.current(VersionKey.WAGES))
    assert seen == sorted(seen)
    assert seen[-1] > INITIAL_VERSION


def test_bump_all_swallows_failures(version_store):
    version_store.fail = True
    bus = CacheVersionBus(version_store)

    assert bus.bump_all() == {}


def test_bump_all_continues_after_a_failing_key():
    store = MagicMock()
    store.bump.side_effect = [CacheBumpError("boom"), 3, 5]

    bumped = CacheVersionBus(store).bump_all(WAGE_REPORT_KEYS)

    assert bumped == {WAGE_REPORT_KEYS[1]: 3, WAGE_REPORT_KEYS[2]: 5}
    assert store.bump.call_count == 3


def test_initialize_creates_every_key(version_bus, version_store):
    version_store.versions[VersionKey.WAGES] = 9
    version_bus.initialize()

    assert set(version_store.versions) == set(VersionKey)
    assert version_store.versions[VersionKey.WAGES] == 9


def test_versioned_key(version_bus):
    version_bus.bump_all()
    assert version_bus.versioned_key("wage_stats:global:all", VersionKey.WAGES) == "wage_stats:global:all:v2"


def test_versioned_key_is_none_when_version_unreadable():
    store = MagicMock()
    store.get.side_effect = CacheBumpError("down")

    assert CacheVersionBus(store).versioned_key("base", VersionKey.WAGES) is None
