"""Cache version bus: invalidation by versioned cache keys.

Cached reads embed the current version of the entity types they depend on in
their cache key. Mutations bump the versions, so stale entries are simply never
read again and expire on their own TTL. Versions are only key suffixes, never
data: an extra bump costs a cache miss, a missed bump serves stale data, so
bumps are generous and failures are logged rather than raised.
"""

import logging
from enum import Enum
from typing import Iterable, Protocol

import redis

from wdtp.services.errors import CacheBumpError

logger = logging.getLogger(__name__)

INITIAL_VERSION = 1


class VersionKey(str, Enum):
    WAGES = "wages_version"
    ORGANIZATIONS = "organizations_version"
    LOCATIONS = "locations_version"
    INDUSTRIES = "industries_version"


# Every wage report create/update/delete/restore invalidates all three
WAGE_REPORT_KEYS = (VersionKey.WAGES, VersionKey.ORGANIZATIONS, VersionKey.LOCATIONS)


class VersionStore(Protocol):
    def bump(self, key: VersionKey) -> int:
        ...

    def get(self, key: VersionKey) -> int:
        ...

    def ensure(self, key: VersionKey) -> None:
        ...


class RedisVersionStore:
    """VersionStore backed by Redis INCR (atomic, shared by every worker)."""

    def __init__(self, client: redis.Redis, prefix: str = ""):
        self.client = client
        self.prefix = prefix

    def _key(self, key: VersionKey) -> str:
        return f"{self.prefix}{key.value}"

    def bump(self, key: VersionKey) -> int:
        # A missing key reads as INITIAL_VERSION; seed it first so INCR moves past it
        name = self._key(key)
        try:
            pipe = self.client.pipeline()
            pipe.set(name, INITIAL_VERSION, nx=True)
            pipe.incr(name)
            _, version = pipe.execute()
            return int(version)
        except redis.RedisError as e:
            raise CacheBumpError(f"Failed to bump {key.value}: {e}") from e

    def get(self, key: VersionKey) -> int:
        try:
            value = self.client.get(self._key(key))
        except redis.RedisError as e:
            raise CacheBumpError(f"Failed to read {key.value}: {e}") from e
        return int(value) if value is not None else INITIAL_VERSION

    def ensure(self, key: VersionKey) -> None:
        try:
            self.client.set(self._key(key), INITIAL_VERSION, nx=True)
        except redis.RedisError as e:
            raise CacheBumpError(f"Failed to initialize {key.value}: {e}") from e


class CacheVersionBus:
    def __init__(self, store: VersionStore):
        self.store = store

    def bump_all(self, keys: Iterable[VersionKey] = WAGE_REPORT_KEYS) -> dict[VersionKey, int]:
        """Bump every key; failures are logged per key and never raised.

        Returns the new version of each key that was bumped successfully.
        """
        bumped = {}
        for key in keys:
            try:
                bumped[key] = self.store.bump(key)
            except Exception as e:
                logger.warning(f"Cache version bump failed for {key.value}: {e}")
        return bumped

    def initialize(self, keys: Iterable[VersionKey] = tuple(VersionKey)) -> None:
        """Create missing version counters at INITIAL_VERSION without touching existing ones."""
        for key in keys:
            try:
                self.store.ensure(key)
            except Exception as e:
                logger.warning(f"Cache version init failed for {key.value}: {e}")

    def current(self, key: VersionKey) -> int | None:
        try:
            return self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache version read failed for {key.value}: {e}")
            return None

    def versioned_key(self, base: str, *keys: VersionKey) -> str | None:
        """Build ``base:v<ver>[:v<ver>...]``, or None when a version can't be read.

        Callers must skip the cache when None is returned; an unversioned key
        could serve stale data forever.
        """
        parts = [base]
        for key in keys:
            version = self.current(key)
            if version is None:
                return None
            parts.append(f"v{version}")
        return ":".join(parts)
