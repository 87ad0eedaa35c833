"""Service dependencies for FastAPI routes."""

from functools import lru_cache

import redis
from fastapi import Depends

from wdtp.config import get_settings
from wdtp.services.cache_versions import CacheVersionBus, RedisVersionStore
from wdtp.services.wage_report_service import WageReportService
from wdtp.services.wage_statistics import WageStatisticsService


@lru_cache
def get_redis() -> redis.Redis:
    """Shared Redis client (connection pool is created lazily)."""
    return redis.from_url(get_settings().redis_url, socket_timeout=5)


def get_version_bus(client: redis.Redis = Depends(get_redis)) -> CacheVersionBus:
    return CacheVersionBus(RedisVersionStore(client, prefix=get_settings().cache_version_prefix))


def get_wage_report_service(bus: CacheVersionBus = Depends(get_version_bus)) -> WageReportService:
    return WageReportService(bus, duplicate_window_days=get_settings().duplicate_window_days)


def get_statistics_service(
    client: redis.Redis = Depends(get_redis),
    bus: CacheVersionBus = Depends(get_version_bus),
) -> WageStatisticsService:
    return WageStatisticsService(client, bus, ttl=get_settings().stats_cache_ttl)
