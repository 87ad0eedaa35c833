"""Aggregate wage statistics for dashboards and location/organization pages.

Only approved, live reports are included. Count, average, extremes, standard
deviation and the breakdowns are aggregated in SQL. PostgreSQL also computes
the percentiles with PERCENTILE_CONT; other dialects (SQLite in tests) load the
ordered hourly column and interpolate the same way.

Results are cached in Redis under a key that embeds the current
``wages_version``, so every lifecycle mutation invalidates them without
explicit deletes.
"""

import hashlib
import json
import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum

import redis
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from wdtp.models.enums import WageReportStatus
from wdtp.models.location import Location
from wdtp.models.wage_report import WageReport
from wdtp.services.cache_versions import CacheVersionBus, VersionKey

logger = logging.getLogger(__name__)

DEFAULT_TTL = 900
TOP_JOB_TITLES = 10
TOP_CITIES = 15
PERCENTILES = {"p25": 0.25, "p50": 0.5, "p75": 0.75, "p90": 0.9}


class StatsScopeKind(str, Enum):
    GLOBAL = "global"
    LOCATION = "location"
    ORGANIZATION = "organization"


@dataclass
class WageStatsFilters:
    date_from: date | None = None
    date_to: date | None = None
    employment_type: str | None = None
    min_wage_cents: int | None = None
    max_wage_cents: int | None = None
    currency: str | None = None
    unionized: bool | None = None
    tips_included: bool | None = None

    def cache_fingerprint(self) -> str:
        active = {k: v for k, v in asdict(self).items() if v is not None}
        payload = json.dumps(active, sort_keys=True, default=str)
        return hashlib.md5(payload.encode()).hexdigest()


@dataclass
class WageStatsResult:
    count: int = 0
    average_cents: int | None = None
    median_cents: int | None = None
    min_cents: int | None = None
    max_cents: int | None = None
    stddev_cents: int | None = None
    percentiles: dict[str, int] = field(default_factory=dict)
    employment_types: list[dict] = field(default_factory=list)
    top_job_titles: list[dict] = field(default_factory=list)
    # Global scope only
    geographic_distribution: list[dict] = field(default_factory=list)


def percentile(sorted_values: list[int], fraction: float) -> float:
    """Linear-interpolated percentile, same as PERCENTILE_CONT."""
    if not sorted_values:
        return 0
    position = (len(sorted_values) - 1) * fraction
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return sorted_values[lower]
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * (position - lower)


def sample_stddev(count: int, total: int, total_squares: int) -> float:
    """Sample standard deviation from COUNT, SUM and SUM of squares."""
    if count < 2:
        return 0
    variance = (count * total_squares - total * total) / (count * (count - 1))
    return math.sqrt(max(variance, 0))


def _cents(value) -> int:
    return int(round(value)) if value is not None else 0


class WageStatisticsService:
    def __init__(self, redis_client: redis.Redis | None, version_bus: CacheVersionBus, ttl: int = DEFAULT_TTL):
        self.redis = redis_client
        self.version_bus = version_bus
        self.ttl = ttl

    def global_stats(self, session: Session, filters: WageStatsFilters | None = None) -> WageStatsResult:
        return self.get_stats(session, StatsScopeKind.GLOBAL, None, filters)

    def location_stats(self, session: Session, location_id: int, filters: WageStatsFilters | None = None) -> WageStatsResult:
        return self.get_stats(session, StatsScopeKind.LOCATION, location_id, filters)

    def organization_stats(
        self, session: Session, organization_id: int, filters: WageStatsFilters | None = None,
    ) -> WageStatsResult:
        return self.get_stats(session, StatsScopeKind.ORGANIZATION, organization_id, filters)

    def get_stats(
        self,
        session: Session,
        scope: StatsScopeKind,
        entity_id: int | None,
        filters: WageStatsFilters | None = None,
    ) -> WageStatsResult:
        filters = filters or WageStatsFilters()
        cache_key = self._cache_key(scope, entity_id, filters)

        cached = self._read_cache(cache_key)
        if cached is not None:
            return cached

        result = self._calculate(session, scope, entity_id, filters)
        self._write_cache(cache_key, result)
        return result

    # --- Aggregation ---

    def _calculate(
        self, session: Session, scope: StatsScopeKind, entity_id: int | None, filters: WageStatsFilters,
    ) -> WageStatsResult:
        cents = WageReport.normalized_hourly_cents
        is_postgres = session.get_bind().dialect.name == "postgresql"

        columns = [
            func.count(WageReport.id).label("count"),
            func.round(func.avg(cents)).label("average"),
            func.min(cents).label("min"),
            func.max(cents).label("max"),
        ]
        if is_postgres:
            columns.append(func.round(func.stddev_samp(cents)).label("stddev"))
            columns.extend(
                func.round(func.percentile_cont(fraction).within_group(cents)).label(name)
                for name, fraction in PERCENTILES.items()
            )
        else:
            columns.append(func.sum(cents).label("total"))
            columns.append(func.sum(cents * cents).label("total_squares"))

        row = session.execute(self._scoped(select(*columns), scope, entity_id, filters)).mappings().one()
        if not row["count"]:
            return WageStatsResult()

        if is_postgres:
            stddev = _cents(row["stddev"])
            percentiles = {name: _cents(row[name]) for name in PERCENTILES}
        else:
            stddev = _cents(sample_stddev(row["count"], row["total"], row["total_squares"]))
            ordered = session.execute(
                self._scoped(select(cents), scope, entity_id, filters).order_by(cents)
            ).scalars().all()
            percentiles = {name: _cents(percentile(ordered, fraction)) for name, fraction in PERCENTILES.items()}

        return WageStatsResult(
            count=row["count"],
            average_cents=_cents(row["average"]),
            median_cents=percentiles["p50"],
            min_cents=row["min"],
            max_cents=row["max"],
            stddev_cents=stddev,
            percentiles=percentiles,
            employment_types=self._employment_types(session, scope, entity_id, filters),
            top_job_titles=self._job_titles(session, scope, entity_id, filters),
            geographic_distribution=(
                self._geographic_distribution(session, filters) if scope == StatsScopeKind.GLOBAL else []
            ),
        )

    def _employment_types(self, session, scope, entity_id, filters) -> list[dict]:
        count = func.count(WageReport.id)
        query = (
            select(WageReport.employment_type, count, func.round(func.avg(WageReport.normalized_hourly_cents)))
            .group_by(WageReport.employment_type)
            .order_by(count.desc(), WageReport.employment_type)
        )
        rows = session.execute(self._scoped(query, scope, entity_id, filters)).all()
        return [{"type": t, "count": n, "average_cents": _cents(avg)} for t, n, avg in rows]

    def _job_titles(self, session, scope, entity_id, filters) -> list[dict]:
        count = func.count(WageReport.id)
        query = (
            select(WageReport.job_title, count, func.round(func.avg(WageReport.normalized_hourly_cents)))
            .group_by(WageReport.job_title)
            .order_by(count.desc(), WageReport.job_title)
            .limit(TOP_JOB_TITLES)
        )
        rows = session.execute(self._scoped(query, scope, entity_id, filters)).all()
        return [{"job_title": title, "count": n, "average_cents": _cents(avg)} for title, n, avg in rows]

    def _geographic_distribution(self, session, filters) -> list[dict]:
        count = func.count(WageReport.id)
        query = (
            select(Location.city, Location.state_province, count, func.round(func.avg(WageReport.normalized_hourly_cents)))
            .join(Location, WageReport.location_id == Location.id)
            .group_by(Location.city, Location.state_province)
            .order_by(count.desc(), Location.city, Location.state_province)
            .limit(TOP_CITIES)
        )
        rows = session.execute(self._scoped(query, StatsScopeKind.GLOBAL, None, filters)).all()
        return [
            {"city": city, "state": state, "count": n, "average_cents": _cents(avg)}
            for city, state, n, avg in rows
        ]

    def _scoped(self, query, scope: StatsScopeKind, entity_id: int | None, filters: WageStatsFilters):
        query = query.where(
            WageReport.status == WageReportStatus.APPROVED.value,
            WageReport.deleted_at.is_(None),
        )

        if scope == StatsScopeKind.LOCATION:
            query = query.where(WageReport.location_id == entity_id)
        elif scope == StatsScopeKind.ORGANIZATION:
            query = query.where(WageReport.organization_id == entity_id)

        if filters.date_from:
            query = query.where(WageReport.effective_date >= filters.date_from)
        if filters.date_to:
            query = query.where(WageReport.effective_date <= filters.date_to)
        if filters.employment_type:
            query = query.where(WageReport.employment_type == filters.employment_type)
        if filters.min_wage_cents is not None:
            query = query.where(WageReport.normalized_hourly_cents >= filters.min_wage_cents)
        if filters.max_wage_cents is not None:
            query = query.where(WageReport.normalized_hourly_cents <= filters.max_wage_cents)
        if filters.currency:
            query = query.where(WageReport.currency == filters.currency.upper())
        if filters.unionized is not None:
            query = query.where(WageReport.unionized == filters.unionized)
        if filters.tips_included is not None:
            query = query.where(WageReport.tips_included == filters.tips_included)

        return query

    # --- Cache ---

    def _cache_key(self, scope: StatsScopeKind, entity_id: int | None, filters: WageStatsFilters) -> str | None:
        if self.redis is None:
            return None
        base = f"wage_stats:{scope.value}:{entity_id if entity_id is not None else 'all'}"
        versioned = self.version_bus.versioned_key(base, VersionKey.WAGES)
        if versioned is None:
            return None
        return f"{versioned}:{filters.cache_fingerprint()}"

    def _read_cache(self, cache_key: str | None) -> WageStatsResult | None:
        if cache_key is None:
            return None
        try:
            raw = self.redis.get(cache_key)
        except redis.RedisError as e:
            logger.warning(f"Stats cache read failed for {cache_key}: {e}")
            return None
        if raw is None:
            return None
        return WageStatsResult(**json.loads(raw))

    def _write_cache(self, cache_key: str | None, result: WageStatsResult) -> None:
        if cache_key is None:
            return
        try:
            self.redis.set(cache_key, json.dumps(asdict(result)), ex=self.ttl)
        except redis.RedisError as e:
            logger.warning(f"Stats cache write failed for {cache_key}: {e}")
