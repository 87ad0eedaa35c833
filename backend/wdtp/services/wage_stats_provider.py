"""SQL-backed statistics provider for the sanity scorer.

Populations only ever contain approved, live (not soft-deleted) reports.
PostgreSQL computes median and MAD with PERCENTILE_CONT in one round trip;
other dialects (SQLite in tests) load the population and compute the same
continuous median in Python.
"""

import logging
import statistics
from typing import Iterable

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wdtp.models.enums import WageReportStatus
from wdtp.models.wage_report import WageReport
from wdtp.services.errors import StatsUnavailableError
from wdtp.services.sanity_scorer import EMPTY_SNAPSHOT, ScopeKind, StatsScope, StatsSnapshot

logger = logging.getLogger(__name__)

_SCOPE_COLUMNS = {
    ScopeKind.LOCATION: "location_id",
    ScopeKind.ORGANIZATION: "organization_id",
}

_PG_STATS_SQL = """
    WITH population AS (
        SELECT normalized_hourly_cents AS cents
        FROM wage_reports
        WHERE {scope_column} = :entity_id
          AND status = :approved
          AND deleted_at IS NULL
          {exclude_clause}
    ),
    center AS (
        SELECT PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY cents) AS median
        FROM population
    )
    SELECT
        (SELECT COUNT(*) FROM population) AS sample_size,
        center.median AS median,
        (
            SELECT PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY ABS(population.cents - center.median))
            FROM population
        ) AS mad
    FROM center
"""


def median(values: Iterable[float]) -> float:
    """Continuous median, equivalent to PERCENTILE_CONT(0.5)."""
    values = list(values)
    if not values:
        return 0
    return statistics.median(values)


def median_absolute_deviation(values: Iterable[float]) -> float:
    values = list(values)
    if not values:
        return 0
    center = median(values)
    return median(abs(v - center) for v in values)


def snapshot_from_values(values: Iterable[int]) -> StatsSnapshot:
    values = list(values)
    if not values:
        return EMPTY_SNAPSHOT
    return StatsSnapshot(
        sample_size=len(values),
        median_hourly_cents=median(values),
        mad_hourly_cents=median_absolute_deviation(values),
    )


class SqlStatsProvider:
    """StatsProvider reading approved populations through a SQLAlchemy session.

    Queries run inside a SAVEPOINT so a failed statistics query is rolled back
    on its own and leaves the caller's write transaction usable.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_stats(self, scope: StatsScope) -> StatsSnapshot:
        try:
            with self.session.begin_nested():
                if self.session.get_bind().dialect.name == "postgresql":
                    return self._postgres_stats(scope)
                return self._portable_stats(scope)
        except SQLAlchemyError as e:
            logger.warning(f"Statistics query failed for {scope.kind.value} {scope.entity_id}: {e}")
            raise StatsUnavailableError(
                f"Statistics unavailable for {scope.kind.value} {scope.entity_id}"
            ) from e

    def _portable_stats(self, scope: StatsScope) -> StatsSnapshot:
        column = getattr(WageReport, _SCOPE_COLUMNS[scope.kind])
        query = select(WageReport.normalized_hourly_cents).where(
            column == scope.entity_id,
            WageReport.status == WageReportStatus.APPROVED.value,
            WageReport.deleted_at.is_(None),
        )
        if scope.exclude_report_id is not None:
            query = query.where(WageReport.id != scope.exclude_report_id)

        values = self.session.execute(query).scalars().all()
        return snapshot_from_values(values)

    def _postgres_stats(self, scope: StatsScope) -> StatsSnapshot:
        params = {"entity_id": scope.entity_id, "approved": WageReportStatus.APPROVED.value}
        exclude_clause = ""
        if scope.exclude_report_id is not None:
            exclude_clause = "AND id <> :exclude_id"
            params["exclude_id"] = scope.exclude_report_id

        sql = _PG_STATS_SQL.format(scope_column=_SCOPE_COLUMNS[scope.kind], exclude_clause=exclude_clause)
        row = self.session.execute(text(sql), params).mappings().first()

        if not row or not row["sample_size"]:
            return EMPTY_SNAPSHOT
        return StatsSnapshot(
            sample_size=int(row["sample_size"]),
            median_hourly_cents=float(row["median"]),
            mad_hourly_cents=float(row["mad"]),
        )
