"""Wage report lifecycle: create, rescore, moderate, delete and restore.

This is the only entry point the API and workers use to mutate wage reports.
Each operation runs in one transaction on the caller's session:

    normalize -> score (population excludes the report itself) -> persist
    -> counter ledger (same transaction) -> commit -> bump cache versions

Cache versions are bumped after commit and failures there are only logged: a
stale cache is acceptable, a lost or half-counted submission is not.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from wdtp.models.enums import EmploymentType, WagePeriod, WageReportStatus, WageSource
from wdtp.models.location import Location
from wdtp.models.wage_report import WageReport
from wdtp.services.cache_versions import CacheVersionBus, WAGE_REPORT_KEYS
from wdtp.services.counter_ledger import CounterLedger
from wdtp.services.errors import (
    CounterError,
    DuplicateSubmissionError,
    LocationNotFoundError,
    StatsUnavailableError,
    ValidationError,
    WageReportNotFoundError,
)
from wdtp.services.sanity_scorer import ReferencePopulation, ScoreResult, ScoringTier, StatsProvider, score
from wdtp.services.wage_normalizer import normalize_to_hourly
from wdtp.services.wage_stats_provider import SqlStatsProvider

logger = logging.getLogger(__name__)

# Score recorded when no statistics could be computed; negative so the report stays pending
UNSCORED_SANITY_SCORE = -1

DEFAULT_DUPLICATE_WINDOW_DAYS = 30

UNSET: Any = object()


@dataclass
class WageReportSubmission:
    """Raw fields of a SubmitWageReport call; derived fields are never accepted."""

    location_id: int
    job_title: str
    employment_type: EmploymentType | str
    wage_period: WagePeriod | str
    amount_cents: int
    currency: str = "USD"
    hours_per_week: int | None = None
    effective_date: date | None = None
    tips_included: bool = False
    unionized: bool | None = None
    notes: str | None = None
    user_id: int | None = None
    source: WageSource | str = WageSource.USER


@dataclass
class WageChanges:
    """Wage-affecting fields of an update; UNSET fields keep their stored value."""

    amount_cents: int = UNSET
    wage_period: WagePeriod | str = UNSET
    hours_per_week: int | None = UNSET

    def apply_to(self, report: WageReport) -> tuple[int, WagePeriod, int | None]:
        amount = report.amount_cents if self.amount_cents is UNSET else self.amount_cents
        period = report.wage_period if self.wage_period is UNSET else self.wage_period
        hours = report.hours_per_week if self.hours_per_week is UNSET else self.hours_per_week
        return amount, _coerce(WagePeriod, period, "wage_period"), hours


def _coerce(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} {value!r}; expected one of: {allowed}") from None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WageReportService:
    version_bus: CacheVersionBus
    stats_provider_factory: Callable[[Session], StatsProvider] = SqlStatsProvider
    ledger: CounterLedger = field(default_factory=CounterLedger)
    duplicate_window_days: int = DEFAULT_DUPLICATE_WINDOW_DAYS
    clock: Callable[[], datetime] = _utcnow

    # --- Create ---

    def create(self, session: Session, submission: WageReportSubmission) -> WageReport:
        """SubmitWageReport: normalize, score, persist and count a new report."""
        with self._unit_of_work(session, "create"):
            employment_type = _coerce(EmploymentType, submission.employment_type, "employment_type")
            wage_period = _coerce(WagePeriod, submission.wage_period, "wage_period")
            source = _coerce(WageSource, submission.source, "source")

            location = session.get(Location, submission.location_id)
            if location is None:
                raise LocationNotFoundError(submission.location_id)

            if submission.user_id is not None:
                self._check_duplicate(session, submission)

            normalized = normalize_to_hourly(submission.amount_cents, wage_period, submission.hours_per_week)

            # The new report is not in the database yet, so it can't score against itself
            result = self._score(session, normalized, location.id, location.organization_id)

            report = WageReport(
                user_id=submission.user_id,
                location_id=location.id,
                organization_id=location.organization_id,
                job_title=submission.job_title.strip(),
                employment_type=employment_type.value,
                wage_period=wage_period.value,
                currency=submission.currency.upper(),
                amount_cents=submission.amount_cents,
                hours_per_week=submission.hours_per_week,
                effective_date=submission.effective_date,
                tips_included=submission.tips_included,
                unionized=submission.unionized,
                notes=submission.notes,
                source=source.value,
                normalized_hourly_cents=normalized,
                sanity_score=result.score,
                status=result.status.value,
            )
            session.add(report)
            session.flush()

            if report.is_approved:
                self.ledger.apply_delta(session, report, 1)

        logger.info(
            f"Created wage report {report.id} at location {report.location_id}: "
            f"{report.normalized_hourly_cents}c/h score={report.sanity_score} ({result.tier.value}) "
            f"status={report.status}"
        )
        self._bump_versions()
        return report

    # --- Update ---

    def update_wage(self, session: Session, report_id: int, changes: WageChanges) -> WageReport:
        """UpdateWageReportWage: renormalize and rescore after a wage change.

        The report is scored against the other reports of its location or
        organization. A change set that leaves every wage field as stored is a
        no-op and does not bump cache versions.
        """
        with self._unit_of_work(session, "update"):
            report = self._get_live(session, report_id)
            amount, period, hours = changes.apply_to(report)

            if (amount, period.value, hours) == (report.amount_cents, report.wage_period, report.hours_per_week):
                return report

            normalized = normalize_to_hourly(amount, period, hours)
            result = self._score(
                session, normalized, report.location_id, report.organization_id, exclude_report_id=report.id,
            )

            old_status = report.status
            report.amount_cents = amount
            report.wage_period = period.value
            report.hours_per_week = hours
            report.normalized_hourly_cents = normalized
            report.sanity_score = result.score
            report.status = result.status.value
            session.flush()

            self.ledger.apply_transition(session, report, old_status, report.status)

        logger.info(
            f"Rescored wage report {report_id}: {normalized}c/h score={result.score} "
            f"status {old_status} -> {result.status.value}"
        )
        self._bump_versions()
        return report

    # --- Moderation ---

    def set_status(self, session: Session, report_id: int, status: WageReportStatus | str) -> WageReport:
        """Explicit moderation override; counters follow the status transition."""
        new_status = _coerce(WageReportStatus, status, "status")

        with self._unit_of_work(session, "set_status"):
            report = self._get_live(session, report_id)
            old_status = report.status
            if old_status == new_status:
                return report

            report.status = new_status.value
            session.flush()
            self.ledger.apply_transition(session, report, old_status, report.status)

        logger.info(f"Moderated wage report {report_id}: {old_status} -> {new_status.value}")
        self._bump_versions()
        return report

    # --- Delete / restore ---

    def delete(self, session: Session, report_id: int, hard: bool = False) -> None:
        """Soft delete (default) or hard delete a report.

        A report that is already soft deleted was uncounted when it was
        deleted, so hard deleting it later does not decrement again.
        """
        with self._unit_of_work(session, "delete"):
            report = session.get(WageReport, report_id, with_for_update=True)
            if report is None or (report.is_deleted and not hard):
                raise WageReportNotFoundError(report_id)

            if not report.is_deleted and report.is_approved:
                self.ledger.apply_delta(session, report, -1)

            if hard:
                session.delete(report)
            else:
                report.deleted_at = self.clock()
            session.flush()

        logger.info(f"{'Hard' if hard else 'Soft'} deleted wage report {report_id}")
        self._bump_versions()

    def restore(self, session: Session, report_id: int) -> WageReport:
        """Undo a soft delete; restoring a live report is a no-op."""
        with self._unit_of_work(session, "restore"):
            report = session.get(WageReport, report_id, with_for_update=True)
            if report is None:
                raise WageReportNotFoundError(report_id)
            if not report.is_deleted:
                return report

            report.deleted_at = None
            session.flush()
            if report.is_approved:
                self.ledger.apply_delta(session, report, 1)

        logger.info(f"Restored wage report {report_id} (status={report.status})")
        self._bump_versions()
        return report

    # --- Internals ---

    @contextmanager
    def _unit_of_work(self, session: Session, action: str):
        try:
            yield
            session.commit()
        except CounterError as e:
            session.rollback()
            logger.error(f"Wage report {action} rolled back, counter adjustment failed: {e}")
            raise
        except Exception:
            session.rollback()
            raise

    def _get_live(self, session: Session, report_id: int) -> WageReport:
        report = session.get(WageReport, report_id, with_for_update=True)
        if report is None or report.is_deleted:
            raise WageReportNotFoundError(report_id)
        return report

    def _score(
        self,
        session: Session,
        normalized_cents: int,
        location_id: int,
        organization_id: int | None,
        exclude_report_id: int | None = None,
    ) -> ScoreResult:
        population = ReferencePopulation(
            provider=self.stats_provider_factory(session),
            location_id=location_id,
            organization_id=organization_id,
            exclude_report_id=exclude_report_id,
        )
        try:
            return score(normalized_cents, population)
        except StatsUnavailableError as e:
            logger.warning(f"Sanity scoring unavailable for location {location_id}, holding report as pending: {e}")
            return ScoreResult(UNSCORED_SANITY_SCORE, ScoringTier.UNAVAILABLE)

    def _check_duplicate(self, session: Session, submission: WageReportSubmission) -> None:
        cutoff = self.clock() - timedelta(days=self.duplicate_window_days)
        existing = session.execute(
            select(WageReport.id)
            .where(
                WageReport.user_id == submission.user_id,
                WageReport.location_id == submission.location_id,
                func.lower(WageReport.job_title) == submission.job_title.strip().lower(),
                WageReport.created_at >= cutoff,
                WageReport.deleted_at.is_(None),
            )
            .limit(1)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateSubmissionError(submission.user_id, submission.location_id, self.duplicate_window_days)

    def _bump_versions(self) -> None:
        bumped = self.version_bus.bump_all(WAGE_REPORT_KEYS)
        if len(bumped) < len(WAGE_REPORT_KEYS):
            logger.warning(f"Only {len(bumped)}/{len(WAGE_REPORT_KEYS)} cache versions bumped; caches may be stale")
