"""Counter ledger: denormalized approved-report counts per location and organization.

Every adjustment is a single UPDATE statement executed inside the caller's
transaction, so concurrent writers never lose an increment. Decrements are
guarded with ``wage_reports_count > 0`` and can never drive a count negative.

Invariant maintained together with WageReportService:

    location.wage_reports_count ==
        count(reports where location_id = location.id, status = approved, deleted_at is null)

and the same for organizations.
"""

import logging
from enum import Enum

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wdtp.models.enums import WageReportStatus
from wdtp.models.location import Location
from wdtp.models.organization import Organization
from wdtp.models.wage_report import WageReport
from wdtp.services.errors import CounterError

logger = logging.getLogger(__name__)


class CountedEntity(str, Enum):
    LOCATION = "location"
    ORGANIZATION = "organization"


_MODELS = {
    CountedEntity.LOCATION: Location,
    CountedEntity.ORGANIZATION: Organization,
}

_REPORT_COLUMNS = {
    CountedEntity.LOCATION: WageReport.location_id,
    CountedEntity.ORGANIZATION: WageReport.organization_id,
}


def transition_delta(old_status: str | None, new_status: str | None) -> int:
    """Counter delta for a status change; ``None`` means the report is not live.

    approved -> anything else is -1, anything else -> approved is +1, and every
    other transition (e.g. pending -> rejected) is a no-op.
    """
    was_counted = old_status == WageReportStatus.APPROVED
    is_counted = new_status == WageReportStatus.APPROVED
    if was_counted and not is_counted:
        return -1
    if is_counted and not was_counted:
        return 1
    return 0


class CounterLedger:
    """Atomic increments/decrements of ``wage_reports_count`` columns."""

    def adjust(self, session: Session, entity: CountedEntity, entity_id: int, delta: int) -> None:
        if delta not in (1, -1):
            raise ValueError(f"Counter delta must be +1 or -1, got {delta}")

        model = _MODELS[entity]
        stmt = update(model).where(model.id == entity_id)
        if delta > 0:
            stmt = stmt.values(wage_reports_count=model.wage_reports_count + 1)
        else:
            stmt = stmt.where(model.wage_reports_count > 0).values(
                wage_reports_count=model.wage_reports_count - 1,
            )

        try:
            result = session.execute(stmt.execution_options(synchronize_session=False))
        except SQLAlchemyError as e:
            raise CounterError(f"Failed to adjust {entity.value} {entity_id} counter by {delta}: {e}") from e

        if delta < 0 and result.rowcount == 0:
            logger.warning(f"Skipped decrement of {entity.value} {entity_id} counter (already zero or missing)")

    def apply_delta(self, session: Session, report: WageReport, delta: int) -> None:
        """Apply ``delta`` to the report's location and, if any, its organization."""
        if delta == 0:
            return
        self.adjust(session, CountedEntity.LOCATION, report.location_id, delta)
        if report.organization_id is not None:
            self.adjust(session, CountedEntity.ORGANIZATION, report.organization_id, delta)

    def apply_transition(self, session: Session, report: WageReport, old_status: str | None, new_status: str | None) -> int:
        delta = transition_delta(old_status, new_status)
        self.apply_delta(session, report, delta)
        return delta

    def reconcile(self, session: Session) -> int:
        """Recompute every counter from the live approved reports.

        Returns the number of location/organization rows that were corrected.
        Does not commit.
        """
        corrected = 0
        for entity, model in _MODELS.items():
            report_column = _REPORT_COLUMNS[entity]
            actual = (
                select(func.count(WageReport.id))
                .where(
                    report_column == model.id,
                    WageReport.status == WageReportStatus.APPROVED.value,
                    WageReport.deleted_at.is_(None),
                )
                .scalar_subquery()
            )
            try:
                result = session.execute(
                    update(model)
                    .where(model.wage_reports_count != actual)
                    .values(wage_reports_count=actual)
                    .execution_options(synchronize_session=False)
                )
            except SQLAlchemyError as e:
                raise CounterError(f"Failed to reconcile {entity.value} counters: {e}") from e

            if result.rowcount:
                logger.warning(f"Reconciled {result.rowcount} drifted {entity.value} counters")
            corrected += result.rowcount

        return corrected
