"""Wage report API endpoints."""

from dataclasses import asdict
from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wdtp.dependencies.services import get_statistics_service, get_wage_report_service
from wdtp.models.base import get_db
from wdtp.models.enums import EmploymentType, WageReportStatus
from wdtp.models.wage_report import WageReport
from wdtp.schemas.wage_report import (
    WageReportCreate,
    WageReportRead,
    WageReportStatusUpdate,
    WageReportSummary,
    WageReportWageUpdate,
    WageStatistics,
)
from wdtp.services.wage_report_service import WageReportService
from wdtp.services.wage_statistics import WageStatisticsService, WageStatsFilters

router = APIRouter(prefix="/wage-reports", tags=["wage-reports"])

SortOrder = Literal["recent", "oldest", "highest", "lowest"]

_SORTS = {
    "recent": WageReport.created_at.desc(),
    "oldest": WageReport.created_at.asc(),
    "highest": WageReport.normalized_hourly_cents.desc(),
    "lowest": WageReport.normalized_hourly_cents.asc(),
}


def _dollars_to_cents(dollars: float) -> int:
    return round(dollars * 100)


@router.get("", response_model=list[WageReportSummary])
async def list_wage_reports(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    organization_id: int | None = Query(None, description="Filter by organization"),
    location_id: int | None = Query(None, description="Filter by location"),
    job_title: str | None = Query(None, min_length=2, description="Search in job title"),
    min_hourly: float | None = Query(None, ge=0, description="Minimum hourly wage in dollars"),
    max_hourly: float | None = Query(None, ge=0, description="Maximum hourly wage in dollars"),
    since: datetime | None = Query(None, description="Only reports submitted after this time"),
    status: WageReportStatus = Query(WageReportStatus.APPROVED, description="Moderation status"),
    employment_type: EmploymentType | None = Query(None, description="Filter by employment type"),
    currency: str | None = Query(None, min_length=3, max_length=3),
    sort: SortOrder = Query("recent"),
):
    """List live wage reports with filters (approved only unless a status is given)."""
    query = select(WageReport).where(
        WageReport.deleted_at.is_(None),
        WageReport.status == status.value,
    )

    if organization_id:
        query = query.where(WageReport.organization_id == organization_id)
    if location_id:
        query = query.where(WageReport.location_id == location_id)
    if job_title:
        query = query.where(WageReport.job_title.ilike(f"%{job_title}%"))
    if min_hourly is not None:
        query = query.where(WageReport.normalized_hourly_cents >= _dollars_to_cents(min_hourly))
    if max_hourly is not None:
        query = query.where(WageReport.normalized_hourly_cents <= _dollars_to_cents(max_hourly))
    if since:
        query = query.where(WageReport.created_at >= since)
    if employment_type:
        query = query.where(WageReport.employment_type == employment_type.value)
    if currency:
        query = query.where(WageReport.currency == currency.upper())

    query = query.order_by(_SORTS[sort], WageReport.id.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/stats", response_model=WageStatistics)
async def get_wage_stats(
    db: AsyncSession = Depends(get_db),
    stats_service: WageStatisticsService = Depends(get_statistics_service),
    date_from: date | None = Query(None, description="Effective date lower bound"),
    date_to: date | None = Query(None, description="Effective date upper bound"),
    employment_type: EmploymentType | None = Query(None),
    min_wage_cents: int | None = Query(None, ge=0),
    max_wage_cents: int | None = Query(None, ge=0),
    currency: str | None = Query(None, min_length=3, max_length=3),
    unionized: bool | None = Query(None),
    tips_included: bool | None = Query(None),
):
    """Aggregate statistics over all approved wage reports."""
    filters = WageStatsFilters(
        date_from=date_from,
        date_to=date_to,
        employment_type=employment_type.value if employment_type else None,
        min_wage_cents=min_wage_cents,
        max_wage_cents=max_wage_cents,
        currency=currency,
        unionized=unionized,
        tips_included=tips_included,
    )
    result = await db.run_sync(lambda session: stats_service.global_stats(session, filters))
    return WageStatistics.model_validate(asdict(result))


@router.get("/{report_id}", response_model=WageReportRead)
async def get_wage_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single approved wage report."""
    query = select(WageReport).where(
        WageReport.id == report_id,
        WageReport.status == WageReportStatus.APPROVED.value,
        WageReport.deleted_at.is_(None),
    )
    report = (await db.execute(query)).scalar_one_or_none()

    if not report:
        raise HTTPException(status_code=404, detail="Wage report not found")
    return report


@router.post("", response_model=WageReportRead, status_code=201)
async def submit_wage_report(
    payload: WageReportCreate,
    db: AsyncSession = Depends(get_db),
    service: WageReportService = Depends(get_wage_report_service),
):
    """Submit a wage report; it is scored and auto-approved or held for moderation."""
    submission = payload.to_submission()

    def _create(session):
        return WageReportRead.model_validate(service.create(session, submission))

    return await db.run_sync(_create)


@router.patch("/{report_id}/wage", response_model=WageReportRead)
async def update_wage_report_wage(
    report_id: int,
    payload: WageReportWageUpdate,
    db: AsyncSession = Depends(get_db),
    service: WageReportService = Depends(get_wage_report_service),
):
    """Change the wage of a report; it is renormalized and rescored."""
    changes = payload.to_changes()

    def _update(session):
        return WageReportRead.model_validate(service.update_wage(session, report_id, changes))

    return await db.run_sync(_update)


@router.patch("/{report_id}/status", response_model=WageReportRead)
async def set_wage_report_status(
    report_id: int,
    payload: WageReportStatusUpdate,
    db: AsyncSession = Depends(get_db),
    service: WageReportService = Depends(get_wage_report_service),
):
    """Moderation override of a report's status."""

    def _set_status(session):
        return WageReportRead.model_validate(service.set_status(session, report_id, payload.status))

    return await db.run_sync(_set_status)


@router.delete("/{report_id}", status_code=204)
async def delete_wage_report(
    report_id: int,
    hard: bool = Query(False, description="Permanently delete instead of soft delete"),
    db: AsyncSession = Depends(get_db),
    service: WageReportService = Depends(get_wage_report_service),
):
    """Delete a wage report (soft by default)."""
    await db.run_sync(lambda session: service.delete(session, report_id, hard=hard))
    return Response(status_code=204)


@router.post("/{report_id}/restore", response_model=WageReportRead)
async def restore_wage_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    service: WageReportService = Depends(get_wage_report_service),
):
    """Restore a soft-deleted wage report."""

    def _restore(session):
        return WageReportRead.model_validate(service.restore(session, report_id))

    return await db.run_sync(_restore)
