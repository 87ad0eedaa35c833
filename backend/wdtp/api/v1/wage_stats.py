"""Per-location and per-organization wage statistics endpoints."""

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wdtp.dependencies.services import get_statistics_service
from wdtp.models.base import get_db
from wdtp.models.enums import EmploymentType
from wdtp.models.location import Location
from wdtp.models.organization import Organization
from wdtp.schemas.wage_report import WageStatistics
from wdtp.services.wage_statistics import WageStatisticsService, WageStatsFilters

router = APIRouter(tags=["wage-stats"])


def stats_filters(
    date_from: date | None = Query(None, description="Effective date lower bound"),
    date_to: date | None = Query(None, description="Effective date upper bound"),
    employment_type: EmploymentType | None = Query(None),
    min_wage_cents: int | None = Query(None, ge=0),
    max_wage_cents: int | None = Query(None, ge=0),
    unionized: bool | None = Query(None),
    tips_included: bool | None = Query(None),
) -> WageStatsFilters:
    return WageStatsFilters(
        date_from=date_from,
        date_to=date_to,
        employment_type=employment_type.value if employment_type else None,
        min_wage_cents=min_wage_cents,
        max_wage_cents=max_wage_cents,
        unionized=unionized,
        tips_included=tips_included,
    )


@router.get("/locations/{location_id}/wage-stats", response_model=WageStatistics)
async def get_location_wage_stats(
    location_id: int,
    db: AsyncSession = Depends(get_db),
    stats_service: WageStatisticsService = Depends(get_statistics_service),
    filters: WageStatsFilters = Depends(stats_filters),
):
    """Wage statistics for one location."""
    # Verify location exists
    if not (await db.execute(select(Location.id).where(Location.id == location_id))).scalar_one_or_none():
        raise HTTPException(status_code=404, detail="Location not found")

    result = await db.run_sync(lambda session: stats_service.location_stats(session, location_id, filters))
    return WageStatistics.model_validate(asdict(result))


@router.get("/organizations/{organization_id}/wage-stats", response_model=WageStatistics)
async def get_organization_wage_stats(
    organization_id: int,
    db: AsyncSession = Depends(get_db),
    stats_service: WageStatisticsService = Depends(get_statistics_service),
    filters: WageStatsFilters = Depends(stats_filters),
):
    """Wage statistics across all locations of an organization."""
    # Verify org exists
    org_query = select(Organization.id).where(Organization.id == organization_id)
    if not (await db.execute(org_query)).scalar_one_or_none():
        raise HTTPException(status_code=404, detail="Organization not found")

    result = await db.run_sync(lambda session: stats_service.organization_stats(session, organization_id, filters))
    return WageStatistics.model_validate(asdict(result))
