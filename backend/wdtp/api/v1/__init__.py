"""API v1 router aggregation."""

from fastapi import APIRouter

from wdtp.api.v1.wage_reports import router as wage_reports_router
from wdtp.api.v1.wage_stats import router as wage_stats_router

router = APIRouter(prefix="/api/v1")

router.include_router(wage_reports_router)
router.include_router(wage_stats_router)
