"""Pydantic schemas package."""

from wdtp.schemas.wage_report import (
    CityStats,
    EmploymentTypeStats,
    JobTitleStats,
    WageReportCreate,
    WageReportRead,
    WageReportStatusUpdate,
    WageReportSummary,
    WageReportWageUpdate,
    WageStatistics,
)

__all__ = [
    "CityStats",
    "EmploymentTypeStats",
    "JobTitleStats",
    "WageReportCreate",
    "WageReportRead",
    "WageReportStatusUpdate",
    "WageReportSummary",
    "WageReportWageUpdate",
    "WageStatistics",
]
