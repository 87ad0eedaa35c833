"""Pydantic schemas for WageReport model."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from wdtp.models.enums import EmploymentType, WagePeriod, WageReportStatus, WageSource
from wdtp.services.wage_normalizer import format_cents
from wdtp.services.wage_report_service import WageChanges, WageReportSubmission

MAX_AMOUNT_CENTS = 99_999_999
MAX_HOURS_PER_WEEK = 168


class WageReportCreate(BaseModel):
    """Fields a caller may submit; derived fields (score, status, hourly rate) are ignored."""

    location_id: int = Field(..., ge=1)
    job_title: str = Field(..., min_length=1, max_length=160)
    employment_type: EmploymentType
    wage_period: WagePeriod
    amount_cents: int = Field(..., ge=1, le=MAX_AMOUNT_CENTS)
    currency: str = Field("USD", min_length=3, max_length=3)
    hours_per_week: int | None = Field(None, ge=1, le=MAX_HOURS_PER_WEEK)
    effective_date: date | None = None
    tips_included: bool = False
    unionized: bool | None = None
    notes: str | None = Field(None, max_length=1000)
    user_id: int | None = None
    source: WageSource = WageSource.USER

    @field_validator("job_title")
    @classmethod
    def strip_job_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("job_title must not be blank")
        return v

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        if not v.isalpha():
            raise ValueError("currency must be a 3-letter code")
        return v.upper()

    @field_validator("effective_date")
    @classmethod
    def not_in_future(cls, v: date | None) -> date | None:
        if v is not None and v > date.today():
            raise ValueError("effective_date cannot be in the future")
        return v

    def to_submission(self) -> WageReportSubmission:
        return WageReportSubmission(**self.model_dump())


class WageReportWageUpdate(BaseModel):
    """Wage-affecting fields of an update; omitted fields keep their stored value."""

    amount_cents: int | None = Field(None, ge=1, le=MAX_AMOUNT_CENTS)
    wage_period: WagePeriod | None = None
    hours_per_week: int | None = Field(None, ge=1, le=MAX_HOURS_PER_WEEK)

    def to_changes(self) -> WageChanges:
        # Only explicitly sent fields are applied; hours_per_week may be sent as null to clear it
        changes = WageChanges()
        if "amount_cents" in self.model_fields_set and self.amount_cents is not None:
            changes.amount_cents = self.amount_cents
        if "wage_period" in self.model_fields_set and self.wage_period is not None:
            changes.wage_period = self.wage_period
        if "hours_per_week" in self.model_fields_set:
            changes.hours_per_week = self.hours_per_week
        return changes


class WageReportStatusUpdate(BaseModel):
    status: WageReportStatus


class WageReportRead(BaseModel):
    """Full wage report output."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    location_id: int
    organization_id: int | None = None
    user_id: int | None = None
    job_title: str
    employment_type: EmploymentType
    wage_period: WagePeriod
    currency: str
    amount_cents: int
    hours_per_week: int | None = None
    normalized_hourly_cents: int
    sanity_score: int
    status: WageReportStatus
    effective_date: date | None = None
    tips_included: bool
    unionized: bool | None = None
    source: WageSource
    notes: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def normalized_hourly_display(self) -> str:
        return format_cents(self.normalized_hourly_cents)

    @computed_field
    @property
    def amount_display(self) -> str:
        return format_cents(self.amount_cents)

    @computed_field
    @property
    def wage_period_display(self) -> str:
        return self.wage_period.display

    @computed_field
    @property
    def employment_type_display(self) -> str:
        return self.employment_type.display


class WageReportSummary(BaseModel):
    """Minimal wage report info for list views."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    location_id: int
    organization_id: int | None = None
    job_title: str
    employment_type: EmploymentType
    wage_period: WagePeriod
    normalized_hourly_cents: int
    effective_date: date | None = None
    tips_included: bool
    created_at: datetime

    @computed_field
    @property
    def normalized_hourly_display(self) -> str:
        return format_cents(self.normalized_hourly_cents)


class EmploymentTypeStats(BaseModel):
    type: str
    count: int
    average_cents: int


class JobTitleStats(BaseModel):
    job_title: str
    count: int
    average_cents: int


class CityStats(BaseModel):
    city: str | None = None
    state: str | None = None
    count: int
    average_cents: int


class WageStatistics(BaseModel):
    """Aggregate statistics over approved, live wage reports."""

    model_config = ConfigDict(from_attributes=True)

    count: int
    average_cents: int | None = None
    median_cents: int | None = None
    min_cents: int | None = None
    max_cents: int | None = None
    stddev_cents: int | None = None
    percentiles: dict[str, int]
    employment_types: list[EmploymentTypeStats]
    top_job_titles: list[JobTitleStats]
    geographic_distribution: list[CityStats] = []
