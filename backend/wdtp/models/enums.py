"""Closed value sets for wage report columns.

Columns store the plain string values; these enums are the single place the
allowed values are defined and validated.
"""

from enum import Enum


class WagePeriod(str, Enum):
    HOURLY = "hourly"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    PER_SHIFT = "per_shift"

    @property
    def display(self) -> str:
        return _PERIOD_DISPLAY[self]


class EmploymentType(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    SEASONAL = "seasonal"
    CONTRACT = "contract"

    @property
    def display(self) -> str:
        return self.value.replace("_", " ").title()


class WageReportStatus(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


class WageSource(str, Enum):
    USER = "user"
    PUBLIC_POSTING = "public_posting"
    EMPLOYER_CLAIM = "employer_claim"
    OTHER = "other"


_PERIOD_DISPLAY = {
    WagePeriod.HOURLY: "Hourly",
    WagePeriod.WEEKLY: "Weekly",
    WagePeriod.BIWEEKLY: "Bi-weekly",
    WagePeriod.MONTHLY: "Monthly",
    WagePeriod.YEARLY: "Yearly",
    WagePeriod.PER_SHIFT: "Per Shift",
}
