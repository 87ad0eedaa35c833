"""ORM models; importing the package registers every mapper on ``Base.metadata``."""

from wdtp.models.base import Base
from wdtp.models.enums import EmploymentType, WagePeriod, WageReportStatus, WageSource
from wdtp.models.user import User
from wdtp.models.organization import Organization
from wdtp.models.location import Location
from wdtp.models.wage_report import WageReport

__all__ = [
    "Base",
    "EmploymentType",
    "Location",
    "Organization",
    "User",
    "WagePeriod",
    "WageReport",
    "WageReportStatus",
    "WageSource",
]
