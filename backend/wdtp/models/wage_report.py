"""Wage report model: one anonymous or attributed hourly-wage submission."""

from sqlalchemy import (
    Column, String, Integer, SmallInteger, BigInteger, Boolean, Date, DateTime, Text,
    ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from wdtp.models.base import Base, TimestampMixin, IDMixin
from wdtp.models.enums import WageReportStatus, WageSource

_FK_TYPE = BigInteger().with_variant(Integer, "sqlite")


class WageReport(IDMixin, TimestampMixin, Base):
    __tablename__ = "wage_reports"

    user_id = Column(_FK_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    organization_id = Column(_FK_TYPE, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True)
    location_id = Column(_FK_TYPE, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)

    # Job details
    job_title = Column(String(160), nullable=False)
    employment_type = Column(String(20), nullable=False, default="full_time")  # see EmploymentType

    # Wage as entered
    wage_period = Column(String(20), nullable=False)  # see WagePeriod
    currency = Column(String(3), nullable=False, default="USD")
    amount_cents = Column(Integer, nullable=False)

    # Derived by WageReportService, never supplied by callers
    normalized_hourly_cents = Column(Integer, nullable=False)
    sanity_score = Column(SmallInteger, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=WageReportStatus.PENDING.value)

    # Context
    hours_per_week = Column(SmallInteger)
    effective_date = Column(Date)
    tips_included = Column(Boolean, nullable=False, default=False)
    unionized = Column(Boolean)
    source = Column(String(20), nullable=False, default=WageSource.USER.value)
    notes = Column(Text)

    # Soft delete marker; NULL means live
    deleted_at = Column(DateTime(timezone=True), index=True)

    # Relationships
    user = relationship("User", back_populates="wage_reports")
    organization = relationship("Organization", back_populates="wage_reports")
    location = relationship("Location", back_populates="wage_reports")

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="wage_reports_amount_cents_positive"),
        CheckConstraint("normalized_hourly_cents > 0", name="wage_reports_normalized_hourly_cents_positive"),
        CheckConstraint("sanity_score BETWEEN -5 AND 5", name="wage_reports_sanity_score_range"),
        Index("idx_wage_location_status", "location_id", "status"),
        Index("idx_wage_org_status", "organization_id", "status"),
        Index("idx_wage_user", "user_id"),
        Index("idx_wage_status", "status"),
        Index("idx_wage_effective_date", "effective_date"),
        Index("idx_wage_normalized", "normalized_hourly_cents"),
        Index("idx_wage_job_title", "job_title"),
    )

    @property
    def is_approved(self) -> bool:
        return self.status == WageReportStatus.APPROVED

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return (
            f"<WageReport id={self.id} location={self.location_id} "
            f"hourly={self.normalized_hourly_cents} status={self.status}>"
        )
