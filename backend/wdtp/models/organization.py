"""Organization model: employers that own one or more locations."""

from sqlalchemy import Column, String, Integer, Boolean, Index
from sqlalchemy.orm import relationship

from wdtp.models.base import Base, TimestampMixin, IDMixin


class Organization(IDMixin, TimestampMixin, Base):
    __tablename__ = "organizations"

    # Identity
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    website_url = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)

    # Denormalized count of approved, live wage reports (maintained by CounterLedger)
    wage_reports_count = Column(Integer, default=0, server_default="0", nullable=False)

    # Relationships
    locations = relationship("Location", back_populates="organization")
    wage_reports = relationship("WageReport", back_populates="organization")

    __table_args__ = (
        Index("idx_org_wage_reports_count", "wage_reports_count"),
    )
