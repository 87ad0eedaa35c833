"""Location model: a physical workplace belonging to an organization."""

from sqlalchemy import Column, String, Integer, Float, Boolean, BigInteger, ForeignKey, Index
from sqlalchemy.orm import relationship

from wdtp.models.base import Base, TimestampMixin, IDMixin


class Location(IDMixin, TimestampMixin, Base):
    __tablename__ = "locations"

    organization_id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Identity
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, index=True)

    # Address
    address_line_1 = Column(String(255))
    address_line_2 = Column(String(255))
    city = Column(String(100), index=True)
    state_province = Column(String(100))
    postal_code = Column(String(20))
    country_code = Column(String(2), default="US")

    # Geocoding (PostGIS point column is added by migration 002)
    latitude = Column(Float)
    longitude = Column(Float)

    is_active = Column(Boolean, default=True, nullable=False)

    # Denormalized count of approved, live wage reports (maintained by CounterLedger)
    wage_reports_count = Column(Integer, default=0, server_default="0", nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="locations")
    wage_reports = relationship("WageReport", back_populates="location", passive_deletes=True)

    __table_args__ = (
        Index("idx_location_city_state", "city", "state_province"),
        Index("idx_location_wage_reports_count", "wage_reports_count"),
    )
