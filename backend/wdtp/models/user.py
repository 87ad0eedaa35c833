"""User model: attribution target for wage reports."""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from wdtp.models.base import Base, TimestampMixin, IDMixin


class User(IDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True))

    # Relationships
    wage_reports = relationship("WageReport", back_populates="user")
