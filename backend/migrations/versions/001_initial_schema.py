"""Initial schema: users, organizations, locations, wage_reports.

Revision ID: 001
Revises:
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    # Organizations
    op.create_table(
        "organizations",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("website_url", sa.String(500)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("wage_reports_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )
    op.create_index("idx_org_wage_reports_count", "organizations", ["wage_reports_count"])

    # Locations
    op.create_table(
        "locations",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id", sa.BigInteger,
            sa.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, index=True),
        sa.Column("address_line_1", sa.String(255)),
        sa.Column("address_line_2", sa.String(255)),
        sa.Column("city", sa.String(100), index=True),
        sa.Column("state_province", sa.String(100)),
        sa.Column("postal_code", sa.String(20)),
        sa.Column("country_code", sa.String(2), server_default="US"),
        sa.Column("latitude", sa.Float),
        sa.Column("longitude", sa.Float),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("wage_reports_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )
    op.create_index("idx_location_city_state", "locations", ["city", "state_province"])
    op.create_index("idx_location_wage_reports_count", "locations", ["wage_reports_count"])

    # Wage reports
    op.create_table(
        "wage_reports",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("organization_id", sa.BigInteger, sa.ForeignKey("organizations.id", ondelete="SET NULL")),
        sa.Column(
            "location_id", sa.BigInteger,
            sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("job_title", sa.String(160), nullable=False),
        sa.Column("employment_type", sa.String(20), nullable=False, server_default="full_time"),
        sa.Column("wage_period", sa.String(20), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("amount_cents", sa.Integer, nullable=False),
        sa.Column("normalized_hourly_cents", sa.Integer, nullable=False),
        sa.Column("sanity_score", sa.SmallInteger, nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("hours_per_week", sa.SmallInteger),
        sa.Column("effective_date", sa.Date),
        sa.Column("tips_included", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("unionized", sa.Boolean),
        sa.Column("source", sa.String(20), nullable=False, server_default="user"),
        sa.Column("notes", sa.Text),
        sa.Column("deleted_at", sa.DateTime(timezone=True), index=True),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="wage_reports_amount_cents_positive"),
        sa.CheckConstraint("normalized_hourly_cents > 0", name="wage_reports_normalized_hourly_cents_positive"),
        sa.CheckConstraint("sanity_score BETWEEN -5 AND 5", name="wage_reports_sanity_score_range"),
    )
    op.create_index("idx_wage_location_status", "wage_reports", ["location_id", "status"])
    op.create_index("idx_wage_org_status", "wage_reports", ["organization_id", "status"])
    op.create_index("idx_wage_user", "wage_reports", ["user_id"])
    op.create_index("idx_wage_status", "wage_reports", ["status"])
    op.create_index("idx_wage_effective_date", "wage_reports", ["effective_date"])
    op.create_index("idx_wage_normalized", "wage_reports", ["normalized_hourly_cents"])
    op.create_index("idx_wage_job_title", "wage_reports", ["job_title"])


def downgrade() -> None:
    op.drop_table("wage_reports")
    op.drop_table("locations")
    op.drop_table("organizations")
    op.drop_table("users")
