"""Add PostGIS extension and location geography column.

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis;")

    op.execute("""
        ALTER TABLE locations
        ADD COLUMN IF NOT EXISTS geog geography(POINT, 4326);
    """)

    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_locations_geog
        ON locations USING GIST (geog);
    """)

    # Backfill existing lat/lon
    op.execute("""
        UPDATE locations
        SET geog = ST_SetSRID(ST_MakePoint(longitude, latitude), 4326)::geography
        WHERE latitude IS NOT NULL AND longitude IS NOT NULL AND geog IS NULL;
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_locations_geog;")
    op.execute("ALTER TABLE locations DROP COLUMN IF EXISTS geog;")
