"""004: create market_snapshots table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE market_snapshots (
            id               BIGSERIAL       PRIMARY KEY,
            listing_id       TEXT            NOT NULL REFERENCES listings (id),
            average_price    NUMERIC(12, 2),
            suggested_price  NUMERIC(12, 2),
            sample_size      INT             NOT NULL DEFAULT 0,
            captured_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_market_snapshots_sample_gte_0 CHECK (sample_size >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_market_snapshots_latest "
        "ON market_snapshots (listing_id, captured_at DESC, id DESC);"
    )
    op.execute("COMMENT ON TABLE market_snapshots IS 'Comparable-sales data written by the market collector';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS market_snapshots CASCADE;")
