"""002: create listings table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id                       TEXT            PRIMARY KEY,
            user_id                  TEXT            NOT NULL,
            title                    TEXT            NOT NULL,
            current_price            NUMERIC(12, 2)  NOT NULL,
            original_price           NUMERIC(12, 2)  NOT NULL,
            minimum_price            NUMERIC(12, 2)  NOT NULL,
            reduction_enabled        BOOLEAN         NOT NULL DEFAULT FALSE,
            reduction_strategy       TEXT            NOT NULL DEFAULT 'fixed_percentage',
            reduction_percentage     NUMERIC(5, 2)   NOT NULL DEFAULT 5,
            reduction_amount         NUMERIC(12, 2)  NOT NULL DEFAULT 0,
            reduction_interval_days  INT             NOT NULL DEFAULT 7,
            last_price_reduction     TIMESTAMPTZ,
            next_price_reduction     TIMESTAMPTZ,
            reduction_stalled        BOOLEAN         NOT NULL DEFAULT FALSE,
            listing_status           TEXT            NOT NULL DEFAULT 'Draft',
            version                  BIGINT          NOT NULL DEFAULT 0,
            created_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_floor_positive   CHECK (minimum_price > 0),
            CONSTRAINT ck_listings_price_gte_floor  CHECK (current_price >= minimum_price),
            CONSTRAINT ck_listings_interval         CHECK (reduction_interval_days >= 1),
            CONSTRAINT ck_listings_amount_gte_0     CHECK (reduction_amount >= 0),
            CONSTRAINT ck_listings_percentage CHECK (
                reduction_percentage >= 0 AND reduction_percentage < 100
            ),
            CONSTRAINT ck_listings_strategy CHECK (
                reduction_strategy IN ('fixed_percentage', 'fixed_amount', 'market_based', 'time_based')
            ),
            CONSTRAINT ck_listings_status CHECK (
                listing_status IN ('Active', 'Paused', 'Ended', 'Sold', 'Draft')
            )
        );
    """)
    # Partial index matching the eligibility predicate
    op.execute("""
        CREATE INDEX idx_listings_due
            ON listings (next_price_reduction NULLS FIRST, id)
            WHERE reduction_enabled = TRUE
              AND listing_status = 'Active'
              AND reduction_stalled = FALSE;
    """)
    op.execute("CREATE INDEX idx_listings_user ON listings (user_id);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE listings IS 'Marketplace listings with per-listing price-reduction policy';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
