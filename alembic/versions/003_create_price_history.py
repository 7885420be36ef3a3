"""003: create price_history table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE price_history (
            id              BIGSERIAL       PRIMARY KEY,
            listing_id      TEXT            NOT NULL REFERENCES listings (id),
            price           NUMERIC(12, 2)  NOT NULL,
            previous_price  NUMERIC(12, 2),
            reason          TEXT            NOT NULL,
            strategy        TEXT,
            cycle_id        TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_price_history_price_positive CHECK (price > 0),
            CONSTRAINT ck_price_history_reason CHECK (
                reason IN ('initial', 'scheduled_reduction', 'manual', 'market_based')
            )
        );
    """)
    op.execute(
        "CREATE UNIQUE INDEX uq_price_history_listing_created "
        "ON price_history (listing_id, created_at);"
    )
    op.execute("CREATE INDEX idx_price_history_listing_id ON price_history (listing_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_price_history_append_only
            BEFORE UPDATE OR DELETE ON price_history
            FOR EACH ROW EXECUTE FUNCTION fn_reject_modification();
    """)
    op.execute("COMMENT ON TABLE price_history IS 'Append-only ledger of every listing price change';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS price_history CASCADE;")
