"""006: seed demo listings

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One listing per strategy; all due immediately (next_price_reduction NULL)
    op.execute("""
        INSERT INTO listings (
            id, user_id, title,
            current_price, original_price, minimum_price,
            reduction_enabled, reduction_strategy,
            reduction_percentage, reduction_amount, reduction_interval_days,
            listing_status
        ) VALUES
            ('LST-DEMO-PCT', 'demo-user', 'Vintage denim jacket',
             100.00, 100.00, 60.00, TRUE, 'fixed_percentage', 10, 0, 7, 'Active'),
            ('LST-DEMO-AMT', 'demo-user', 'Leather messenger bag',
             90.00, 90.00, 80.00, TRUE, 'fixed_amount', 0, 9.00, 7, 'Active'),
            ('LST-DEMO-MKT', 'demo-user', 'Mechanical keyboard',
             60.00, 60.00, 40.00, TRUE, 'market_based', 5, 0, 3, 'Active'),
            ('LST-DEMO-TIME', 'demo-user', 'Trail running shoes',
             120.00, 120.00, 70.00, TRUE, 'time_based', 5, 0, 7, 'Active'),
            ('LST-DEMO-PAUSED', 'demo-user', 'Film camera',
             200.00, 200.00, 150.00, TRUE, 'fixed_percentage', 5, 0, 7, 'Paused');
    """)
    op.execute("""
        INSERT INTO price_history (listing_id, price, reason)
        SELECT id, current_price, 'initial' FROM listings WHERE user_id = 'demo-user';
    """)
    op.execute("""
        INSERT INTO market_snapshots (listing_id, average_price, suggested_price, sample_size)
        VALUES ('LST-DEMO-MKT', 52.00, 45.00, 12);
    """)


def downgrade() -> None:
    # price_history is append-only; drop the guard trigger for the cleanup
    op.execute("ALTER TABLE price_history DISABLE TRIGGER trg_price_history_append_only;")
    op.execute("DELETE FROM market_snapshots WHERE listing_id LIKE 'LST-DEMO-%';")
    op.execute("DELETE FROM price_history WHERE listing_id LIKE 'LST-DEMO-%';")
    op.execute("DELETE FROM listings WHERE id LIKE 'LST-DEMO-%';")
    op.execute("ALTER TABLE price_history ENABLE TRIGGER trg_price_history_append_only;")
