"""005: create notifications table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE notifications (
            id          BIGSERIAL    PRIMARY KEY,
            user_id     TEXT         NOT NULL,
            type        TEXT         NOT NULL,
            title       TEXT         NOT NULL,
            message     TEXT         NOT NULL,
            data        JSONB        NOT NULL DEFAULT '{}'::jsonb,
            read        BOOLEAN      NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_notifications_user_unread ON notifications (user_id, read, id DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
