"""Power-up inventory.

Revision ID: 002_powerup_inventory
Revises: 001_reward_engine_tables
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_powerup_inventory"
down_revision: str | None = "001_reward_engine_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS powerup_inventory (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            powerup_type VARCHAR(32) NOT NULL,
            available INTEGER NOT NULL DEFAULT 0,
            purchased_total INTEGER NOT NULL DEFAULT 0,
            earned_total INTEGER NOT NULL DEFAULT 0,
            used_total INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT powerup_inventory_user_id_powerup_type_key UNIQUE (user_id, powerup_type),
            CONSTRAINT ck_powerup_inventory_available_non_negative CHECK (available >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_powerup_inventory_user_id
        ON powerup_inventory(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS powerup_inventory CASCADE")
