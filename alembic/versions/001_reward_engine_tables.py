"""Reward engine tables.

Creates user_economy_state, ml_coins_transactions, user_ranks, missions,
mission_objectives, achievements, user_achievements, exercise_attempts and
module_completions. The exercises table belongs to the content service and
is not managed here.

Revision ID: 001_reward_engine_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_reward_engine_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Economy state (one row per user) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_economy_state (
            user_id VARCHAR(64) PRIMARY KEY,
            tenant_id VARCHAR(64),
            balance INTEGER NOT NULL DEFAULT 0,
            earned_total INTEGER NOT NULL DEFAULT 0,
            spent_total INTEGER NOT NULL DEFAULT 0,
            earned_today INTEGER NOT NULL DEFAULT 0,
            earned_today_date DATE,
            total_xp INTEGER NOT NULL DEFAULT 0,
            current_streak INTEGER NOT NULL DEFAULT 0,
            best_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_economy_state_balance_non_negative CHECK (balance >= 0),
            CONSTRAINT ck_user_economy_state_xp_non_negative CHECK (total_xp >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_economy_state_tenant_id
        ON user_economy_state(tenant_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_economy_state_activity
        ON user_economy_state(last_activity_at)
    """)

    # --- Transaction log (append-only) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ml_coins_transactions (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            amount INTEGER NOT NULL,
            balance_before INTEGER NOT NULL,
            balance_after INTEGER NOT NULL,
            transaction_type VARCHAR(32) NOT NULL,
            reason TEXT NOT NULL DEFAULT '',
            reference_id VARCHAR(64),
            multiplier DOUBLE PRECISION NOT NULL DEFAULT 1.0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ml_coins_tx_balance CHECK (balance_after = balance_before + amount)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_ml_coins_transactions_user_id
        ON ml_coins_transactions(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_ml_coins_tx_user_created
        ON ml_coins_transactions(user_id, created_at)
    """)

    # --- Rank history ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_ranks (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            rank VARCHAR(16) NOT NULL,
            previous_rank VARCHAR(16),
            achieved_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            ml_coins_bonus INTEGER NOT NULL DEFAULT 0,
            multiplier DOUBLE PRECISION NOT NULL DEFAULT 1.0,
            is_current BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_ranks_user_id
        ON user_ranks(user_id)
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_user_ranks_current
        ON user_ranks(user_id)
        WHERE is_current
    """)

    # --- Missions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS missions (
            id UUID PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            template_id VARCHAR(64) NOT NULL,
            mission_type VARCHAR(16) NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            difficulty VARCHAR(16) NOT NULL DEFAULT 'easy',
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            progress DOUBLE PRECISION NOT NULL DEFAULT 0,
            reward_coins INTEGER NOT NULL DEFAULT 0,
            reward_xp INTEGER NOT NULL DEFAULT 0,
            reward_items JSONB NOT NULL DEFAULT '[]',
            start_date TIMESTAMPTZ NOT NULL,
            end_date TIMESTAMPTZ NOT NULL,
            completed_at TIMESTAMPTZ,
            claimed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    for column in ("user_id", "mission_type", "status", "end_date"):
        op.execute(f"CREATE INDEX IF NOT EXISTS ix_missions_{column} ON missions({column})")

    op.execute("""
        CREATE TABLE IF NOT EXISTS mission_objectives (
            id BIGSERIAL PRIMARY KEY,
            mission_id UUID NOT NULL REFERENCES missions(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            objective_type VARCHAR(32) NOT NULL,
            target INTEGER NOT NULL,
            current INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT mission_objectives_mission_id_position_key UNIQUE (mission_id, position),
            CONSTRAINT ck_mission_objectives_current CHECK (current >= 0 AND current <= target)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_mission_objectives_type
        ON mission_objectives(mission_id, objective_type)
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            slug VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(32) NOT NULL,
            rarity VARCHAR(16) NOT NULL,
            condition_counter VARCHAR(32) NOT NULL,
            condition_threshold INTEGER NOT NULL,
            ml_coins_reward INTEGER NOT NULL DEFAULT 0,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            achievement_id VARCHAR(64) NOT NULL REFERENCES achievements(slug),
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            progress DOUBLE PRECISION NOT NULL DEFAULT 100,
            unlock_metadata JSONB NOT NULL DEFAULT '{}',
            CONSTRAINT user_achievements_user_id_achievement_id_key UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_achievements_user_id
        ON user_achievements(user_id)
    """)

    # --- Attempts and module completion ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS exercise_attempts (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            exercise_id VARCHAR(64) NOT NULL,
            module_id VARCHAR(64),
            exercise_type VARCHAR(32) NOT NULL,
            session_id VARCHAR(64),
            submitted_answers JSONB NOT NULL DEFAULT '{}',
            raw_score DOUBLE PRECISION NOT NULL DEFAULT 0,
            score INTEGER NOT NULL DEFAULT 0,
            is_passing BOOLEAN NOT NULL DEFAULT false,
            is_perfect BOOLEAN NOT NULL DEFAULT false,
            pending_review BOOLEAN NOT NULL DEFAULT false,
            time_spent_seconds INTEGER NOT NULL DEFAULT 0,
            hints_used INTEGER NOT NULL DEFAULT 0,
            powerups_used JSONB NOT NULL DEFAULT '[]',
            powerups_count INTEGER NOT NULL DEFAULT 0,
            attempt_number INTEGER NOT NULL DEFAULT 1,
            ml_coins_earned INTEGER NOT NULL DEFAULT 0,
            xp_earned INTEGER NOT NULL DEFAULT 0,
            started_at TIMESTAMPTZ NOT NULL,
            submitted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT exercise_attempts_user_id_session_id_key UNIQUE (user_id, session_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_exercise_attempts_user_id
        ON exercise_attempts(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_exercise_attempts_user_exercise
        ON exercise_attempts(user_id, exercise_id)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS module_completions (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            module_id VARCHAR(64) NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT module_completions_user_id_module_id_key UNIQUE (user_id, module_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_module_completions_user_id
        ON module_completions(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS module_completions CASCADE")
    op.execute("DROP TABLE IF EXISTS exercise_attempts CASCADE")
    op.execute("DROP TABLE IF EXISTS user_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS mission_objectives CASCADE")
    op.execute("DROP TABLE IF EXISTS missions CASCADE")
    op.execute("DROP TABLE IF EXISTS user_ranks CASCADE")
    op.execute("DROP TABLE IF EXISTS ml_coins_transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS user_economy_state CASCADE")
