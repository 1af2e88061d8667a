"""Gamification core tables.

Creates users, rewards, user_rewards, user_levels and user_activities.

Revision ID: 001_gamification_core
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_gamification_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(320) UNIQUE,
            display_name VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Reward catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS rewards (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(128) UNIQUE NOT NULL,
            title VARCHAR(256) NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT '',
            type VARCHAR(32) NOT NULL,
            trigger VARCHAR(32) NOT NULL,
            points_cost INTEGER NOT NULL DEFAULT 0 CHECK (points_cost >= 0),
            reward_value JSONB NOT NULL,
            is_limited BOOLEAN NOT NULL DEFAULT false,
            limited_quantity INTEGER,
            start_date TIMESTAMPTZ,
            end_date TIMESTAMPTZ,
            times_awarded INTEGER NOT NULL DEFAULT 0,
            is_secret BOOLEAN NOT NULL DEFAULT false,
            is_active BOOLEAN NOT NULL DEFAULT true,
            expiration_days INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CHECK (reward_value->>'type' IS NOT NULL)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_rewards_trigger_active
        ON rewards(trigger, is_active)
    """)

    # --- Award ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_rewards (
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            reward_id VARCHAR(36) NOT NULL REFERENCES rewards(id) ON DELETE RESTRICT,
            status VARCHAR(32) NOT NULL DEFAULT 'ACTIVE',
            date_awarded TIMESTAMPTZ NOT NULL,
            expires_at TIMESTAMPTZ,
            consumed_at TIMESTAMPTZ,
            metadata JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, reward_id),
            CHECK ((status = 'CONSUMED') = (consumed_at IS NOT NULL))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_rewards_user_status
        ON user_rewards(user_id, status)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_rewards_active_expiry
        ON user_rewards(expires_at) WHERE status = 'ACTIVE'
    """)

    # --- Points & level ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_levels (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            points INTEGER NOT NULL DEFAULT 0,
            experience INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            lessons_completed INTEGER NOT NULL DEFAULT 0,
            exercises_completed INTEGER NOT NULL DEFAULT 0,
            perfect_scores INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_levels_user_id_key UNIQUE (user_id)
        )
    """)

    # --- Activity log ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_activities (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            activity_type VARCHAR(32) NOT NULL,
            points_awarded INTEGER NOT NULL DEFAULT 0,
            description VARCHAR(256),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_activities_user_time
        ON user_activities(user_id, created_at DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_activities")
    op.execute("DROP TABLE IF EXISTS user_levels")
    op.execute("DROP TABLE IF EXISTS user_rewards")
    op.execute("DROP TABLE IF EXISTS rewards")
    op.execute("DROP TABLE IF EXISTS users")
