"""Initial schema: users, board content, currency ledger, daily activity,
achievements, flairs and gacha.

Revision ID: 001_engagement_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_engagement_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(320),
            username VARCHAR(32) UNIQUE,
            avatar_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Boards / Posts / Comments / Thumbs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS boards (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS posts (
            id VARCHAR(36) PRIMARY KEY,
            board_id VARCHAR(64) NOT NULL REFERENCES boards(id),
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            push_count INTEGER NOT NULL DEFAULT 0,
            post_date DATE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT posts_user_id_post_date_key UNIQUE(user_id, post_date)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_posts_board ON posts(board_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_posts_feed ON posts(updated_at DESC)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS post_commenters (
            id SERIAL PRIMARY KEY,
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            first_commented_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT post_commenters_post_id_user_id_key UNIQUE(post_id, user_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id VARCHAR(36) PRIMARY KEY,
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_comments_post ON comments(post_id, created_at)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS thumbs (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            post_id VARCHAR(36) REFERENCES posts(id) ON DELETE CASCADE,
            comment_id VARCHAR(36) REFERENCES comments(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT thumbs_exactly_one_target CHECK ((post_id IS NULL) <> (comment_id IS NULL)),
            CONSTRAINT thumbs_user_id_post_id_key UNIQUE(user_id, post_id),
            CONSTRAINT thumbs_user_id_comment_id_key UNIQUE(user_id, comment_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_thumbs_post ON thumbs(post_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_thumbs_comment ON thumbs(comment_id)")

    # --- Currency ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS currency_accounts (
            user_id VARCHAR(36) PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            ink_points INTEGER NOT NULL DEFAULT 0,
            prismatic_ink INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ,
            CONSTRAINT currency_accounts_ink_non_negative CHECK (ink_points >= 0),
            CONSTRAINT currency_accounts_prismatic_non_negative CHECK (prismatic_ink >= 0)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS currency_transactions (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            ink_delta INTEGER NOT NULL DEFAULT 0,
            prismatic_delta INTEGER NOT NULL DEFAULT 0,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_currency_tx_user
        ON currency_transactions(user_id, created_at DESC)
    """)

    # --- Daily activity / streaks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_activities (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            date DATE NOT NULL,
            check_in BOOLEAN NOT NULL DEFAULT false,
            posted BOOLEAN NOT NULL DEFAULT false,
            commented BOOLEAN NOT NULL DEFAULT false,
            liked BOOLEAN NOT NULL DEFAULT false,
            completion_bonus_granted BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT daily_activities_user_id_date_key UNIQUE(user_id, date)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS streak_states (
            user_id VARCHAR(36) PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            streak_days INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_check_in DATE
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS streak_milestone_rewards (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            milestone INTEGER NOT NULL,
            granted_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT streak_milestone_rewards_user_id_milestone_key UNIQUE(user_id, milestone)
        )
    """)

    # --- Flairs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS flair_items (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            type VARCHAR(16) NOT NULL,
            rarity VARCHAR(16) NOT NULL,
            ink_price INTEGER NOT NULL DEFAULT 0,
            prismatic_price INTEGER NOT NULL DEFAULT 0,
            css_class VARCHAR(128) NOT NULL,
            preview_image_url VARCHAR(256),
            CONSTRAINT flair_items_type_check
                CHECK (type IN ('border', 'background', 'effect', 'badge', 'trim')),
            CONSTRAINT flair_items_rarity_check
                CHECK (rarity IN ('common', 'rare', 'epic', 'legendary'))
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS inventory_items (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            flair_id VARCHAR(64) NOT NULL REFERENCES flair_items(id),
            source VARCHAR(16) NOT NULL DEFAULT 'grant',
            acquired_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_inventory_user ON inventory_items(user_id, flair_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS post_flair_applications (
            id VARCHAR(36) PRIMARY KEY,
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            flair_id VARCHAR(64) NOT NULL REFERENCES flair_items(id),
            applied_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT post_flair_applications_post_id_flair_id_key UNIQUE(post_id, flair_id)
        )
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievement_definitions (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(32) NOT NULL,
            required_progress INTEGER NOT NULL,
            ink_reward INTEGER NOT NULL DEFAULT 0,
            prismatic_reward INTEGER NOT NULL DEFAULT 0,
            flair_reward VARCHAR(64) REFERENCES flair_items(id),
            icon VARCHAR(64),
            trigger_event VARCHAR(32),
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_achievement_defs_trigger
        ON achievement_definitions(trigger_event)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id VARCHAR(64) NOT NULL REFERENCES achievement_definitions(id),
            current_progress INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            reward_claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ,
            CONSTRAINT user_achievements_user_id_achievement_id_key UNIQUE(user_id, achievement_id)
        )
    """)

    # --- Gacha ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS gacha_collections (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            start_date DATE,
            end_date DATE,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS collection_items (
            id SERIAL PRIMARY KEY,
            collection_id VARCHAR(64) NOT NULL REFERENCES gacha_collections(id) ON DELETE CASCADE,
            flair_id VARCHAR(64) NOT NULL REFERENCES flair_items(id),
            weight DOUBLE PRECISION NOT NULL DEFAULT 1.0,
            CONSTRAINT collection_items_collection_id_flair_id_key UNIQUE(collection_id, flair_id),
            CONSTRAINT collection_items_weight_positive CHECK (weight > 0)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS gacha_pull_records (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            collection_id VARCHAR(64) NOT NULL REFERENCES gacha_collections(id),
            flair_id VARCHAR(64) NOT NULL REFERENCES flair_items(id),
            was_premium BOOLEAN NOT NULL DEFAULT false,
            ink_spent INTEGER NOT NULL DEFAULT 0,
            prismatic_spent INTEGER NOT NULL DEFAULT 0,
            pull_time TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_gacha_pulls_user
        ON gacha_pull_records(user_id, pull_time DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS gacha_pull_records CASCADE")
    op.execute("DROP TABLE IF EXISTS collection_items CASCADE")
    op.execute("DROP TABLE IF EXISTS gacha_collections CASCADE")
    op.execute("DROP TABLE IF EXISTS user_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS achievement_definitions CASCADE")
    op.execute("DROP TABLE IF EXISTS post_flair_applications CASCADE")
    op.execute("DROP TABLE IF EXISTS inventory_items CASCADE")
    op.execute("DROP TABLE IF EXISTS flair_items CASCADE")
    op.execute("DROP TABLE IF EXISTS streak_milestone_rewards CASCADE")
    op.execute("DROP TABLE IF EXISTS streak_states CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_activities CASCADE")
    op.execute("DROP TABLE IF EXISTS currency_transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS currency_accounts CASCADE")
    op.execute("DROP TABLE IF EXISTS thumbs CASCADE")
    op.execute("DROP TABLE IF EXISTS comments CASCADE")
    op.execute("DROP TABLE IF EXISTS post_commenters CASCADE")
    op.execute("DROP TABLE IF EXISTS posts CASCADE")
    op.execute("DROP TABLE IF EXISTS boards CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
