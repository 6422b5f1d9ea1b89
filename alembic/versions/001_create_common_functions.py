"""001: create common functions, user_profiles and categories

Revision ID: 001
Revises: 
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE user_profiles (
            user_id                     VARCHAR(64) PRIMARY KEY,
            role                        VARCHAR(20) NOT NULL DEFAULT 'buyer',
            country                     VARCHAR(64),
            onboarding_status           VARCHAR(20) NOT NULL DEFAULT 'pending',
            controlled_items_approved   BOOLEAN     NOT NULL DEFAULT FALSE,
            is_suspended                BOOLEAN     NOT NULL DEFAULT FALSE,
            created_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_profiles_role CHECK (
                role IN ('buyer', 'vendor', 'admin', 'super_admin')
            ),
            CONSTRAINT ck_user_profiles_onboarding CHECK (
                onboarding_status IN ('pending', 'approved', 'rejected')
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_user_profiles_updated_at
            BEFORE UPDATE ON user_profiles
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TABLE categories (
            id              VARCHAR(64)     PRIMARY KEY,
            parent_id       VARCHAR(64)     REFERENCES categories (id),
            name            VARCHAR(255)    NOT NULL,
            is_controlled   BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_categories_parent ON categories (parent_id);")
    op.execute(
        "COMMENT ON COLUMN categories.is_controlled IS "
        "'Controlled flag is inherited by every descendant category';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS categories CASCADE;")
    op.execute("DROP TABLE IF EXISTS user_profiles CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
