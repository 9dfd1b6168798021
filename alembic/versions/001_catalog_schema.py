"""Kata catalog, forum, profiles, roles and mutes.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute("""
        CREATE TABLE katas (
            id BIGSERIAL PRIMARY KEY,
            name TEXT NOT NULL CHECK (length(trim(name)) > 0),
            description TEXT NOT NULL DEFAULT '',
            style TEXT NOT NULL DEFAULT '',
            image_urls TEXT[] NOT NULL DEFAULT '{}',
            video_urls TEXT[] NOT NULL DEFAULT '{}',
            sort_order INTEGER NOT NULL DEFAULT 0 CHECK (sort_order >= 0),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("CREATE INDEX idx_katas_sort_order ON katas(sort_order, id);")

    # Profiles mirror accounts created by the auth service
    op.execute("""
        CREATE TABLE user_profiles (
            id UUID PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            full_name TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE TABLE user_roles (
            user_id UUID PRIMARY KEY REFERENCES user_profiles(id) ON DELETE CASCADE,
            role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'moderator', 'admin')),
            granted_by UUID REFERENCES user_profiles(id) ON DELETE SET NULL,
            granted_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE TABLE user_mutes (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            muted_until TIMESTAMPTZ NOT NULL,
            reason TEXT NOT NULL,
            muted_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            is_active BOOLEAN NOT NULL DEFAULT true,
            muted_by UUID REFERENCES user_profiles(id) ON DELETE SET NULL,
            unmuted_at TIMESTAMPTZ,
            unmuted_by UUID REFERENCES user_profiles(id) ON DELETE SET NULL
        );
    """)

    op.execute("CREATE INDEX idx_user_mutes_user ON user_mutes(user_id, muted_at DESC);")

    # At most one active mute per user
    op.execute("CREATE UNIQUE INDEX idx_user_mutes_one_active ON user_mutes(user_id) WHERE is_active;")

    op.execute("""
        CREATE TABLE forum_posts (
            id BIGSERIAL PRIMARY KEY,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            author_id UUID REFERENCES user_profiles(id) ON DELETE SET NULL,
            author_name TEXT NOT NULL DEFAULT '',
            image_urls TEXT[] NOT NULL DEFAULT '{}',
            category TEXT NOT NULL DEFAULT 'general'
                CHECK (category IN ('general', 'kata_requests', 'techniques', 'events', 'feedback')),
            is_pinned BOOLEAN NOT NULL DEFAULT false,
            is_locked BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    # Role and mute writes must come from a moderator or admin. Connections that
    # set no actor (migrations, maintenance) are not restricted.
    actor_check = """
        NULLIF(current_setting('app.actor_id', true), '') IS NULL
        OR EXISTS (
            SELECT 1 FROM user_roles r
            WHERE r.user_id = NULLIF(current_setting('app.actor_id', true), '')::uuid
            AND r.role IN {roles}
        )
    """
    for table, roles in (("user_roles", "('admin')"), ("user_mutes", "('moderator', 'admin')")):
        check = actor_check.format(roles=roles)
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")
        op.execute(f"CREATE POLICY {table}_select ON {table} FOR SELECT USING (true);")
        op.execute(f"CREATE POLICY {table}_insert ON {table} FOR INSERT WITH CHECK ({check});")
        op.execute(f"CREATE POLICY {table}_update ON {table} FOR UPDATE USING ({check});")
        op.execute(f"CREATE POLICY {table}_delete ON {table} FOR DELETE USING ({check});")


def downgrade():
    op.execute("DROP TABLE IF EXISTS forum_posts;")
    op.execute("DROP TABLE IF EXISTS user_mutes;")
    op.execute("DROP TABLE IF EXISTS user_roles;")
    op.execute("DROP TABLE IF EXISTS user_profiles;")
    op.execute("DROP TABLE IF EXISTS katas;")
