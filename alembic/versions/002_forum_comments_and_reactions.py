"""Forum comments, likes and favorites.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade():
    op.execute("""
        CREATE TABLE forum_comments (
            id BIGSERIAL PRIMARY KEY,
            post_id BIGINT NOT NULL REFERENCES forum_posts(id) ON DELETE CASCADE,
            parent_comment_id BIGINT REFERENCES forum_comments(id) ON DELETE CASCADE,
            content TEXT NOT NULL CHECK (length(trim(content)) > 0),
            author_id UUID REFERENCES user_profiles(id) ON DELETE SET NULL,
            author_name TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("CREATE INDEX idx_forum_comments_post ON forum_comments(post_id, created_at, id);")
    op.execute("CREATE INDEX idx_forum_comments_parent ON forum_comments(parent_comment_id);")

    # target_id points at katas or forum_posts depending on target_type
    for table in ("likes", "favorites"):
        op.execute(f"""
            CREATE TABLE {table} (
                id BIGSERIAL PRIMARY KEY,
                user_id UUID NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
                target_type TEXT NOT NULL CHECK (target_type IN ('kata', 'forum_post')),
                target_id BIGINT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                UNIQUE (user_id, target_type, target_id)
            );
        """)
        op.execute(f"CREATE INDEX idx_{table}_target ON {table}(target_type, target_id);")


def downgrade():
    op.execute("DROP TABLE IF EXISTS favorites;")
    op.execute("DROP TABLE IF EXISTS likes;")
    op.execute("DROP TABLE IF EXISTS forum_comments;")
